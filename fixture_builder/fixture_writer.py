# fixture_builder/fixture_writer.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import yaml

from fixture_builder.errors import ConfigurationError, OutputWriteError

logger = logging.getLogger(__name__)

# Checked in order under the project root; the first existing one wins.
FIXTURE_PARENT_CANDIDATES: Tuple[str, ...] = ("spec", "test", "tests")
FALLBACK_FIXTURE_PARENT = "test"

FORMAT_EXTENSIONS: Dict[str, str] = {
    "yaml": "yml",
    "json": "json",
}


def resolve_fixtures_dir(root: Path, candidates: Sequence[str] = FIXTURE_PARENT_CANDIDATES) -> Path:
    for parent in candidates:
        if (root / parent).is_dir():
            return root / parent / "fixtures"
    return root / FALLBACK_FIXTURE_PARENT / "fixtures"


def _json_safe(obj: Any) -> Any:
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, (list, tuple)):
        return [_json_safe(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _json_safe(v) for k, v in obj.items()}
    return str(obj)


@dataclass
class FixtureWriter:
    fixtures_dir: Path
    fixture_format: str = "yaml"

    def __post_init__(self) -> None:
        self.fixtures_dir = Path(self.fixtures_dir)
        if self.fixture_format not in FORMAT_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported fixture format: {self.fixture_format}. "
                f"Supported formats: {', '.join(sorted(FORMAT_EXTENSIONS))}"
            )

    @property
    def extension(self) -> str:
        return FORMAT_EXTENSIONS[self.fixture_format]

    def fixture_file(self, table_name: str) -> Path:
        return self.fixtures_dir / f"{table_name}.{self.extension}"

    def existing_fixture_files(self) -> List[Path]:
        if not self.fixtures_dir.is_dir():
            return []
        return sorted(self.fixtures_dir.glob(f"*.{self.extension}"))

    def delete_fixture_files(self) -> int:
        files = self.existing_fixture_files()
        for path in files:
            try:
                path.unlink()
            except OSError as e:
                raise OutputWriteError(f"Cannot delete fixture file {path}: {e}") from e
        return len(files)

    def serialize(self, fixture_data: Mapping[str, Mapping[str, Any]]) -> str:
        if self.fixture_format == "json":
            return json.dumps(_json_safe(dict(fixture_data)), indent=2) + "\n"
        return yaml.safe_dump(
            {k: dict(v) for k, v in fixture_data.items()},
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def write_fixture_file(self, fixture_data: Mapping[str, Mapping[str, Any]], table_name: str) -> Path:
        path = self.fixture_file(table_name)
        try:
            self.fixtures_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(self.serialize(fixture_data), encoding="utf-8")
        except OSError as e:
            raise OutputWriteError(f"Cannot write fixture file {path}: {e}") from e
        logger.debug("Wrote %d record(s) to %s", len(fixture_data), path)
        return path

