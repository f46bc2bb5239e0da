# fixture_builder/fingerprints.py
from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Union

import yaml

from fixture_builder.errors import ManifestParseError, OutputWriteError, TrackedFileError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ----------------------------
# Hashing
# ----------------------------

def file_digest(path: PathLike) -> str:
    # change detection only, not a security boundary
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise TrackedFileError(f"Cannot read tracked file {path}: {e}") from e
    return hashlib.md5(data).hexdigest()

def compute_fingerprints(paths: Iterable[PathLike]) -> Dict[str, str]:
    return {str(p): file_digest(p) for p in paths}

def needs_rebuild(current: Dict[str, str], persisted: Dict[str, str]) -> bool:
    return dict(current) != dict(persisted)


# ----------------------------
# Manifest
# ----------------------------

@dataclass
class FingerprintStore:
    """
    YAML manifest of the fingerprints seen at the last successful build.
    A missing manifest means no build has happened yet.
    """
    manifest_path: Path

    def __post_init__(self) -> None:
        self.manifest_path = Path(self.manifest_path)

    def exists(self) -> bool:
        return self.manifest_path.exists()

    def invalidate(self) -> None:
        try:
            self.manifest_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise OutputWriteError(f"Cannot remove manifest {self.manifest_path}: {e}") from e
        logger.debug("Removed manifest %s", self.manifest_path)

    def load(self) -> Dict[str, str]:
        if not self.manifest_path.exists():
            return {}

        try:
            obj = yaml.safe_load(self.manifest_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ManifestParseError(f"Invalid YAML in {self.manifest_path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"Cannot decode {self.manifest_path}: {e}") from e

        if obj is None:
            return {}
        if not isinstance(obj, dict):
            raise ManifestParseError(
                f"Manifest {self.manifest_path} must be a mapping, got {type(obj).__name__}"
            )
        for k, v in obj.items():
            if not isinstance(k, str) or not isinstance(v, str):
                raise ManifestParseError(
                    f"Manifest {self.manifest_path} has a non-string entry: {k!r}: {v!r}"
                )
        return dict(obj)

    def persist(self, fingerprints: Dict[str, str]) -> None:
        payload = yaml.safe_dump(dict(fingerprints), default_flow_style=False, sort_keys=True)
        parent = self.manifest_path.parent
        tmp_name = None
        try:
            parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.manifest_path.name}.", suffix=".tmp", dir=parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.manifest_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise OutputWriteError(f"Cannot write manifest {self.manifest_path}: {e}") from e

        logger.debug("Wrote %d fingerprint(s) to %s", len(fingerprints), self.manifest_path)
