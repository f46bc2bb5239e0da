# fixture_builder/configuration.py
from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from fixture_builder.database import DEFAULT_DELETE_SQL, DEFAULT_SELECT_SQL
from fixture_builder.errors import ConfigurationError
from fixture_builder.fixture_writer import FORMAT_EXTENSIONS, resolve_fixtures_dir
from fixture_builder.naming import DEFAULT_RECORD_NAME_FIELDS

# Tracked by default when files_to_check is not set, in this order, if present.
DEFAULT_SCHEMA_FILES: Tuple[str, ...] = (
    "db/schema.rb",
    "db/development_structure.sql",
    "db/test_structure.sql",
    "db/production_structure.sql",
    "db/schema.sql",
)

DEFAULT_SKIP_TABLES: Tuple[str, ...] = ("schema_migrations",)
DEFAULT_MANIFEST_PATH = "tmp/fixture_builder.yml"

DB_ENV_VARS: Tuple[str, ...] = ("FIXTURE_BUILDER_DB", "DB_PATH")


@dataclass
class Configuration:
    db_path: Optional[str] = None
    root: str = "."

    select_sql: str = DEFAULT_SELECT_SQL
    delete_sql: str = DEFAULT_DELETE_SQL
    skip_tables: Tuple[str, ...] = DEFAULT_SKIP_TABLES

    # None -> the DEFAULT_SCHEMA_FILES that exist under root
    files_to_check: Optional[Tuple[str, ...]] = None
    track_database_schema: bool = False

    record_name_fields: Tuple[str, ...] = DEFAULT_RECORD_NAME_FIELDS
    primary_key: str = "id"

    manifest_path: str = DEFAULT_MANIFEST_PATH
    fixtures_dir: Optional[str] = None
    fixture_format: str = "yaml"

    quiet: bool = False
    after_build: Optional[Callable[[], Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.skip_tables = tuple(self.skip_tables)
        self.record_name_fields = tuple(self.record_name_fields)
        if self.files_to_check is not None:
            self.files_to_check = tuple(str(f) for f in self.files_to_check)
        if self.fixture_format not in FORMAT_EXTENSIONS:
            raise ConfigurationError(f"Unsupported fixture_format: {self.fixture_format}")
        for tmpl_name in ("select_sql", "delete_sql"):
            if "%s" not in getattr(self, tmpl_name):
                raise ConfigurationError(f"{tmpl_name} must contain a %s placeholder for the table name")
        if self.after_build is not None and not callable(self.after_build):
            raise ConfigurationError("after_build must be callable")

    @property
    def root_path(self) -> Path:
        return Path(self.root)

    def _resolve(self, path: Union[str, Path]) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root_path / p

    def schema_definition_files(self) -> List[str]:
        return [f for f in DEFAULT_SCHEMA_FILES if self._resolve(f).is_file()]

    def tracked_files(self) -> List[Path]:
        files = self.files_to_check if self.files_to_check is not None else self.schema_definition_files()
        return [self._resolve(f) for f in files]

    def manifest_file(self) -> Path:
        return self._resolve(self.manifest_path)

    def fixtures_path(self) -> Path:
        if self.fixtures_dir:
            return self._resolve(self.fixtures_dir)
        return resolve_fixtures_dir(self.root_path)

    def replace(self, **changes: Any) -> "Configuration":
        return dataclasses.replace(self, **changes)


# ----------------------------
# Loading
# ----------------------------

_FILE_KEYS = frozenset(f.name for f in dataclasses.fields(Configuration)) - {"after_build"}

def configuration_from_mapping(obj: Mapping[str, Any], base: Optional[Configuration] = None) -> Configuration:
    unknown = sorted(set(obj) - _FILE_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown configuration key(s): {', '.join(unknown)}")

    values: Dict[str, Any] = dict(obj)
    for key in ("skip_tables", "files_to_check", "record_name_fields"):
        if key in values and values[key] is not None:
            if isinstance(values[key], str) or not isinstance(values[key], (list, tuple)):
                raise ConfigurationError(f"{key} must be a list")
            values[key] = tuple(values[key])

    try:
        return dataclasses.replace(base or Configuration(), **values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

def load_configuration(path: Union[str, Path], base: Optional[Configuration] = None) -> Configuration:
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                obj = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                obj = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported file format: {config_path.suffix}. "
                    "Supported formats: .yaml, .yml, .json"
                )
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON syntax in {config_path}: {e}") from e

    if obj is None:
        obj = {}
    if not isinstance(obj, dict):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(obj).__name__}")

    return configuration_from_mapping(obj, base)

def configuration_from_env(base: Optional[Configuration] = None, environ: Optional[Mapping[str, str]] = None) -> Configuration:
    environ = os.environ if environ is None else environ
    cfg = base or Configuration()
    if cfg.db_path:
        return cfg
    for var in DB_ENV_VARS:
        if environ.get(var):
            return cfg.replace(db_path=environ[var])
    return cfg
