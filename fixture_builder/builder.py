# fixture_builder/builder.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fixture_builder.configuration import Configuration
from fixture_builder.database import Database, safe_ident
from fixture_builder.errors import BuildProcedureError, InvalidArgumentError
from fixture_builder.fingerprints import FingerprintStore, compute_fingerprints, needs_rebuild
from fixture_builder.fixture_writer import FixtureWriter
from fixture_builder.naming import NameCallback, NameRegistry, RecordNamer, RowIndex

logger = logging.getLogger(__name__)

SCHEMA_FINGERPRINT_KEY = "sqlite_schema"

BuildProcedure = Callable[["FixtureBuilder"], Any]


# ----------------------------
# Result object
# ----------------------------

class BuildState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    SKIPPED = "skipped"
    BUILDING = "building"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildResult:
    state: BuildState
    fingerprints: Dict[str, str]
    fixtures: Tuple[str, ...] = ()
    error: Optional[BuildProcedureError] = None

    @property
    def ok(self) -> bool:
        return self.state is not BuildState.FAILED

    @property
    def rebuilt(self) -> bool:
        return self.state is BuildState.COMMITTED

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def to_sentence(words: Sequence[str]) -> str:
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    return f"{', '.join(words[:-1])} and {words[-1]}"


# ----------------------------
# Orchestrator
# ----------------------------

class FixtureBuilder:
    """
    One fixture build session.

    factory() rebuilds only when the tracked files changed since the last
    successful build. The build procedure receives this object and can
    populate the database through self.db / self.execute and register
    record names through self.name / self.name_table_with.
    """

    def __init__(self, config: Configuration, database: Optional[Database] = None):
        self.config = config
        if database is None:
            if not config.db_path:
                raise InvalidArgumentError("A database path is required (db_path)")
            database = Database(config.db_path, select_sql=config.select_sql, delete_sql=config.delete_sql)
        self.db = database
        self.registry = NameRegistry(primary_key=config.primary_key)
        self.namer = RecordNamer(self.registry, config.record_name_fields)
        self.store = FingerprintStore(config.manifest_file())
        self.writer = FixtureWriter(config.fixtures_path(), config.fixture_format)
        self.state = BuildState.IDLE
        self.history: List[BuildState] = [BuildState.IDLE]

    def __enter__(self) -> "FixtureBuilder":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.db.close()

    # ----------------------------
    # Helpers for build procedures
    # ----------------------------

    def name(self, custom_name: str, table_name: str, *rows: Any) -> Any:
        return self.registry.name(custom_name, table_name, *rows)

    def name_table_with(self, table_name: str, callback: Optional[NameCallback] = None) -> Any:
        # usable directly or as a decorator
        if callback is None:
            def decorator(fn: NameCallback) -> NameCallback:
                self.registry.name_table_with(table_name, fn)
                return fn
            return decorator
        self.registry.name_table_with(table_name, callback)
        return callback

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Any:
        return self.db.execute(sql, params)

    def insert(self, table_name: str, **values: Any) -> Dict[str, Any]:
        columns = list(values)
        sql = "INSERT INTO {} ({}) VALUES ({})".format(
            safe_ident(table_name),
            ", ".join(safe_ident(c) for c in columns),
            ", ".join("?" for _ in columns),
        )
        cur = self.db.execute(sql, [values[c] for c in columns])
        row = dict(values)
        row.setdefault(self.config.primary_key, cur.lastrowid)
        return row

    # ----------------------------
    # Rebuild decision
    # ----------------------------

    def tables(self) -> List[str]:
        skip = set(self.config.skip_tables)
        return [t for t in self.db.list_tables() if t not in skip]

    def current_fingerprints(self) -> Dict[str, str]:
        fingerprints = compute_fingerprints(self.config.tracked_files())
        if self.config.track_database_schema:
            fingerprints[SCHEMA_FINGERPRINT_KEY] = self.db.schema_fingerprint()
        return fingerprints

    def rebuild_needed(self) -> bool:
        return self._stale(self.current_fingerprints(), self.store.load())

    def _stale(self, current: Dict[str, str], persisted: Dict[str, str]) -> bool:
        # no manifest means no build has ever succeeded
        return not self.store.exists() or needs_rebuild(current, persisted)

    # ----------------------------
    # Build
    # ----------------------------

    def factory(self, build: BuildProcedure, *, force: bool = False) -> BuildResult:
        if not callable(build):
            raise InvalidArgumentError("The build procedure must be callable")

        self._transition(BuildState.CHECKING)
        current = self.current_fingerprints()
        persisted = self.store.load()

        # a missing manifest counts as stale even when no files are tracked
        if not force and not self._stale(current, persisted):
            self._transition(BuildState.SKIPPED)
            logger.debug("Fixtures are up to date; %d tracked file(s) unchanged", len(current))
            return BuildResult(state=BuildState.SKIPPED, fingerprints=current)

        self._transition(BuildState.BUILDING)
        self._say("Building fixtures")
        # a failed build must leave no manifest behind
        self.store.invalidate()
        self.delete_tables()
        self.writer.delete_fixture_files()

        try:
            build(self)
        except Exception as e:
            error = BuildProcedureError(f"There was an error building fixtures: {e!r}")
            error.__cause__ = e
            self._report_failure(e)
            self._transition(BuildState.FAILED)
            return BuildResult(state=BuildState.FAILED, fingerprints=current, error=error)

        self.writer.delete_fixture_files()
        self.dump_empty_fixtures_for_all_tables()
        fixtures = self.dump_tables()

        if self.config.track_database_schema:
            # the build procedure may have created or altered tables
            current[SCHEMA_FINGERPRINT_KEY] = self.db.schema_fingerprint()
        self.store.persist(current)
        self._transition(BuildState.COMMITTED)

        if self.config.after_build is not None:
            self.config.after_build()

        self._transition(BuildState.IDLE)
        return BuildResult(state=BuildState.COMMITTED, fingerprints=current, fixtures=tuple(fixtures))

    def delete_tables(self) -> None:
        for table in self.tables():
            self.db.delete_all(table)

    def dump_empty_fixtures_for_all_tables(self) -> None:
        for table in self.tables():
            self.writer.write_fixture_file({}, table)

    def dump_table(self, table: str) -> Dict[str, Dict[str, Any]]:
        rows = self.db.select_all(table)
        ledger: List[str] = []
        counter = RowIndex()
        fixture_data: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            fixture_data[self.namer.assign_name(row, table, ledger, counter)] = row
        return fixture_data

    def dump_tables(self) -> List[str]:
        built: List[str] = []
        for table in self.tables():
            fixture_data = self.dump_table(table)
            if not fixture_data:
                continue
            path = self.writer.write_fixture_file(fixture_data, table)
            built.append(path.name)
        self._say(f"Built {to_sentence(built)}" if built else "Built empty fixtures only")
        return built

    # ----------------------------
    # Internals
    # ----------------------------

    def _transition(self, state: BuildState) -> None:
        self.state = state
        self.history.append(state)

    def _say(self, message: str) -> None:
        if not self.config.quiet:
            logger.info("=> %s", message)

    def _report_failure(self, error: Exception) -> None:
        if self.config.quiet:
            return
        logger.error(
            "=> There was an error building fixtures\n=> %r",
            error,
            exc_info=(type(error), error, error.__traceback__),
        )
