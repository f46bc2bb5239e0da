# fixture_builder/database.py
from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from fixture_builder.errors import UnsafeIdentifierError

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_TABLES_PREFIXES = ("sqlite_",)
DEFAULT_SELECT_SQL = "SELECT * FROM %s"
DEFAULT_DELETE_SQL = "DELETE FROM %s"

Row = Dict[str, Any]
RowSource = Callable[[], Iterable[Mapping[str, Any]]]


def safe_ident(name: str) -> str:
    # Double-quote identifiers; refuse names that would need escaping.
    if '"' in name:
        raise UnsafeIdentifierError(f'Unsafe identifier contains double quote: {name}')
    return f'"{name}"'


class Database:
    """
    Thin read/write wrapper over a SQLite connection.

    Row sources registered per table replace the select statement for that
    table, so callers can enumerate rows through their own models.
    """

    def __init__(
        self,
        db_path: str,
        *,
        select_sql: str = DEFAULT_SELECT_SQL,
        delete_sql: str = DEFAULT_DELETE_SQL,
        connection: Optional[sqlite3.Connection] = None,
    ):
        self.db_path = db_path
        self.select_sql = select_sql
        self.delete_sql = delete_sql
        self._conn = connection
        self._row_sources: Dict[str, RowSource] = {}

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ----------------------------
    # Statements
    # ----------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        cur = self.connection.execute(sql, tuple(params))
        self.connection.commit()
        return cur

    def _fetchall(self, sql: str, params: Tuple[Any, ...] = ()) -> List[sqlite3.Row]:
        cur = self.connection.cursor()
        cur.execute(sql, params)
        return cur.fetchall()

    # ----------------------------
    # Tables
    # ----------------------------

    def list_tables(self) -> List[str]:
        rows = self._fetchall(
            """
            SELECT name
            FROM sqlite_master
            WHERE type='table'
            ORDER BY name ASC
            """
        )
        names = [r[0] for r in rows]
        return [n for n in names if not any(n.startswith(p) for p in DEFAULT_EXCLUDE_TABLES_PREFIXES)]

    def delete_all(self, table: str) -> None:
        self.execute(self.delete_sql % safe_ident(table))

    def register_row_source(self, table: str, source: RowSource) -> None:
        self._row_sources[table] = source

    def select_all(self, table: str) -> List[Row]:
        source = self._row_sources.get(table)
        if source is not None:
            return [dict(r) for r in source()]
        rows = self._fetchall(self.select_sql % safe_ident(table))
        return [dict(r) for r in rows]

    # ----------------------------
    # Schema hash
    # ----------------------------

    def schema_fingerprint(self) -> str:
        """
        Stable hash of table and column structure (not contents).
        """
        tables = []
        for tname in self.list_tables():
            # PRAGMA table_info: cid, name, type, notnull, dflt_value, pk
            cols = self._fetchall(f"PRAGMA table_info({safe_ident(tname)})")
            columns = [
                {
                    "name": str(name),
                    "type": str(ctype or "").upper(),
                    "not_null": bool(notnull),
                    "default": None if dflt_value is None else str(dflt_value),
                    "is_primary_key": bool(pk),
                }
                for (_, name, ctype, notnull, dflt_value, pk) in cols
            ]
            columns.sort(key=lambda c: c["name"])
            tables.append({"name": tname, "columns": columns})

        payload = json.dumps({"dialect": "sqlite", "tables": tables}, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
