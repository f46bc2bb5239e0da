# tests/conftest.py
import sqlite3
from pathlib import Path

import pytest

from fixture_builder.builder import FixtureBuilder
from fixture_builder.configuration import Configuration

SCHEMA_SQL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT,
    login TEXT
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY,
    user_id INTEGER,
    title TEXT
);
CREATE TABLE schema_migrations (
    version TEXT
);
"""


@pytest.fixture
def project_root(tmp_path) -> Path:
    """
    Throwaway project: db/schema.sql, an applied SQLite db and a test/ dir.
    """
    root = tmp_path / "project"
    (root / "db").mkdir(parents=True)
    (root / "test").mkdir()
    (root / "db" / "schema.sql").write_text(SCHEMA_SQL, encoding="utf-8")

    conn = sqlite3.connect(root / "db" / "test.sqlite3")
    conn.executescript(SCHEMA_SQL)
    conn.execute("INSERT INTO schema_migrations (version) VALUES ('20240101')")
    conn.commit()
    conn.close()
    return root


@pytest.fixture
def db_path(project_root) -> str:
    return str(project_root / "db" / "test.sqlite3")


@pytest.fixture
def config(project_root, db_path) -> Configuration:
    return Configuration(db_path=db_path, root=str(project_root), quiet=True)


@pytest.fixture
def make_builder(config):
    """
    Each call is a fresh run: new session, new registries.
    """
    opened = []

    def _make(**changes) -> FixtureBuilder:
        builder = FixtureBuilder(config.replace(**changes) if changes else config)
        opened.append(builder)
        return builder

    yield _make
    for builder in opened:
        builder.close()
