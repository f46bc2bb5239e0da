# fixture_builder/cli.py
from __future__ import annotations

import argparse
import importlib
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence

from fixture_builder.builder import FixtureBuilder
from fixture_builder.configuration import Configuration, configuration_from_env, load_configuration
from fixture_builder.csv_seed import csv_build_procedure
from fixture_builder.errors import ConfigurationError, FixtureBuilderError
from fixture_builder.logging_utils import set_quiet, setup_logging

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_USAGE = 2
EXIT_STALE = 3


def import_callable(spec: str) -> Callable[..., Any]:
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Expected module:function, got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name}: {e}") from e
    fn = getattr(module, attr, None)
    if not callable(fn):
        raise ConfigurationError(f"{spec} is not a callable")
    return fn


def parse_csv_args(values: Sequence[str]) -> Dict[str, str]:
    tables: Dict[str, str] = {}
    for value in values:
        table, sep, path = value.partition("=")
        if not sep or not table or not path:
            raise ConfigurationError(f"Expected TABLE=FILE, got {value!r}")
        tables[table] = path
    return tables


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fixture-builder",
        description="Dump database tables into per-table fixture files when tracked files change.",
    )
    parser.add_argument("--db", dest="db_path", default=None,
                        help="Path to SQLite DB. Defaults to env FIXTURE_BUILDER_DB or DB_PATH.")
    parser.add_argument("--config", default=None, help="YAML or JSON configuration file.")
    parser.add_argument("--root", default=None, help="Project root that relative paths resolve against.")
    parser.add_argument("--build", default=None,
                        help="Build procedure as module:function; called with the builder.")
    parser.add_argument("--csv", action="append", default=[], metavar="TABLE=FILE",
                        help="Load a CSV file into a table as (part of) the build. Repeatable.")
    parser.add_argument("--after-build", default=None, help="Post-build hook as module:function.")
    parser.add_argument("--track", action="append", default=None, metavar="FILE",
                        help="File whose changes trigger a rebuild. Repeatable; replaces the defaults.")
    parser.add_argument("--format", dest="fixture_format", choices=("yaml", "json"), default=None)
    parser.add_argument("--force", action="store_true", help="Rebuild even if nothing changed.")
    parser.add_argument("--check", action="store_true",
                        help="Only report whether a rebuild is needed (exit 3 if stale).")
    parser.add_argument("-q", "--quiet", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def load_cli_configuration(args: argparse.Namespace) -> Configuration:
    cfg = Configuration()
    if args.config:
        cfg = load_configuration(args.config, base=cfg)

    overrides: Dict[str, Any] = {}
    if args.db_path:
        overrides["db_path"] = args.db_path
    if args.root:
        overrides["root"] = args.root
    if args.track:
        overrides["files_to_check"] = tuple(args.track)
    if args.fixture_format:
        overrides["fixture_format"] = args.fixture_format
    if args.quiet:
        overrides["quiet"] = True
    if args.after_build:
        overrides["after_build"] = import_callable(args.after_build)
    if overrides:
        cfg = cfg.replace(**overrides)

    cfg = configuration_from_env(cfg)
    if not cfg.db_path:
        raise ConfigurationError("Provide --db or set FIXTURE_BUILDER_DB/DB_PATH.")
    return cfg


def make_build_procedure(args: argparse.Namespace) -> Callable[[FixtureBuilder], None]:
    user_build = import_callable(args.build) if args.build else None
    csv_tables = parse_csv_args(args.csv)
    if user_build is None and not csv_tables:
        raise ConfigurationError("Provide --build module:function and/or --csv TABLE=FILE.")

    csv_build = csv_build_procedure(csv_tables) if csv_tables else None

    def build(builder: FixtureBuilder) -> None:
        if csv_build is not None:
            csv_build(builder)
        if user_build is not None:
            user_build(builder)

    return build


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        cfg = load_cli_configuration(args)
        build = None if args.check else make_build_procedure(args)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_USAGE

    # quiet may also come from the configuration file
    set_quiet(cfg.quiet)

    try:
        with FixtureBuilder(cfg) as builder:
            if args.check:
                stale = builder.rebuild_needed()
                print("STALE" if stale else "UP_TO_DATE")
                return EXIT_STALE if stale else EXIT_OK

            result = builder.factory(build, force=args.force)
    except FixtureBuilderError as e:
        print(f"ERROR: [{e.code}] {e}", file=sys.stderr)
        return EXIT_USAGE

    if not cfg.quiet:
        print(f"STATUS: {result.state.value}")
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
