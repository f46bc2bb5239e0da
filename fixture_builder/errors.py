# fixture_builder/errors.py
from __future__ import annotations


# ----------------------------
# Error taxonomy
# ----------------------------

class FixtureBuilderError(Exception):
    code: str = "fixture_builder_error"

class InvalidArgumentError(FixtureBuilderError, ValueError):
    code = "invalid_argument"

class DuplicateNameError(FixtureBuilderError):
    code = "duplicate_name"

class TrackedFileError(FixtureBuilderError, OSError):
    code = "tracked_file_unreadable"

class OutputWriteError(FixtureBuilderError, OSError):
    code = "output_unwritable"

class ManifestParseError(FixtureBuilderError, ValueError):
    code = "manifest_parse_error"

class ConfigurationError(FixtureBuilderError, ValueError):
    code = "configuration_error"

class UnsafeIdentifierError(FixtureBuilderError, ValueError):
    code = "unsafe_identifier"

class BuildProcedureError(FixtureBuilderError):
    """
    Raised (or returned on a BuildResult) when the user-supplied build
    procedure fails. The original exception is kept as __cause__.
    """
    code = "build_procedure_failed"
