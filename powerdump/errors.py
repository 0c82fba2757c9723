# powerdump/errors.py
from __future__ import annotations


class PowerDumpError(Exception):
    """
    Base class for all expected operational errors in powerdump.

    None of these are fatal to a report: sections catch them and print a note.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, log lines, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no device access yet)
# ---------------------------------------------------------------------------

class MetadataError(PowerDumpError):
    """
    Packaged or user-supplied YAML metadata is missing or inconsistent.

    Examples:
      - metadata directory does not exist
      - layout constants are not positive integers
      - fewer than two PMIC entries configured
    """
    code = "metadata_error"


# ---------------------------------------------------------------------------
# Input file errors
# ---------------------------------------------------------------------------

class LogNotFoundError(PowerDumpError):
    """
    A snapshot log (or other input file) does not exist.

    The report prints a short note and moves on.
    """
    code = "not_found"

    def __init__(self, path, **kw):
        super().__init__(f"Failed to access {path}", **kw)
        self.path = path


class LogOpenError(PowerDumpError):
    """
    A snapshot log exists but cannot be opened, sized or mapped
    (permissions, a directory in its place, mmap failure).
    """
    code = "open_failed"

    def __init__(self, path, **kw):
        super().__init__(f"Failed to open {path}", **kw)
        self.path = path


class SizeMismatchError(PowerDumpError):
    """
    Snapshot log length differs from record_size * record_count.

    Both sizes are kept so the report can print them.
    """
    code = "size_mismatch"

    def __init__(self, path, *, expected: int, actual: int):
        super().__init__(
            f"Invalid log size for {path}: expected {expected} bytes, got {actual}",
            details={"expected": expected, "actual": actual},
        )
        self.path = path
        self.expected = int(expected)
        self.actual = int(actual)


class MalformedAuxError(PowerDumpError):
    """
    Auxiliary text input (scale factor, rail names, PMIC name) is unreadable
    or does not parse.
    """
    code = "malformed_aux"
