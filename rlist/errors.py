"""
Error kinds raised by the reading-list core, and error logging for the CLI.

Every failure the core can report has its own exception class with a
distinct exit code, so the CLI can map it without inspecting messages.
Unexpected failures are logged with full stack traces while the user
sees a clean one-line message.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class RlistError(Exception):
    """Base class for all reading-list errors."""

    exit_code = 1


class NotFound(RlistError):
    exit_code = 3

    def __init__(self, identifier: str):
        super().__init__(f"No entry with identifier {identifier!r} in your reading list")
        self.identifier = identifier


class DuplicateIdentifier(RlistError):
    exit_code = 4

    def __init__(self, identifier: str):
        super().__init__(
            f"Your reading list already contains an entry with identifier {identifier!r}"
        )
        self.identifier = identifier


class InvalidIdentifier(RlistError):
    exit_code = 5


class InvalidQuery(RlistError):
    """A filter specification that cannot be evaluated."""

    exit_code = 8


class InvalidDateExpression(InvalidQuery):
    exit_code = 6

    def __init__(self, expression: str):
        super().__init__(
            f"Invalid date expression {expression!r} "
            "(expected 'today', 'yesterday' or DD-MM-YY)"
        )
        self.expression = expression


class InvalidSortField(InvalidQuery):
    exit_code = 7

    def __init__(self, field: str, allowed: tuple[str, ...] = ()):
        msg = f"Cannot sort by {field!r}"
        if allowed:
            msg += f" (choose from: {', '.join(allowed)})"
        super().__init__(msg)
        self.field = field


class InvalidFormat(RlistError):
    """Malformed import document."""

    exit_code = 9


class StorageIoFailure(RlistError):
    """The store file is unavailable or corrupt."""

    exit_code = 10


class InvalidEntry(RlistError):
    """Entry fields that break the record invariants (empty url, blank topic...)."""

    exit_code = 11


class ConfigError(RlistError):
    exit_code = 12


def _error_log_path(store_path: Optional[Path] = None) -> Path:
    """Resolve error log path, respecting RLIST_DB."""
    if store_path is not None:
        return Path(store_path).parent / "rlist-errors.log"
    db = os.environ.get("RLIST_DB")
    if db:
        return Path(db).parent / "rlist-errors.log"
    return Path.home() / "rlist" / "rlist-errors.log"


def log_exception(exc: Exception, context: str = "", store_path: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        store_path: Store file the invocation was using, if known

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(store_path)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # can't write the error log, nothing more to do
    return log_path
