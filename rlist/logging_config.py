"""
Logging configuration for rlist.

Quiet by default: only warnings reach stderr. The operations log beside
the store file records every change regardless of verbosity.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging for normal CLI use.

    Args:
        quiet: If True, only warnings and errors are shown.
    """
    if quiet:
        warnings.filterwarnings("ignore", category=DeprecationWarning)
    logging.getLogger("rlist").setLevel(logging.WARNING if quiet else logging.INFO)
    logging.captureWarnings(True)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.WARNING)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root_logger.addHandler(handler)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    stderr_handlers = [h for h in root_logger.handlers
                       if isinstance(h, logging.StreamHandler)
                       and getattr(h, "stream", None) is sys.stderr]
    for h in stderr_handlers:
        h.setLevel(logging.DEBUG)
    if not stderr_handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("rlist").setLevel(logging.DEBUG)


def configure_ops_log(db_file: Path) -> Optional[RotatingFileHandler]:
    """Configure a persistent operations log for a store.

    Writes to rlist-ops.log next to the store file using a rotating file
    handler (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed when the store is closed,
    or None if the log file cannot be opened.
    """
    log_path = Path(db_file).parent / "rlist-ops.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=1_000_000,
            backupCount=3,
        )
    except OSError:
        return None
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    rlist_logger = logging.getLogger("rlist")
    rlist_logger.addHandler(handler)
    # Let INFO through to the ops log even in quiet mode; the stderr
    # handler keeps its own WARNING threshold
    if rlist_logger.level == logging.NOTSET or rlist_logger.level > logging.INFO:
        rlist_logger.setLevel(logging.INFO)

    return handler


def remove_ops_log(handler: Optional[logging.Handler]) -> None:
    if handler is None:
        return
    logging.getLogger("rlist").removeHandler(handler)
    handler.close()
