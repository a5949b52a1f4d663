"""
Export and import of a whole reading list.

The export is a single JSON document::

    {"format": "rlist-export", "version": 1, "exported_at": "...",
     "entry_count": N,
     "entries": [{"identifier": "...", "url": "...", "title": "...",
                  "author": null, "topics": [...], "date_added": "YYYY-MM-DD"}]}

Imports are all-or-nothing: the document is parsed and checked in full
before anything is written, and the write itself is one transaction.
"""

import json
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Union

from .entry_store import EntryStore
from .errors import InvalidEntry, InvalidFormat, InvalidIdentifier
from .types import Entry

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "rlist-export"
EXPORT_VERSION = 1

_ENTRY_KEYS = ("identifier", "url", "title", "author", "topics", "date_added")


class ImportMode(Enum):
    FAIL_ON_DUPLICATE = "fail-on-duplicate"
    OVERWRITE = "overwrite"


def export_data(store: EntryStore) -> dict:
    """Export every entry in the store as a plain dict."""
    entries = store.list_all()
    return {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "exported_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "entry_count": len(entries),
        "entries": [e.to_dict() for e in entries],
    }


def export_json(store: EntryStore) -> str:
    """Export the store as indented JSON text."""
    return json.dumps(export_data(store), indent=2, ensure_ascii=False) + "\n"


def _parse_entry(raw: Any, position: int) -> Entry:
    if not isinstance(raw, dict):
        raise InvalidFormat(f"Entry #{position} is not an object")
    missing = [k for k in _ENTRY_KEYS if k not in raw]
    if missing:
        raise InvalidFormat(f"Entry #{position} is missing: {', '.join(missing)}")
    topics = raw["topics"]
    if not isinstance(topics, list):
        raise InvalidFormat(f"Entry #{position}: topics must be a list")
    if not isinstance(raw["date_added"], str):
        raise InvalidFormat(f"Entry #{position}: date_added must be a YYYY-MM-DD string")
    try:
        added = date.fromisoformat(raw["date_added"])
    except ValueError:
        raise InvalidFormat(
            f"Entry #{position}: invalid date_added {raw['date_added']!r}"
        ) from None
    try:
        return Entry(
            identifier=raw["identifier"],
            url=raw["url"],
            title=raw["title"],
            author=raw["author"],
            topics=frozenset(topics),
            date_added=added,
        )
    except (InvalidEntry, InvalidIdentifier, TypeError) as e:
        raise InvalidFormat(f"Entry #{position}: {e}") from e


def parse_document(document: Union[str, bytes, dict]) -> list[Entry]:
    """
    Parse and validate an export document.

    Raises:
        InvalidFormat: anything about the document is wrong
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidFormat(f"Not a JSON document: {e}") from e
    if not isinstance(document, dict):
        raise InvalidFormat("Export document must be a JSON object")
    if document.get("format") != EXPORT_FORMAT:
        raise InvalidFormat(f"Invalid export format (expected '{EXPORT_FORMAT}')")
    version = document.get("version")
    if not isinstance(version, int) or version < 1 or version > EXPORT_VERSION:
        raise InvalidFormat(
            f"Export format version {version!r} is not supported "
            f"(this version supports up to {EXPORT_VERSION})"
        )
    raw_entries = document.get("entries")
    if not isinstance(raw_entries, list):
        raise InvalidFormat("Export document has no 'entries' list")

    entries = [_parse_entry(raw, n) for n, raw in enumerate(raw_entries, start=1)]

    seen: set[str] = set()
    for entry in entries:
        if entry.identifier in seen:
            raise InvalidFormat(f"Identifier {entry.identifier!r} appears more than once")
        seen.add(entry.identifier)
    return entries


def import_data(
    store: EntryStore,
    document: Union[str, bytes, dict],
    mode: Union[ImportMode, str] = ImportMode.FAIL_ON_DUPLICATE,
) -> dict:
    """
    Import an export document into the store.

    Args:
        store: Target store
        document: Export document (parsed dict, JSON text or raw bytes)
        mode: "fail-on-duplicate" aborts on the first identifier already in
            the store; "overwrite" replaces such entries

    Raises:
        InvalidFormat: unknown mode, or the document is malformed
        DuplicateIdentifier: fail-on-duplicate mode hit an existing entry

    Returns:
        Dict with stats: {imported, overwritten}
    """
    try:
        mode = ImportMode(mode)
    except ValueError:
        raise InvalidFormat(
            f"Unknown import mode {mode!r}; must be one of: {', '.join(m.value for m in ImportMode)}"
        ) from None

    entries = parse_document(document)
    stats = store.import_batch(entries, overwrite=mode is ImportMode.OVERWRITE)
    logger.info("Import (%s): %d entries", mode.value, stats["imported"])
    return stats
