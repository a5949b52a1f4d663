"""
rlist: a personal reading list

Entries (URL, title, author, topics, date added) live in a single SQLite
file under a short unique identifier.

Quick Start:
    from pathlib import Path
    from rlist import Entry, EntryStore, FilterSpec, run_query

    with EntryStore(Path("~/rlist/rlist.sqlite").expanduser()) as store:
        store.create(Entry("a1", "https://a.example/1", "Post A", topics={"rust"}))
        for entry in run_query(store, FilterSpec(topics={"rust"})):
            print(entry.identifier, entry.title)

CLI Usage:
    rlist add https://a.example/1 "Post A" --id a1 -t rust
    rlist list author:alice date:today
    rlist data export backup.json

Environment Variables:
    RLIST_DB       - Override the store file location
    RLIST_CONFIG   - Override the config file location
    RLIST_VERBOSE  - Set to 1 for debug logging
"""

from .codec import ImportMode, export_data, export_json, import_data
from .entry_store import EntryStore
from .errors import (
    ConfigError,
    DuplicateIdentifier,
    InvalidDateExpression,
    InvalidEntry,
    InvalidFormat,
    InvalidIdentifier,
    InvalidQuery,
    InvalidSortField,
    NotFound,
    RlistError,
    StorageIoFailure,
)
from .ids import IdentifierGenerator, derive_identifier
from .query import FilterSpec, Query, SortField, run_query
from .types import Entry, EntryPatch, FieldPatch, TopicsPatch

__version__ = "0.1.0"
__all__ = [
    "Entry",
    "EntryPatch",
    "FieldPatch",
    "TopicsPatch",
    "EntryStore",
    "IdentifierGenerator",
    "derive_identifier",
    "FilterSpec",
    "Query",
    "SortField",
    "run_query",
    "ImportMode",
    "export_data",
    "export_json",
    "import_data",
    "RlistError",
    "NotFound",
    "DuplicateIdentifier",
    "InvalidIdentifier",
    "InvalidQuery",
    "InvalidDateExpression",
    "InvalidSortField",
    "InvalidFormat",
    "InvalidEntry",
    "StorageIoFailure",
    "ConfigError",
]
