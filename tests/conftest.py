"""
Shared pytest fixtures for rlist tests.

Every store lives in tmp_path; nothing touches the user's home directory.
"""

from datetime import date

import pytest

from rlist.entry_store import EntryStore
from rlist.types import Entry


@pytest.fixture
def store(tmp_path):
    """An empty store in a temp directory, closed after the test."""
    s = EntryStore(tmp_path / "rlist.sqlite")
    yield s
    s.close()


@pytest.fixture
def empty_store(tmp_path):
    """A second empty store, for import round trips."""
    s = EntryStore(tmp_path / "fresh" / "rlist.sqlite")
    yield s
    s.close()


def _make_entry(identifier, url=None, title=None, author=None, topics=(), added=date(2024, 3, 1)):
    """Build an Entry with sensible defaults."""
    return Entry(
        identifier=identifier,
        url=url or f"https://example.com/{identifier}",
        title=title or f"Title {identifier}",
        author=author,
        topics=frozenset(topics),
        date_added=added,
    )


@pytest.fixture
def seeded_store(store):
    """The alice/bob reading list used across query and store tests."""
    store.create(_make_entry(
        "a1", url="https://a.example/1", title="Post A", author="alice",
        topics={"rust"}, added=date(2024, 3, 1),
    ))
    store.create(_make_entry(
        "b1", url="https://a.example/2", title="Post B", author="bob",
        topics={"rust", "go"}, added=date(2024, 3, 5),
    ))
    return store


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config and default store lookups inside tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("RLIST_DB", raising=False)
    monkeypatch.delenv("RLIST_CONFIG", raising=False)
