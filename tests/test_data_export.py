"""Tests for data export and import."""

import json
from datetime import date

import pytest

from rlist.codec import (
    EXPORT_FORMAT,
    EXPORT_VERSION,
    ImportMode,
    export_data,
    export_json,
    import_data,
    parse_document,
)
from rlist.errors import DuplicateIdentifier, InvalidFormat
from rlist.types import Entry


def _doc(*entries, **overrides):
    doc = {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "entries": list(entries),
    }
    doc.update(overrides)
    return doc


def _raw(identifier, **fields):
    raw = {
        "identifier": identifier,
        "url": f"https://example.com/{identifier}",
        "title": f"Title {identifier}",
        "author": None,
        "topics": [],
        "date_added": "2024-03-01",
    }
    raw.update(fields)
    return raw


class TestExport:
    def test_structure(self, seeded_store):
        data = export_data(seeded_store)
        assert data["format"] == "rlist-export"
        assert data["version"] == 1
        assert data["entry_count"] == 2
        assert data["exported_at"].endswith("Z")
        assert [e["identifier"] for e in data["entries"]] == ["a1", "b1"]
        assert data["entries"][1]["topics"] == ["go", "rust"]

    def test_empty_store(self, store):
        data = export_data(store)
        assert data["entry_count"] == 0
        assert data["entries"] == []

    def test_json_text(self, seeded_store):
        text = export_json(seeded_store)
        assert text.endswith("\n")
        assert json.loads(text)["entry_count"] == 2


class TestRoundTrip:
    def test_into_empty_store(self, seeded_store, empty_store):
        stats = import_data(empty_store, export_json(seeded_store))
        assert stats == {"imported": 2, "overwritten": 0}
        assert empty_store.list_all() == seeded_store.list_all()

    def test_empty_topics_and_missing_author_survive(self, store, empty_store):
        store.create(Entry("bare", "https://bare.example", "Bare", date_added=date(2023, 12, 31)))
        import_data(empty_store, export_data(store))
        got = empty_store.get("bare")
        assert got.topics == frozenset()
        assert got.author is None
        assert got.date_added == date(2023, 12, 31)


class TestParseDocument:
    @pytest.mark.parametrize("document", [
        "not json",
        "[]",
        json.dumps({"format": "something-else", "version": 1, "entries": []}),
        json.dumps({"format": EXPORT_FORMAT, "version": 99, "entries": []}),
        json.dumps({"format": EXPORT_FORMAT, "version": 1}),
    ])
    def test_bad_documents(self, document):
        with pytest.raises(InvalidFormat):
            parse_document(document)

    @pytest.mark.parametrize("raw", [
        "just a string",
        {"identifier": "a1"},
        _raw("a1", topics="rust"),
        _raw("a1", date_added="03/01/2024"),
        _raw("a1", date_added=20240301),
        _raw("bad id"),
        _raw("a1", title=""),
        _raw("a1", topics=["rust", ""]),
    ])
    def test_bad_entries(self, raw):
        with pytest.raises(InvalidFormat):
            parse_document(_doc(raw))

    def test_duplicate_within_document(self):
        with pytest.raises(InvalidFormat):
            parse_document(_doc(_raw("a1"), _raw("a1")))

    def test_accepts_bytes(self):
        entries = parse_document(json.dumps(_doc(_raw("a1"))).encode())
        assert entries[0].identifier == "a1"


class TestImport:
    def test_invalid_document_writes_nothing(self, store):
        with pytest.raises(InvalidFormat):
            import_data(store, _doc(_raw("a1"), _raw("b1", date_added="nope")))
        assert store.count() == 0

    def test_fail_on_duplicate_aborts_whole_import(self, seeded_store):
        before = seeded_store.list_all()
        doc = _doc(_raw("new1"), _raw("a1", title="Replaced"), _raw("new2"))
        with pytest.raises(DuplicateIdentifier):
            import_data(seeded_store, doc, ImportMode.FAIL_ON_DUPLICATE)
        assert seeded_store.list_all() == before

    def test_overwrite(self, seeded_store):
        doc = _doc(_raw("new1"), _raw("a1", title="Replaced"))
        stats = import_data(seeded_store, doc, "overwrite")
        assert stats == {"imported": 2, "overwritten": 1}
        assert seeded_store.get("a1").title == "Replaced"
        assert seeded_store.get("b1").title == "Post B"
        assert seeded_store.count() == 3

    def test_unknown_mode(self, store):
        with pytest.raises(InvalidFormat, match="merge"):
            import_data(store, _doc(_raw("a1")), "merge")
        assert store.count() == 0

    def test_non_utf8_bytes(self, store):
        with pytest.raises(InvalidFormat):
            import_data(store, b'{"format": "\x80"}')
