"""Tests for identifier generation and validation."""

import random
from datetime import date

import pytest

from rlist.entry_store import EntryStore
from rlist.errors import DuplicateIdentifier, InvalidIdentifier
from rlist.ids import IDENTIFIER_LENGTH, IdentifierGenerator, _base36, derive_identifier
from rlist.types import Entry, validate_identifier


class TestValidateIdentifier:
    @pytest.mark.parametrize("identifier", ["a1", "post-a", "my_post", "ABC-123_x"])
    def test_accepts_safe_characters(self, identifier):
        assert validate_identifier(identifier) == identifier

    @pytest.mark.parametrize("identifier", ["", "has space", "a/b", "semi;colon", "dot.ted", "ünï"])
    def test_rejects_unsafe(self, identifier):
        with pytest.raises(InvalidIdentifier):
            validate_identifier(identifier)

    def test_rejects_too_long(self):
        with pytest.raises(InvalidIdentifier):
            validate_identifier("x" * 65)


class TestBase36:
    def test_zero(self):
        assert _base36(0) == "0"

    def test_known_values(self):
        assert _base36(35) == "z"
        assert _base36(36) == "10"
        assert _base36(36 ** 2 - 1) == "zz"


class TestDeriveIdentifier:
    def test_fixed_length_and_alphabet(self):
        ident = derive_identifier("https://a.example/1", date(2024, 3, 1))
        assert len(ident) == IDENTIFIER_LENGTH
        assert all(c in "0123456789abcdefghijklmnopqrstuvwxyz" for c in ident)
        validate_identifier(ident)

    def test_deterministic(self):
        d = date(2024, 3, 1)
        assert derive_identifier("https://a.example/1", d) == derive_identifier("https://a.example/1", d)

    def test_depends_on_url_and_date(self):
        base = derive_identifier("https://a.example/1", date(2024, 3, 1))
        assert derive_identifier("https://a.example/2", date(2024, 3, 1)) != base
        assert derive_identifier("https://a.example/1", date(2024, 3, 2)) != base

    def test_salt_changes_result(self):
        d = date(2024, 3, 1)
        assert derive_identifier("u", d, salt="x") != derive_identifier("u", d)


class TestIdentifierGenerator:
    def test_candidate_is_validated_and_used(self):
        gen = IdentifierGenerator()
        assert gen.generate("https://a.example/1", date(2024, 3, 1), candidate="a1") == "a1"

    def test_bad_candidate_rejected(self):
        with pytest.raises(InvalidIdentifier):
            IdentifierGenerator().generate("u", date(2024, 3, 1), candidate="bad id")

    def test_empty_candidate_rejected(self):
        with pytest.raises(InvalidIdentifier):
            IdentifierGenerator().generate("u", date(2024, 3, 1), candidate="")

    def test_no_candidate_derives(self):
        d = date(2024, 3, 1)
        assert IdentifierGenerator().generate("u", d) == derive_identifier("u", d)

    def test_seeded_random_source_is_reproducible(self):
        d = date(2024, 3, 1)
        first = IdentifierGenerator(random.Random(42)).generate("u", d)
        second = IdentifierGenerator(random.Random(42)).generate("u", d)
        assert first == second
        assert first != derive_identifier("u", d)

    def test_random_source_separates_same_url_same_day(self):
        gen = IdentifierGenerator(random.Random(7))
        d = date(2024, 3, 1)
        assert gen.generate("u", d) != gen.generate("u", d)


class TestDuplicateAdds:
    def test_same_url_same_day_collides(self, tmp_path):
        """Re-adding a URL on the same day surfaces as DuplicateIdentifier."""
        d = date(2024, 3, 5)
        gen = IdentifierGenerator()
        with EntryStore(tmp_path / "s.sqlite") as store:
            store.create(Entry(gen.generate("https://x.example", d), "https://x.example", "First", date_added=d))
            with pytest.raises(DuplicateIdentifier):
                store.create(Entry(gen.generate("https://x.example", d), "https://x.example", "Again", date_added=d))
            assert store.count() == 1
