"""Tests for the error hierarchy and the error log."""

import stat

import pytest

from rlist.errors import (
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
    log_exception,
)

ALL_KINDS = [
    NotFound, DuplicateIdentifier, InvalidIdentifier, InvalidDateExpression,
    InvalidSortField, InvalidQuery, InvalidFormat, StorageIoFailure,
    InvalidEntry, ConfigError,
]


def test_exit_codes_are_distinct():
    codes = [kind.exit_code for kind in ALL_KINDS]
    assert len(set(codes)) == len(codes)
    assert all(code > 1 for code in codes)


def test_query_errors_share_a_base():
    assert issubclass(InvalidDateExpression, InvalidQuery)
    assert issubclass(InvalidSortField, InvalidQuery)


def test_messages_name_the_identifier():
    assert "a1" in str(NotFound("a1"))


class TestLogException:
    def _raise(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            return e

    def test_beside_store(self, tmp_path):
        path = log_exception(self._raise(), context="rlist list", store_path=tmp_path / "r.sqlite")
        assert path == tmp_path / "rlist-errors.log"
        text = path.read_text()
        assert "rlist list" in text
        assert "RuntimeError: boom" in text
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_appends(self, tmp_path):
        store = tmp_path / "r.sqlite"
        log_exception(self._raise(), store_path=store)
        path = log_exception(self._raise(), store_path=store)
        assert path.read_text().count("RuntimeError: boom") == 2

    def test_env_fallback(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RLIST_DB", str(tmp_path / "env" / "r.sqlite"))
        assert log_exception(self._raise()) == tmp_path / "env" / "rlist-errors.log"

    def test_home_fallback(self, tmp_path):
        assert log_exception(self._raise()) == tmp_path / "home" / "rlist" / "rlist-errors.log"


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_all_are_rlist_errors(kind):
    assert issubclass(kind, RlistError)
