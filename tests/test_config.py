"""Tests for configuration loading and saving."""

import logging
from datetime import date
from pathlib import Path

import pytest

from rlist.config import (
    DEFAULT_DATE_FORMAT,
    RlistConfig,
    date_format_is_valid,
    get_default_config_file,
    get_default_db_file,
    load_config,
    parse_config,
    resolve_db_file,
    save_config,
)
from rlist.errors import ConfigError


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        cfg = load_config()
        assert cfg.db_file == tmp_path / "home" / "rlist" / "rlist.sqlite"
        assert cfg.date_format == DEFAULT_DATE_FORMAT
        assert cfg.source is None

    def test_default_location(self, tmp_path):
        path = get_default_config_file()
        assert path == tmp_path / "xdg" / "rlist.toml"
        path.parent.mkdir(parents=True)
        path.write_text('[display]\ndate_format = "%d %b %Y"\n')
        cfg = load_config()
        assert cfg.date_format == "%d %b %Y"
        assert cfg.source == path

    def test_explicit_path(self, tmp_path):
        db = tmp_path / "lists" / "mine.sqlite"
        path = tmp_path / "custom.toml"
        path.write_text(f'[store]\ndb_file = "{db}"\n')
        assert load_config(path).db_file == db

    def test_explicit_path_missing(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[store\n")
        with pytest.raises(ConfigError):
            load_config(path)


class TestParseConfig:
    def test_relative_db_file_rejected(self):
        with pytest.raises(ConfigError):
            parse_config({"store": {"db_file": "relative/rlist.sqlite"}})

    def test_section_must_be_table(self):
        with pytest.raises(ConfigError):
            parse_config({"store": "oops"})

    def test_invalid_date_format_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="rlist"):
            cfg = parse_config({"display": {"date_format": "no directives"}})
        assert cfg.date_format == DEFAULT_DATE_FORMAT
        assert "not a valid format string" in caplog.text

    def test_missing_db_file_uses_default(self):
        assert parse_config({}).db_file == get_default_db_file()


class TestDateFormat:
    @pytest.mark.parametrize("fmt", ["%Y-%m-%d", "%d %b %Y", "added %j"])
    def test_valid(self, fmt):
        assert date_format_is_valid(fmt)

    @pytest.mark.parametrize("fmt", ["", "plain text"])
    def test_invalid(self, fmt):
        assert not date_format_is_valid(fmt)

    def test_format_date(self):
        cfg = RlistConfig(db_file=Path("/tmp/x.sqlite"), date_format="%d/%m/%Y")
        assert cfg.format_date(date(2024, 3, 5)) == "05/03/2024"


class TestSaveConfig:
    def test_round_trip(self, tmp_path):
        cfg = RlistConfig(db_file=tmp_path / "r.sqlite", date_format="%d %b %Y")
        path = tmp_path / "conf" / "rlist.toml"
        save_config(cfg, path)
        assert cfg.source == path
        loaded = load_config(path)
        assert loaded.db_file == cfg.db_file
        assert loaded.date_format == cfg.date_format


class TestResolveDbFile:
    def test_override_wins(self, tmp_path):
        cfg = RlistConfig(db_file=tmp_path / "from-config.sqlite")
        assert resolve_db_file(tmp_path / "override.sqlite", cfg) == tmp_path / "override.sqlite"

    def test_falls_back_to_config(self, tmp_path):
        cfg = RlistConfig(db_file=tmp_path / "from-config.sqlite")
        assert resolve_db_file(None, cfg) == tmp_path / "from-config.sqlite"
