"""
Configuration management for rlist.

The configuration is an optional TOML file::

    [store]
    db_file = "/home/me/rlist/rlist.sqlite"

    [display]
    date_format = "%d %b %Y"

The store location is resolved in priority order: explicit --db override,
then ``db_file`` from the config file, then the default path.
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import tomli_w

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "rlist.toml"
DEFAULT_DATE_FORMAT = "%Y-%m-%d"


def get_default_db_file() -> Path:
    """Default store location: ~/rlist/rlist.sqlite."""
    return Path.home() / "rlist" / "rlist.sqlite"


def get_config_dir() -> Path:
    """Config directory: $XDG_CONFIG_HOME, else ~/.config."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def get_default_config_file() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def date_format_is_valid(fmt: str) -> bool:
    """Check a strftime format renders and contains at least one directive."""
    if not fmt or "%" not in fmt:
        return False
    try:
        rendered = date(2000, 1, 2).strftime(fmt)
    except ValueError:
        return False
    return rendered != fmt


@dataclass
class RlistConfig:
    """Resolved configuration."""
    db_file: Path
    date_format: str = DEFAULT_DATE_FORMAT
    source: Optional[Path] = None

    def format_date(self, value: date) -> str:
        return value.strftime(self.date_format)


def default_config() -> RlistConfig:
    return RlistConfig(db_file=get_default_db_file())


def parse_config(data: dict, source: Optional[Path] = None) -> RlistConfig:
    """
    Build a config from parsed TOML.

    Raises:
        ConfigError: db_file is not an absolute path
    """
    store = data.get("store", {})
    display = data.get("display", {})
    if not isinstance(store, dict) or not isinstance(display, dict):
        raise ConfigError("Config sections [store] and [display] must be tables")

    db_file = store.get("db_file")
    if db_file is None:
        db_path = get_default_db_file()
    else:
        db_path = Path(str(db_file)).expanduser()
        if not db_path.is_absolute():
            raise ConfigError(
                "The db_file config option must contain an absolute path "
                "to the desired reading list location"
            )

    date_format = display.get("date_format", DEFAULT_DATE_FORMAT)
    if not isinstance(date_format, str) or not date_format_is_valid(date_format):
        logger.warning(
            "The date_format in %s is not a valid format string, "
            "reverting to %s", source or "your config", DEFAULT_DATE_FORMAT,
        )
        date_format = DEFAULT_DATE_FORMAT

    return RlistConfig(db_file=db_path, date_format=date_format, source=source)


def load_config(config_path: Optional[Path] = None) -> RlistConfig:
    """
    Load configuration.

    An explicit path must exist. Without one, the default location is
    used if present, else built-in defaults.

    Raises:
        ConfigError: If the file is missing (explicit path) or invalid
    """
    if config_path is None:
        config_path = get_default_config_file()
        if not config_path.exists():
            return default_config()
    elif not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read rlist config file {config_path}: {e}") from e

    logger.debug("Loaded config from %s", config_path)
    return parse_config(data, source=config_path)


def save_config(config: RlistConfig, config_path: Path) -> None:
    """
    Save configuration as TOML.

    Creates the directory if it doesn't exist.
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "store": {"db_file": str(config.db_file)},
        "display": {"date_format": config.date_format},
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
    config.source = config_path


def resolve_db_file(override: Optional[Path], config: RlistConfig) -> Path:
    """Explicit override first, then the config's db_file."""
    if override is not None:
        return Path(override).expanduser()
    return config.db_file
