"""Configuration file handling.

The TOML file at ~/.config/estmail/config.toml is sparse: every section and
key may be omitted. get_settings() turns whatever is present into a frozen
SearchSettings with defaults filled in.

Usage:
    from estmail.config import get_settings, load_config

    settings = get_settings(load_config())
    print(settings.index_directory)
"""

import tomllib

import tomli_w

from . import paths
from .paths import CONFIG_FILE
from .schema import EstmailConfig
from .settings import RemoteGroupRule, SearchSettings, get_settings
from .template import CONFIG_TEMPLATE

__all__ = [
    "load_config",
    "save_config",
    "init_config",
    "get_settings",
    "set_config_value",
    "RemoteGroupRule",
    "SearchSettings",
    "CONFIG_FILE",
]

# Keys converted by `estmail config set`; anything else is stored as a string
INT_FIELDS = frozenset({"large_result_threshold", "refresh_interval"})
BOOL_FIELDS = frozenset({"highlight", "normalize", "case_sensitive"})
LIST_FIELDS = frozenset(
    {
        "prefix",
        "additional_args",
        "builder_args",
        "target_directories",
        "field_keywords",
        "mailboxes",
    }
)

TRUE_WORDS = ("true", "yes", "on", "1")
FALSE_WORDS = ("false", "no", "off", "0")

# Parsed file, kept for the rest of the process.
_cached_config: EstmailConfig | None = None


def load_config(*, force_reload: bool = False) -> EstmailConfig:
    """Read the config file, or return the cached copy.

    A missing file is not an error; it reads as an empty config.

    Args:
        force_reload: Read the file again even if it was already loaded.

    Returns:
        The parsed TOML document.
    """
    global _cached_config

    if _cached_config is None or force_reload:
        config_file = paths.CONFIG_FILE
        if config_file.exists():
            with open(config_file, "rb") as f:
                _cached_config = tomllib.load(f)
        else:
            _cached_config = {}

    return _cached_config


def save_config(config: EstmailConfig) -> None:
    """Write the config file and replace the cached copy."""
    global _cached_config

    config_file = paths.CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "wb") as f:
        tomli_w.dump(config, f)

    _cached_config = config


def init_config(*, overwrite: bool = False) -> bool:
    """Write the commented template config file.

    Args:
        overwrite: Replace an existing file.

    Returns:
        False if a file already existed and was left alone.
    """
    config_file = paths.CONFIG_FILE
    if config_file.exists() and not overwrite:
        return False

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(CONFIG_TEMPLATE)
    return True


def set_config_value(key: str, value: str) -> None:
    """Set one value addressed as "<section>.<key>" and save the file.

    Examples:
        set_config_value("index.refresh_interval", "7200")
        set_config_value("paths.case_sensitive", "false")
        set_config_value("index.target_directories", "~/Mail ~/News")

    Raises:
        ValueError: If the value does not fit the key's type, or a parent
            of the key is not a table.
    """
    config = load_config(force_reload=True)

    *sections, name = key.split(".")
    table: dict = config
    for section in sections:
        table = table.setdefault(section, {})
        if not isinstance(table, dict):
            raise ValueError(f"{section} is not a table")

    table[name] = _convert_value(name, value)
    save_config(config)


def _parse_bool(key: str, value: str) -> bool:
    word = value.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValueError(f"{key} expects true or false, got {value!r}")


def _convert_value(key: str, value: str) -> str | int | bool | list[str]:
    """Convert a command-line string to the type stored under key.

    List fields are split on whitespace.
    """
    if key in INT_FIELDS:
        return int(value)
    if key in BOOL_FIELDS:
        return _parse_bool(key, value)
    if key in LIST_FIELDS:
        return value.split()
    return value
