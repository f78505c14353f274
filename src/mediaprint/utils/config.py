"""Persistent mediaprint settings.

Settings are dotted keys (``fingerprint.db_path``, ``scan.workers``, ...)
resolved with the precedence CLI option > ``MEDIAPRINT_<KEY>`` environment
variable > ``$XDG_CONFIG_HOME/mediaprint/config.toml`` > built-in default.
The TOML file is read with tomli and written with tomli-w.
"""

import contextlib
import os
from pathlib import Path
from typing import Any, Optional, TypeVar, cast

import tomli
import tomli_w

_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
CONFIG_DIR = _xdg_config_home / "mediaprint"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Data directory for the local fingerprint database.
_xdg_data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
DATA_DIR = _xdg_data_home / "mediaprint"

ENV_PREFIX = "MEDIAPRINT_"
TRUTHY = {"1", "true", "yes", "on"}

T = TypeVar("T")


def default_db_path() -> str:
    """Default location of the local fingerprint database."""
    return str(DATA_DIR / "fingerprints.db")


def _read_config_file() -> dict[str, Any]:
    """Parsed config.toml as nested tables; empty when the file is absent."""
    if not CONFIG_FILE.exists():
        return {}
    with CONFIG_FILE.open("rb") as f:
        return tomli.load(f)


def _lookup_nested(data: dict[str, Any], dotted_key: str) -> Any | None:
    """Retrieve ``data["a"]["b"]`` for ``"a.b"``, or None if any level is missing."""
    current: Any = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def env_var_name(dotted_key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a dotted key to its environment variable.

    Example: "fingerprint.db_path" -> "MEDIAPRINT_FINGERPRINT_DB_PATH".
    """
    return prefix + dotted_key.replace(".", "_").upper()


def _coerce(value: Any, default: T) -> T:
    """Convert a raw env/config value to the type of *default*.

    Values that cannot be converted yield *default*. With a None default, numeric
    strings become int or float and anything else is returned unchanged.
    """
    if isinstance(default, bool):
        if isinstance(value, bool):
            return cast(T, value)
        if isinstance(value, str):
            return cast(T, value.strip().lower() in TRUTHY)
        return default
    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return cast(T, value)
        if isinstance(value, str):
            with contextlib.suppress(ValueError):
                return cast(T, int(value))
        return default
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cast(T, float(value))
        if isinstance(value, str):
            with contextlib.suppress(ValueError):
                return cast(T, float(value))
        return default
    if default is None and isinstance(value, str):
        if value.isdigit():
            return cast(T, int(value))
        with contextlib.suppress(ValueError):
            return cast(T, float(value))
    return cast(T, value)


def resolve_setting(
    key: str,
    *,
    default: T,
    cli_value: Optional[T] = None,
) -> T:
    """Look up a dotted *key* in the CLI value, the environment, then config.toml.

    Args:
        key: Dotted key path, e.g. ``"scan.workers"``.
        default: Value to fall back to; its type drives coercion.
        cli_value: Value passed from a CLI option (None when not provided).

    Returns:
        The resolved value.
    """
    if cli_value is not None:
        return cli_value

    env_var = env_var_name(key)
    if env_var in os.environ:
        return _coerce(os.environ[env_var], default)

    file_val = _lookup_nested(_read_config_file(), key)
    if file_val is not None:
        return _coerce(file_val, default)

    return default


def write_setting(key: str, value: Any) -> Path:
    """Persist a dotted *key* in config.toml, creating tables as needed.

    Returns:
        Path of the written config file.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    data = _read_config_file()
    *tables, leaf = key.split(".")
    current = data
    for table in tables:
        nested = current.get(table)
        if not isinstance(nested, dict):
            nested = {}
            current[table] = nested
        current = nested
    current[leaf] = value
    with CONFIG_FILE.open("wb") as f:
        tomli_w.dump(data, f)
    return CONFIG_FILE


def read_settings() -> dict[str, Any]:
    """Return the parsed contents of config.toml (empty when absent)."""
    return _read_config_file()
