"""
hookline Configuration - TOML-based settings for the kernel.

The [hookline] table of config/hookline.toml controls how dispatch behaves:

    [hookline]
    warn_on_failure = true
    copy_payloads = true
    default_priority = 0
    store_path = "config/plugins.toml"
    fragment_separator = ""

Example usage:
    from hookline.config import load_settings

    settings = load_settings(Path("config/hookline.toml"))
    dispatcher = Dispatcher(
        registry,
        copy_payloads=settings.copy_payloads,
        warn_on_failure=settings.warn_on_failure,
    )
"""

from dataclasses import dataclass
from pathlib import Path

from hookline.config.schema import ConfigField, ValidationError, validate_config
from hookline.config.toml_handler import (
    TOMLError,
    generate_toml_from_schema,
    read_toml,
)

SECTION = "hookline"

DEFAULT_CONFIG_FILE = Path("config/hookline.toml")

SCHEMA: dict[str, ConfigField] = {
    "warn_on_failure": ConfigField(
        bool, True, "Emit a RuntimeWarning for every handler that raises"
    ),
    "copy_payloads": ConfigField(
        bool, True, "Give each subscriber its own copy of the payload"
    ),
    "default_priority": ConfigField(
        int, 0, "Priority used when a subscription does not give one (lower runs first)"
    ),
    "store_path": ConfigField(
        str, "config/plugins.toml", "TOML file recording installed plugin versions", min=1
    ),
    "fragment_separator": ConfigField(
        str, "", "Separator placed between joined hook fragments"
    ),
}


class ConfigError(Exception):
    """Raised when the config file cannot be read or is invalid."""

    pass


@dataclass(frozen=True)
class Settings:
    """Validated kernel settings."""

    warn_on_failure: bool = True
    copy_payloads: bool = True
    default_priority: int = 0
    store_path: str = "config/plugins.toml"
    fragment_separator: str = ""


def load_settings(config_file: Path = DEFAULT_CONFIG_FILE) -> Settings:
    """
    Load settings from the [hookline] table of a TOML file.

    A missing file or a missing table yields the defaults.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid
    """
    config_file = Path(config_file)
    if not config_file.exists():
        return Settings()

    try:
        data = read_toml(config_file)
    except TOMLError as e:
        raise ConfigError(str(e)) from e

    section = data.get(SECTION, {})
    if not isinstance(section, dict):
        raise ConfigError(f"'{SECTION}' in {config_file} must be a table")

    try:
        validate_config(section, SCHEMA)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e

    return Settings(**section)


def write_default_config(config_file: Path = DEFAULT_CONFIG_FILE) -> None:
    """
    Write a commented config file with every default.

    Raises:
        ConfigError: If the file already exists or cannot be written
    """
    config_file = Path(config_file)
    if config_file.exists():
        raise ConfigError(f"Config file already exists: {config_file}")
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(generate_toml_from_schema(SECTION, SCHEMA), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write config file {config_file}: {e}") from e


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "SCHEMA",
    "Settings",
    "load_settings",
    "write_default_config",
]
