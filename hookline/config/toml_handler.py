"""
TOML File I/O Handler.

Reads with tomllib, writes with tomlkit so hand-written comments and
layout survive a rewrite.
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from hookline.config.schema import ConfigField


class TOMLError(Exception):
    """Base exception for TOML-related errors."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Raises:
        TOMLError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def write_toml(file_path: Path, data: dict[str, Any]) -> None:
    """
    Write data to a TOML file, creating parent directories.

    When the file already exists it is loaded with tomlkit first and updated
    table by table, so comments outside the changed values are kept.

    Raises:
        TOMLError: If file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if file_path.exists():
            doc = tomlkit.parse(file_path.read_text(encoding="utf-8"))
            for key in [k for k in doc if k not in data]:
                del doc[key]
            for key, value in data.items():
                if isinstance(value, dict) and isinstance(doc.get(key), dict):
                    table = doc[key]
                    for sub in [k for k in table if k not in value]:
                        del table[sub]
                    for sub, sub_value in value.items():
                        table[sub] = sub_value
                else:
                    doc[key] = value
        else:
            doc = tomlkit.document()
            doc.update(data)

        with open(file_path, "w", encoding="utf-8") as f:
            tomlkit.dump(doc, f)
    except (OSError, TOMLKitError) as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def generate_toml_from_schema(
    section: str, schema: dict[str, ConfigField], values: dict[str, Any] | None = None
) -> str:
    """
    Render one config section with a comment per field.

    Args:
        section: Table name
        schema: Field definitions
        values: Values to write; defaults are used for missing fields

    Returns:
        TOML text
    """
    values = values or {}
    doc = tomlkit.document()
    doc.add(tomlkit.comment(f"{section} configuration"))
    doc.add(tomlkit.nl())

    table = tomlkit.table()
    for field_name, field in schema.items():
        if field.description:
            table.add(tomlkit.comment(field.description))

        constraints = []
        if field.min is not None:
            constraints.append(f"min: {field.min}")
        if field.max is not None:
            constraints.append(f"max: {field.max}")
        if field.choices is not None:
            constraints.append(f"choices: {list(field.choices)}")
        if constraints:
            table.add(tomlkit.comment(f"Constraints: {', '.join(constraints)}"))

        table.add(field_name, values.get(field_name, field.default))
        table.add(tomlkit.nl())

    doc.add(section, table)
    return tomlkit.dumps(doc)
