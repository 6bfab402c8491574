"""
Plugin Manifest System.

This module provides manifest parsing and validation for plugins.

Key features:
- manifest.json parsing with field validation
- Package-style names (vendor/name) mapped to plugin identifiers
- Dotted numeric version comparison for update direction
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hookline.core.registry import InvalidArgumentError
from hookline.plugin.identity import derive_identifier

_NAME_RE = re.compile(r"^([a-z0-9][a-z0-9_-]*/)?[a-z0-9][a-z0-9_-]*$")
_NUMERIC_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


class ManifestError(Exception):
    """Base exception for manifest-related errors."""

    pass


class ValidationError(ManifestError):
    """Raised when manifest validation fails."""

    pass


def compare_versions(v1: str, v2: str) -> int | None:
    """
    Compare two dotted numeric version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2, None if either
        version is not purely dotted numeric (e.g. "1.0-beta")
    """
    if not (_NUMERIC_VERSION_RE.match(v1) and _NUMERIC_VERSION_RE.match(v2)):
        return None

    parts1 = [int(x) for x in v1.split(".")]
    parts2 = [int(x) for x in v2.split(".")]

    # Pad shorter version with zeros
    max_len = max(len(parts1), len(parts2))
    parts1.extend([0] * (max_len - len(parts1)))
    parts2.extend([0] * (max_len - len(parts2)))

    for p1, p2 in zip(parts1, parts2, strict=True):
        if p1 < p2:
            return -1
        elif p1 > p2:
            return 1
    return 0


@dataclass
class Manifest:
    """
    Represents a plugin manifest.

    Attributes:
        name: Package-style plugin name (e.g. "vendor/example-plugin")
        version: Plugin version
        main: Entry point file path, relative to the plugin directory
        description: Plugin description
        author: Plugin author
        raw_data: Raw manifest data
    """

    name: str
    version: str
    main: str
    description: str
    author: str
    raw_data: dict[str, Any]

    @property
    def identifier(self) -> str:
        return derive_identifier(self.name)


def parse_manifest(manifest_path: Path) -> Manifest:
    """
    Parse a manifest.json file.

    Args:
        manifest_path: Path to manifest.json

    Returns:
        Manifest object

    Raises:
        ManifestError: If file cannot be read or parsed
        ValidationError: If manifest is invalid
    """
    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"Manifest file not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse manifest JSON: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read manifest file: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Manifest must be a JSON object")

    validate_manifest_structure(data)

    return Manifest(
        name=data["name"],
        version=data["version"],
        main=data["main"],
        description=data.get("description", ""),
        author=data.get("author", ""),
        raw_data=data,
    )


def validate_manifest_structure(data: dict[str, Any]) -> None:
    """
    Validate manifest structure and required fields.

    Args:
        data: Parsed manifest data

    Raises:
        ValidationError: If manifest structure is invalid
    """
    required_fields = ["name", "version", "main"]
    for field in required_fields:
        if field not in data:
            raise ValidationError(f"Missing required field: {field}")

    # vendor/name or name, lowercase alphanumeric with hyphens and underscores
    name = data["name"]
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise ValidationError(
            f"Invalid plugin name: {name}. "
            f"Must be 'vendor/name' or 'name', lowercase alphanumeric with hyphens."
        )
    try:
        derive_identifier(name)
    except InvalidArgumentError as e:
        raise ValidationError(str(e)) from e

    version = data["version"]
    if not isinstance(version, str) or not version.strip():
        raise ValidationError(f"Invalid version: {version!r}. Must be a non-empty string")

    main = data["main"]
    if not isinstance(main, str) or not main.endswith(".py"):
        raise ValidationError(f"Invalid main entry point: {main}. Must be a .py file")

    if "description" in data and not isinstance(data["description"], str):
        raise ValidationError("'description' field must be a string")

    if "author" in data and not isinstance(data["author"], str):
        raise ValidationError("'author' field must be a string")
