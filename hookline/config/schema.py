"""
Configuration Schema.

Declares the typed fields of a config section and validates values
against them.

Key features:
- Type-checked fields with defaults (bool is never accepted as an int)
- Numeric range and string length bounds
- Enumerated choices
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Raised when a field definition itself is invalid."""

    pass


class ValidationError(SchemaError):
    """Raised when a value does not satisfy its field."""

    pass


def _matches_type(value: Any, type_: type) -> bool:
    if type_ is not bool and isinstance(value, bool):
        return False
    if type_ is float and isinstance(value, int):
        return True
    return isinstance(value, type_)


@dataclass(frozen=True)
class ConfigField:
    """
    A configuration field with type and constraints.

    Attributes:
        type_: Expected type of the value
        default: Default value
        description: Written as a comment into generated config files
        min: Minimum value (numbers) or minimum length (strings)
        max: Maximum value (numbers) or maximum length (strings)
        choices: Allowed values
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: tuple[Any, ...] | None = None

    def __post_init__(self):
        if (self.min is not None or self.max is not None) and self.type_ not in (
            int,
            float,
            str,
        ):
            raise SchemaError(
                f"min/max constraints only supported for int, float, str. Got {self.type_.__name__}"
            )
        try:
            self.validate(self.default)
        except ValidationError as e:
            raise SchemaError(f"Invalid default {self.default!r}: {e}") from e

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field.

        Raises:
            ValidationError: If validation fails
        """
        if not _matches_type(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"Value {value!r} not in allowed choices {list(self.choices)}")

        measured = len(value) if self.type_ is str else value
        what = "String length" if self.type_ is str else "Value"
        if self.min is not None and measured < self.min:
            raise ValidationError(f"{what} {measured} is less than minimum {self.min}")
        if self.max is not None and measured > self.max:
            raise ValidationError(f"{what} {measured} is greater than maximum {self.max}")


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> None:
    """
    Validate a (possibly partial) config section against a schema.

    Missing fields are allowed and fall back to their defaults; unknown
    fields are not.

    Raises:
        ValidationError: If validation fails
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    for field_name, value in config.items():
        try:
            schema[field_name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e


def generate_default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Default values for every field in a schema."""
    return {field_name: field.default for field_name, field in schema.items()}
