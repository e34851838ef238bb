"""
Configuration Schema.

This module declares the runtime's configuration fields and validates values
against them.

Key features:
- Typed field definitions with min/max/choices constraints
- Partial configs: absent fields take their defaults
- ints accepted where floats are declared
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Base exception for schema-related errors."""

    pass


class ValidationError(SchemaError):
    """Raised when value validation fails."""

    pass


def _matches_type(value: Any, type_: type) -> bool:
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool) and type_ is not bool:
        return False
    if type_ is float:
        return isinstance(value, (int, float))
    return isinstance(value, type_)


@dataclass(frozen=True)
class ConfigField:
    """
    A configuration field with type and constraints.

    Attributes:
        type_: Expected type of the value
        default: Default value
        description: Human-readable description (written as a TOML comment)
        min: Minimum value (numbers) or minimum length (strings)
        max: Maximum value (numbers) or maximum length (strings)
        choices: Allowed values (optional)
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: tuple[Any, ...] | None = None

    def __post_init__(self):
        if not _matches_type(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )
        if self.choices is not None and self.default not in self.choices:
            raise SchemaError(f"Default value {self.default!r} not in choices {self.choices}")

    def validate(self, value: Any) -> Any:
        """
        Validate a value against this field's constraints.

        Returns:
            The value, converted to float for float fields

        Raises:
            ValidationError: If validation fails
        """
        if not _matches_type(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"Value {value!r} not in allowed choices {list(self.choices)}")

        if self.type_ in (int, float):
            if self.min is not None and value < self.min:
                raise ValidationError(f"Value {value} is less than minimum {self.min}")
            if self.max is not None and value > self.max:
                raise ValidationError(f"Value {value} is greater than maximum {self.max}")
            if self.type_ is float:
                value = float(value)

        if self.type_ is str:
            if self.min is not None and len(value) < self.min:
                raise ValidationError(
                    f"String length {len(value)} is less than minimum {self.min}"
                )
            if self.max is not None and len(value) > self.max:
                raise ValidationError(
                    f"String length {len(value)} is greater than maximum {self.max}"
                )

        return value


RUNTIME_SCHEMA: dict[str, ConfigField] = {
    "host": ConfigField(str, "localhost", "Host the app's websocket listens on", min=1),
    "port": ConfigField(int, 0, "Port of the app's websocket (required; 0 = unset)", min=0, max=65535),
    "log_level": ConfigField(
        str, "INFO", "Log level", choices=("DEBUG", "INFO", "WARNING", "ERROR")
    ),
    "log_format": ConfigField(str, "console", "Log output format", choices=("console", "json")),
    "reply_timeout": ConfigField(
        float, 0.0, "Seconds a plugin waits for a reply from the app (0 = forever)", min=0
    ),
    "id_length": ConfigField(int, 5, "Length of generated correlation IDs", min=4, max=32),
    "entry_path": ConfigField(
        str, "build/index.py", "Plugin entry file, relative to the plugin directory", min=1
    ),
    "descriptor_path": ConfigField(
        str, "package.json", "Plugin package descriptor, relative to the plugin directory", min=1
    ),
}


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> dict[str, Any]:
    """
    Validate a (possibly partial) configuration against a schema.

    Returns:
        A complete configuration with defaults filled in

    Raises:
        ValidationError: If a field is unknown or invalid
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    validated = {}
    for field_name, field in schema.items():
        if field_name not in config:
            validated[field_name] = field.default
            continue
        try:
            validated[field_name] = field.validate(config[field_name])
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e
    return validated


def generate_default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Default values for every field of a schema."""
    return {field_name: field.default for field_name, field in schema.items()}
