"""
TOML File I/O Handler.

- Parse TOML files using tomllib
- Write TOML files using tomlkit, with field descriptions as comments
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit

from plugin_runtime.config.schema import ConfigField


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


def generate_toml_from_schema(
    section: str, schema: dict[str, ConfigField], values: dict[str, Any]
) -> str:
    """
    Render one TOML table with a comment above every field.

    Args:
        section: Table name
        schema: Field declarations
        values: Field values (defaults used for absent fields)
    """
    doc = tomlkit.document()
    doc.add(tomlkit.comment("Plugin runtime configuration"))
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
            constraints.append(f"choices: {', '.join(map(str, field.choices))}")
        if constraints:
            table.add(tomlkit.comment(f"Constraints: {'; '.join(constraints)}"))
        table.add(field_name, values.get(field_name, field.default))
        table.add(tomlkit.nl())

    doc.add(section, table)
    return tomlkit.dumps(doc)


def write_toml(file_path: Path, content: str) -> None:
    """
    Write rendered TOML to a file, creating parent directories.

    Raises:
        TOMLError: If file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e
