"""
Plugin Package Descriptor.

This module parses the package.json shipped in every plugin directory.

Key features:
- JSON parsing with descriptive errors
- Lenient field validation (name/version may be absent)
- Defaults applied at reply time, not at parse time
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_NAME = "unknown"
DEFAULT_VERSION = "0.0.1"


class ManifestError(Exception):
    """Base exception for descriptor-related errors."""

    pass


class ValidationError(ManifestError):
    """Raised when descriptor validation fails."""

    pass


@dataclass(frozen=True)
class PackageDescriptor:
    """
    Represents a plugin package descriptor.

    Attributes:
        name: Package name, None if absent
        version: Package version, None if absent
        description: Package description
        raw_data: Raw descriptor data
    """

    name: str | None
    version: str | None
    description: str
    raw_data: dict[str, Any]

    @property
    def display_name(self) -> str:
        return self.name if self.name else DEFAULT_NAME

    @property
    def display_version(self) -> str:
        return self.version if self.version else DEFAULT_VERSION


def parse_descriptor(descriptor_path: Path) -> PackageDescriptor:
    """
    Parse a package.json file.

    Args:
        descriptor_path: Path to package.json

    Returns:
        PackageDescriptor object

    Raises:
        ManifestError: If file cannot be read or parsed
        ValidationError: If descriptor is invalid
    """
    try:
        with open(descriptor_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"Package descriptor not found: {descriptor_path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse package descriptor JSON: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read package descriptor: {e}") from e

    validate_descriptor_structure(data)

    return PackageDescriptor(
        name=data.get("name"),
        version=data.get("version"),
        description=data.get("description", ""),
        raw_data=data,
    )


def validate_descriptor_structure(data: Any) -> None:
    """
    Validate descriptor structure.

    Args:
        data: Parsed descriptor data

    Raises:
        ValidationError: If descriptor structure is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(
            f"Package descriptor must be a JSON object, got {type(data).__name__}"
        )

    for field in ("name", "version", "description"):
        if field in data and not isinstance(data[field], str):
            raise ValidationError(f"'{field}' field must be a string")
