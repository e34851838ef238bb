"""
Plugin Runtime Configuration.

Sources, lowest to highest precedence:
1. Schema defaults
2. [runtime] table of a TOML file
3. Environment (PORT)
4. Explicit overrides (command-line flags)

Example usage:
    from plugin_runtime.config import load_config

    config = load_config(Path("runtime.toml"), overrides={"log_level": "DEBUG"})
    print(config.port)
"""

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from plugin_runtime.config.schema import (
    RUNTIME_SCHEMA,
    ValidationError,
    generate_default_config,
    validate_config,
)
from plugin_runtime.config.toml_handler import (
    TOMLError,
    generate_toml_from_schema,
    read_toml,
    write_toml,
)

SECTION = "runtime"

PORT_ENV_VAR = "PORT"


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


@dataclass(frozen=True)
class RuntimeConfig:
    """Validated runtime configuration. See RUNTIME_SCHEMA for field docs."""

    host: str
    port: int
    log_level: str
    log_format: str
    reply_timeout: float
    id_length: int
    entry_path: str
    descriptor_path: str

    @property
    def has_port(self) -> bool:
        return self.port > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(
    config_file: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RuntimeConfig:
    """
    Build the runtime configuration.

    Args:
        config_file: Optional TOML file with a [runtime] table
        env: Environment mapping (default: os.environ)
        overrides: Values taking precedence over everything else; None values are ignored

    Returns:
        RuntimeConfig instance

    Raises:
        ConfigError: If a source cannot be read or a value is invalid
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    if config_file is not None:
        try:
            data = read_toml(config_file)
        except TOMLError as e:
            raise ConfigError(str(e)) from e
        section = data.get(SECTION, {})
        if not isinstance(section, dict):
            raise ConfigError(f"[{SECTION}] in {config_file} must be a table")
        values.update(section)

    port = env.get(PORT_ENV_VAR)
    if port:
        try:
            values["port"] = int(port)
        except ValueError as e:
            raise ConfigError(f"{PORT_ENV_VAR} must be an integer, got {port!r}") from e

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        validated = validate_config(values, RUNTIME_SCHEMA)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return RuntimeConfig(**validated)


def write_default_config(config_file: Path) -> None:
    """
    Write a commented TOML file containing every field's default.

    Raises:
        ConfigError: If the file cannot be written
    """
    content = generate_toml_from_schema(
        SECTION, RUNTIME_SCHEMA, generate_default_config(RUNTIME_SCHEMA)
    )
    try:
        write_toml(config_file, content)
    except TOMLError as e:
        raise ConfigError(str(e)) from e


__all__ = ["ConfigError", "RuntimeConfig", "load_config", "write_default_config"]
