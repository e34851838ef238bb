"""
Tests for Configuration System.

This test suite covers:
1. Schema validation (type mismatch, constraint violation)
2. TOML generation from schema (with comments)
3. Source precedence: defaults, TOML, environment, overrides
4. Error cases
"""

import tempfile
import tomllib
from pathlib import Path

import pytest

from plugin_runtime.config import ConfigError, load_config, write_default_config
from plugin_runtime.config.schema import (
    RUNTIME_SCHEMA,
    ConfigField,
    SchemaError,
    ValidationError,
    generate_default_config,
    validate_config,
)
from plugin_runtime.config.toml_handler import TOMLError, generate_toml_from_schema, read_toml


class TestSchemaValidation:
    """Test schema field validation."""

    def test_field_default_type_mismatch(self):
        """ConfigField should reject default value that doesn't match type."""
        with pytest.raises(SchemaError, match="does not match type"):
            ConfigField(int, "not an int", "Bad default")

    def test_field_default_not_in_choices(self):
        with pytest.raises(SchemaError, match="not in choices"):
            ConfigField(str, "TRACE", "Level", choices=("INFO",))

    def test_numeric_range(self):
        field = ConfigField(int, 50, "Number with range", min=0, max=100)

        assert field.validate(0) == 0
        assert field.validate(100) == 100
        with pytest.raises(ValidationError, match="less than minimum"):
            field.validate(-1)
        with pytest.raises(ValidationError, match="greater than maximum"):
            field.validate(101)

    def test_bool_is_not_a_number(self):
        """bool values should be rejected for numeric fields."""
        with pytest.raises(ValidationError, match="Expected type int"):
            ConfigField(int, 0).validate(True)

    def test_int_accepted_for_float(self):
        value = ConfigField(float, 0.0, min=0).validate(3)

        assert value == 3.0
        assert isinstance(value, float)

    def test_string_length(self):
        field = ConfigField(str, "localhost", min=1)

        with pytest.raises(ValidationError, match="String length"):
            field.validate("")

    def test_choices(self):
        with pytest.raises(ValidationError, match="allowed choices"):
            RUNTIME_SCHEMA["log_format"].validate("xml")

    def test_partial_config_filled_with_defaults(self):
        validated = validate_config({"port": 9443}, RUNTIME_SCHEMA)

        assert validated == {**generate_default_config(RUNTIME_SCHEMA), "port": 9443}

    def test_unknown_field(self):
        with pytest.raises(ValidationError, match="Unknown configuration field"):
            validate_config({"prot": 1}, RUNTIME_SCHEMA)

    def test_field_name_in_error(self):
        with pytest.raises(ValidationError, match="Field 'id_length'"):
            validate_config({"id_length": 2}, RUNTIME_SCHEMA)


class TestTOMLGeneration:
    """Test TOML rendering from the schema."""

    def test_generated_toml_has_comments_and_defaults(self):
        content = generate_toml_from_schema(
            "runtime", RUNTIME_SCHEMA, generate_default_config(RUNTIME_SCHEMA)
        )

        assert "[runtime]" in content
        assert "# Seconds a plugin waits for a reply from the app (0 = forever)" in content
        assert "# Constraints: choices: console, json" in content
        assert tomllib.loads(content)["runtime"] == generate_default_config(RUNTIME_SCHEMA)

    def test_write_default_config_round_trips(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "runtime.toml"

            write_default_config(path)
            config = load_config(path, env={})

            assert config.to_dict() == generate_default_config(RUNTIME_SCHEMA)
            assert not config.has_port

    def test_read_missing_file(self):
        with pytest.raises(TOMLError, match="not found"):
            read_toml(Path("/nonexistent/runtime.toml"))


class TestLoadConfig:
    """Test configuration source precedence."""

    def _write(self, tmpdir, text):
        path = Path(tmpdir) / "runtime.toml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_defaults(self):
        config = load_config(env={})

        assert config.host == "localhost"
        assert config.port == 0
        assert config.reply_timeout == 0.0
        assert config.id_length == 5
        assert config.entry_path == "build/index.py"
        assert config.descriptor_path == "package.json"

    def test_port_from_environment(self):
        config = load_config(env={"PORT": "9443"})

        assert config.port == 9443
        assert config.has_port

    def test_precedence(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir, '[runtime]\nport = 1000\nhost = "10.0.0.1"\nlog_level = "DEBUG"\n'
            )

            from_file = load_config(path, env={})
            from_env = load_config(path, env={"PORT": "2000"})
            from_flags = load_config(path, env={"PORT": "2000"}, overrides={"port": 3000, "host": None})

            assert (from_file.port, from_file.host, from_file.log_level) == (1000, "10.0.0.1", "DEBUG")
            assert from_env.port == 2000
            assert from_flags.port == 3000
            assert from_flags.host == "10.0.0.1"

    def test_non_numeric_port(self):
        with pytest.raises(ConfigError, match="PORT must be an integer"):
            load_config(env={"PORT": "http"})

    def test_invalid_value(self):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(env={}, overrides={"port": 70000})

    def test_runtime_must_be_a_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, 'runtime = "nope"\n')

            with pytest.raises(ConfigError, match="must be a table"):
                load_config(path, env={})

    def test_malformed_toml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "[runtime\n")

            with pytest.raises(ConfigError, match="Failed to parse"):
                load_config(path, env={})
