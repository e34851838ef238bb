"""
Tests for package descriptor parsing.
"""

import json
import tempfile
from pathlib import Path

import pytest

from plugin_runtime.plugin.manifest import (
    DEFAULT_NAME,
    DEFAULT_VERSION,
    ManifestError,
    ValidationError,
    parse_descriptor,
)


def _write(tmpdir: str, content: str) -> Path:
    path = Path(tmpdir) / "package.json"
    path.write_text(content, encoding="utf-8")
    return path


class TestDescriptorParsing:
    """Test descriptor parsing and validation."""

    def test_parse_valid_descriptor(self):
        """Should parse name and version."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(tmpdir, json.dumps({"name": "x", "version": "1.0.0", "main": "build/index.js"}))

            descriptor = parse_descriptor(path)

            assert descriptor.name == "x"
            assert descriptor.version == "1.0.0"
            assert descriptor.display_name == "x"
            assert descriptor.display_version == "1.0.0"
            assert descriptor.raw_data["main"] == "build/index.js"

    def test_missing_fields_use_defaults_for_display(self):
        """Absent name/version should fall back to defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            descriptor = parse_descriptor(_write(tmpdir, "{}"))

            assert descriptor.name is None
            assert descriptor.version is None
            assert descriptor.display_name == DEFAULT_NAME
            assert descriptor.display_version == DEFAULT_VERSION

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ManifestError, match="not found"):
                parse_descriptor(Path(tmpdir) / "package.json")

    def test_malformed_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ManifestError, match="Failed to parse"):
                parse_descriptor(_write(tmpdir, "{\"name\": "))

    def test_non_object(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValidationError, match="JSON object"):
                parse_descriptor(_write(tmpdir, "[]"))

    def test_non_string_version(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValidationError, match="'version'"):
                parse_descriptor(_write(tmpdir, json.dumps({"name": "x", "version": 1})))
