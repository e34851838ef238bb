"""
Tests for form input helpers and plugin definitions.
"""

import pytest

from plugin_runtime.plugin.definition import DefinitionError, PluginDefinition, strip_callbacks
from plugin_runtime.plugin.forms import (
    apply_form_input_defaults,
    migrate_template_function_select_options,
)


class TestFormInputDefaults:
    """Test apply_form_input_defaults()."""

    def test_fills_missing_keys(self):
        inputs = [
            {"type": "text", "name": "a", "defaultValue": "A"},
            {"type": "text", "name": "b", "defaultValue": "B"},
            {"type": "text", "name": "c", "defaultValue": "C"},
        ]
        values = {"a": "given", "b": None}

        result = apply_form_input_defaults(inputs, values)

        assert result is values
        assert values == {"a": "given", "b": None, "c": "C"}

    def test_keeps_falsy_values(self):
        inputs = [
            {"type": "checkbox", "name": "flag", "defaultValue": "true"},
            {"type": "text", "name": "text", "defaultValue": "x"},
        ]
        values = {"flag": False, "text": ""}

        apply_form_input_defaults(inputs, values)

        assert values == {"flag": False, "text": ""}

    def test_recurses_into_groups(self):
        inputs = [
            {
                "type": "h_stack",
                "inputs": [
                    {"type": "text", "name": "outer", "defaultValue": 1},
                    {
                        "type": "accordion",
                        "inputs": [{"type": "text", "name": "inner", "defaultValue": 2}],
                    },
                ],
            }
        ]

        assert apply_form_input_defaults(inputs, {}) == {"outer": 1, "inner": 2}

    def test_inputs_without_default(self):
        assert apply_form_input_defaults([{"type": "text", "name": "a"}], {}) == {}
        assert apply_form_input_defaults(None, {"a": 1}) == {"a": 1}


class TestSelectOptionMigration:
    """Test migrate_template_function_select_options()."""

    def test_name_becomes_label(self):
        fn = {
            "name": "hash",
            "args": [
                {
                    "type": "select",
                    "name": "algorithm",
                    "options": [
                        {"name": "SHA-1", "value": "sha1"},
                        {"label": "MD5", "value": "md5"},
                    ],
                }
            ],
        }

        migrated = migrate_template_function_select_options(fn)

        assert migrated["args"][0]["options"] == [
            {"label": "SHA-1", "value": "sha1"},
            {"label": "MD5", "value": "md5"},
        ]
        assert fn["args"][0]["options"][0] == {"name": "SHA-1", "value": "sha1"}

    def test_nested_selects_migrated(self):
        fn = {
            "name": "f",
            "args": [
                {
                    "type": "accordion",
                    "inputs": [
                        {"type": "select", "name": "s", "options": [{"name": "One", "value": "1"}]}
                    ],
                }
            ],
        }

        migrated = migrate_template_function_select_options(fn)

        assert migrated["args"][0]["inputs"][0]["options"] == [{"label": "One", "value": "1"}]

    def test_other_inputs_untouched(self):
        fn = {"name": "f", "args": [{"type": "text", "name": "value"}]}

        assert migrate_template_function_select_options(fn) == fn


class TestPluginDefinition:
    """Test PluginDefinition construction."""

    def test_from_mapping(self):
        on_render = lambda ctx, args: None  # noqa: E731
        definition = PluginDefinition.from_mapping(
            {"template_functions": [{"name": "f", "on_render": on_render}]}
        )

        assert definition.groups() == ["template_functions"]
        assert isinstance(definition.template_functions, tuple)

    def test_unknown_group(self):
        with pytest.raises(DefinitionError, match="Unknown hook groups"):
            PluginDefinition.from_mapping({"themes": []})

    @pytest.mark.parametrize(
        "data",
        [
            {"importer": []},
            {"template_functions": {"name": "f"}},
            {"http_request_actions": ["copy"]},
        ],
    )
    def test_wrong_shapes(self, data):
        with pytest.raises(DefinitionError):
            PluginDefinition.from_mapping(data)

    def test_not_a_mapping(self):
        with pytest.raises(DefinitionError):
            PluginDefinition.from_mapping([])

    def test_strip_callbacks(self):
        entry = {
            "name": "bearer",
            "on_apply": print,
            "args": [
                {"name": "token", "dynamic": print},
                {"type": "accordion", "inputs": [{"name": "scheme", "dynamic": print}]},
            ],
        }

        assert strip_callbacks(entry) == {
            "name": "bearer",
            "args": [
                {"name": "token"},
                {"type": "accordion", "inputs": [{"name": "scheme"}]},
            ],
        }
