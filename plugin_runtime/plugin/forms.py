"""
Form input helpers.

Template functions and authentication schemes declare their arguments as
form inputs. Inputs may be grouped (an entry carrying ``inputs``), nested
to any depth.
"""

from collections.abc import Mapping, MutableMapping
from typing import Any


def apply_form_input_defaults(
    inputs: list[Mapping[str, Any]] | tuple[Mapping[str, Any], ...] | None,
    values: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """
    Fill missing values with declared defaults, recursing through groups.

    A value counts as missing only when its key is absent; an explicit None
    sent by the app is kept.

    Args:
        inputs: Form input declarations
        values: Supplied values, updated in place

    Returns:
        The same values mapping
    """
    for form_input in inputs or ():
        if "inputs" in form_input:
            apply_form_input_defaults(form_input.get("inputs"), values)
        elif "defaultValue" in form_input and form_input.get("name") not in values:
            values[form_input["name"]] = form_input["defaultValue"]
    return values


def _migrate_select_option(option: Any) -> Any:
    # Old plugins named select options with "name" instead of "label"
    if isinstance(option, Mapping) and not option.get("label") and "name" in option:
        migrated = {k: v for k, v in option.items() if k != "name"}
        migrated["label"] = option["name"]
        return migrated
    return option


def _migrate_inputs(inputs: Any) -> Any:
    if not isinstance(inputs, (list, tuple)):
        return inputs
    migrated = []
    for form_input in inputs:
        if not isinstance(form_input, Mapping):
            migrated.append(form_input)
            continue
        form_input = dict(form_input)
        if form_input.get("type") == "select" and isinstance(
            form_input.get("options"), (list, tuple)
        ):
            form_input["options"] = [
                _migrate_select_option(option) for option in form_input["options"]
            ]
        if "inputs" in form_input:
            form_input["inputs"] = _migrate_inputs(form_input["inputs"])
        migrated.append(form_input)
    return migrated


def migrate_template_function_select_options(
    template_function: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Return a copy of a template function with legacy select options migrated.

    The declaration passed in is never modified.
    """
    migrated = dict(template_function)
    if "args" in migrated:
        migrated["args"] = _migrate_inputs(migrated["args"])
    return migrated
