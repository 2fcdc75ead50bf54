"""Declarative request body validation.

Rules are dicts of the form::

    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}}

and are applied in order by :func:`chain_validations`, which returns the first
error message it finds or ``None`` when the body is valid.
"""

from typing import Any, Iterable, Optional

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "boolean": lambda v: isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
}

CHOICE_FIELD_TYPES = ("radio", "checkbox", "select")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and len(value) == 0)


def _check_value(value: Any, validation: dict, label: str) -> Optional[str]:
    of_type = validation.get("of_type")
    if of_type and not _TYPE_CHECKS[of_type](value):
        return f"Invalid type for: {label}"

    if "has_length" in validation and (
        not hasattr(value, "__len__") or len(value) != validation["has_length"]
    ):
        return f"{label} must be of length {validation['has_length']}"

    if "length_min" in validation and len(value) < validation["length_min"]:
        return f"{label} must be at least {validation['length_min']} characters"

    if "length_max" in validation and len(value) > validation["length_max"]:
        return f"{label} must be at most {validation['length_max']} characters"

    if "in_set" in validation and value not in validation["in_set"]:
        return f"{label} must be one of: {', '.join(map(str, validation['in_set']))}"

    return None


def validate_field(body: dict, field: str, validation: dict, label: str) -> Optional[str]:
    """Validate a single field of the body against one rule."""
    value = body.get(field)

    if _is_empty(value):
        if validation.get("not_empty"):
            return validation.get("custom_error") or f"{label} is a required field"
        # Optional and absent
        if value is None:
            return None

    if validation.get("as_array"):
        if not isinstance(value, list):
            return validation.get("custom_error") or f"{label} must be an array"
        for item in value:
            error = _check_value(item, validation, label)
            if error:
                return validation.get("custom_error") or error
        return None

    error = _check_value(value, validation, label)
    if error:
        return validation.get("custom_error") or error
    return None


def chain_validations(
    body: Optional[dict], rules: Iterable[dict], labels: Optional[dict] = None
) -> Optional[str]:
    """Apply rules in order and return the first error message, if any."""
    if not isinstance(body, dict):
        return "Invalid request body"
    labels = labels or {}
    for rule in rules:
        field = rule["field"]
        error = validate_field(
            body, field, rule.get("validation", {}), labels.get(field, field)
        )
        if error:
            return error
    return None


def validate_form_fields(form_fields: Optional[list]) -> Optional[str]:
    """Check human input form field definitions.

    Every field needs a position, type, name and label; choice fields need a
    non-empty list of non-empty options.
    """
    if form_fields is None:
        return None
    if not isinstance(form_fields, list):
        return "Each human input field must have position, type, name, and label"
    for field in form_fields:
        if not isinstance(field, dict) or not all(
            field.get(k) for k in ("position", "type", "name", "label")
        ):
            return "Each human input field must have position, type, name, and label"
        if field["type"] in CHOICE_FIELD_TYPES:
            options = field.get("options")
            if not isinstance(options, list) or not options or "" in options:
                return "Human input field of type radio, checkbox, or select must have non-empty options"
    return None
