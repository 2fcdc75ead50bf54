from agentcloudapi.validation import chain_validations, validate_form_fields

RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "count", "validation": {"of_type": "number"}},
    {"field": "ids", "validation": {"as_array": True, "has_length": 3, "of_type": "string"}},
    {"field": "kind", "validation": {"in_set": ["a", "b"]}},
    {"field": "code", "validation": {"length_min": 2, "length_max": 4, "of_type": "string"}},
]
LABELS = {"name": "Name", "count": "Count", "ids": "IDs", "kind": "Kind", "code": "Code"}


def test_valid_body_passes():
    body = {"name": "x", "count": 2, "ids": ["abc"], "kind": "a", "code": "ab"}
    assert chain_validations(body, RULES, LABELS) is None


def test_missing_optional_fields_are_skipped():
    assert chain_validations({"name": "x"}, RULES, LABELS) is None


def test_required_field():
    assert chain_validations({"name": ""}, RULES, LABELS) == "Name is a required field"
    assert chain_validations({}, RULES, LABELS) == "Name is a required field"


def test_first_error_wins():
    body = {"name": 3, "count": "many"}
    assert chain_validations(body, RULES, LABELS) == "Invalid type for: Name"


def test_booleans_are_not_numbers():
    assert chain_validations({"name": "x", "count": True}, RULES, LABELS) == "Invalid type for: Count"


def test_array_rules_apply_to_items():
    assert chain_validations({"name": "x", "ids": "abc"}, RULES, LABELS) == "IDs must be an array"
    assert (
        chain_validations({"name": "x", "ids": ["abcd"]}, RULES, LABELS)
        == "IDs must be of length 3"
    )


def test_in_set_and_lengths():
    assert chain_validations({"name": "x", "kind": "c"}, RULES, LABELS) == "Kind must be one of: a, b"
    assert "at least 2" in chain_validations({"name": "x", "code": "a"}, RULES, LABELS)
    assert "at most 4" in chain_validations({"name": "x", "code": "abcde"}, RULES, LABELS)


def test_custom_error_overrides_message():
    rules = [{"field": "ids", "validation": {"as_array": True, "custom_error": "Invalid Tools"}}]
    assert chain_validations({"ids": 5}, rules) == "Invalid Tools"


def test_non_dict_body():
    assert chain_validations(None, RULES, LABELS) == "Invalid request body"


def test_form_fields():
    assert validate_form_fields(None) is None
    assert (
        validate_form_fields([{"position": "1", "type": "text", "name": "a", "label": "A"}])
        is None
    )
    assert validate_form_fields([{"type": "text"}]) == (
        "Each human input field must have position, type, name, and label"
    )
    choice = {"position": "1", "type": "radio", "name": "a", "label": "A", "options": ["x", ""]}
    assert validate_form_fields([choice]) == (
        "Human input field of type radio, checkbox, or select must have non-empty options"
    )
