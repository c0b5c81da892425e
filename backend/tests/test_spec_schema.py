import math

import pytest

from voltstock.core.exceptions import AttributeValidationError, FieldError
from voltstock.services.spec_schema import (
    ChoiceValue, NumberValue, SpecSchema, SpecType, TextValue,
    define_spec, normalize_specifications, parse_options, parse_value,
    resolve_attributes, validate_and_normalize,
)


COLOR = SpecSchema(id="s1", name="Color", type=SpecType.DROPDOWN, options=["Red", "Blue"])
LENGTH = SpecSchema(id="s2", name="Length", type=SpecType.NUMBER)
BRAND = SpecSchema(id="s3", name="Brand", type=SpecType.TEXT)


def test_parse_options_trims_and_collapses_duplicates():
    assert parse_options(" Red, Blue ,Blue") == ["Red", "Blue"]


def test_parse_options_drops_empty_pieces():
    assert parse_options("Red,, ,Blue,") == ["Red", "Blue"]
    assert parse_options("") == []
    assert parse_options(None) == []


def test_parse_options_accepts_list():
    assert parse_options([" 6", "10", "6", ""]) == ["6", "10"]


def test_dropdown_requires_exact_match():
    assert parse_value(COLOR, "Red") == ChoiceValue("Red")
    for raw in ("red", "Red ", "Green", 1):
        err = parse_value(COLOR, raw)
        assert isinstance(err, FieldError)
        assert err.code == "invalid_choice"


def test_number_parsing():
    assert parse_value(LENGTH, "90") == NumberValue(90.0)
    assert parse_value(LENGTH, " 2.5 ") == NumberValue(2.5)
    assert parse_value(LENGTH, 4) == NumberValue(4.0)
    assert parse_value(LENGTH, "1e3") == NumberValue(1000.0)


@pytest.mark.parametrize("raw", ["12abc", "abc", "1.2.3", "nan", "inf", True, float("inf")])
def test_number_rejects_partial_or_non_finite(raw):
    err = parse_value(LENGTH, raw)
    assert isinstance(err, FieldError)
    assert err.code == "invalid_number"


def test_text_is_trimmed_and_whitespace_only_is_missing():
    assert parse_value(BRAND, "  Polycab ") == TextValue("Polycab")
    err = parse_value(BRAND, "   ")
    assert isinstance(err, FieldError)
    assert err.code == "required"


def test_optional_spec_may_be_blank():
    schema = SpecSchema(id="s4", name="Series", type=SpecType.TEXT, required=False)
    assert parse_value(schema, None) is None
    assert parse_value(schema, "") is None


def test_validate_collects_every_error():
    with pytest.raises(AttributeValidationError) as exc_info:
        validate_and_normalize([COLOR, LENGTH, BRAND], {"s1": "Green", "s2": "long"})

    errors = {e.field: e.code for e in exc_info.value.errors}
    assert errors == {
        "specifications.s1": "invalid_choice",
        "specifications.s2": "invalid_number",
        "specifications.s3": "required",
    }


def test_validate_orders_values_and_reports_stale_keys():
    result = validate_and_normalize(
        [COLOR, LENGTH, BRAND],
        {"old": "x", "s3": "Havells", "s2": "90", "s1": "Blue"},
    )
    assert list(result.values) == ["s1", "s2", "s3"]
    assert result.values == {"s1": "Blue", "s2": 90.0, "s3": "Havells"}
    assert isinstance(result.typed["s2"], NumberValue)
    assert result.stale_keys == ["old"]


def test_define_spec_rejects_duplicate_name_case_insensitive():
    existing = [COLOR]
    with pytest.raises(AttributeValidationError) as exc_info:
        define_spec(existing, name=" color ", type=SpecType.TEXT)
    assert exc_info.value.fields == ["name"]


def test_define_spec_requires_options_for_dropdown():
    with pytest.raises(AttributeValidationError) as exc_info:
        define_spec([], name="Rating", type=SpecType.DROPDOWN, options=" , ")
    assert exc_info.value.fields == ["options"]


def test_define_spec_keeps_given_id():
    spec = define_spec([COLOR], name="Colour", type=SpecType.DROPDOWN, options="Red,Blue", spec_id="s1")
    assert spec.id == "s1"
    assert spec.name == "Colour"


def test_define_spec_generates_new_id():
    spec = define_spec([], name="Wattage", type=SpecType.NUMBER, options="ignored")
    assert spec.id.startswith("spec_")
    assert spec.options == []


def test_normalize_specifications_prefixes_fields_with_index():
    with pytest.raises(AttributeValidationError) as exc_info:
        normalize_specifications([
            {"name": "Color", "type": "DROPDOWN", "options": "Red"},
            {"name": "", "type": "BOOLEAN"},
        ])
    assert sorted(exc_info.value.fields) == ["specifications[1].name", "specifications[1].type"]


def test_resolve_attributes_marks_missing_values():
    attributes = resolve_attributes([COLOR, LENGTH], {"s1": "Red", "gone": "x"})
    assert [a["spec_id"] for a in attributes] == ["s1", "s2"]
    assert attributes[0]["missing"] is False
    assert attributes[1]["missing"] is True
    assert attributes[1]["value"] is None


def test_number_value_is_float():
    value = parse_value(LENGTH, "0")
    assert isinstance(value.value, float)
    assert not math.isnan(value.value)
