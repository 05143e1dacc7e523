import logging
import math

import pytest

from rules.conditions import OPERATORS, as_text, evaluate_condition, parse_number


def cond(prop, operator, value=None):
    return {"property": prop, "operator": operator, "value": value}


RECORD = {
    "dealstage": "Closed Won",
    "amount": "$1,500",
    "hs_priority": "High",
    "notes": "   ",
    "num_employees": 250,
    "zero": 0,
}


@pytest.mark.parametrize(
    "condition, expected",
    [
        (cond("dealstage", "equals", "closed won"), True),
        (cond("dealstage", "equals", "Closed"), False),
        (cond("dealstage", "not_equals", "Closed Lost"), True),
        (cond("dealstage", "contains", "WON"), True),
        (cond("dealstage", "not_contains", "lost"), True),
        (cond("dealstage", "starts_with", "closed"), True),
        (cond("dealstage", "ends_with", "won"), True),
        (cond("dealstage", "ends_with", "closed"), False),
        (cond("hs_priority", "in_list", "low, high"), True),
        (cond("hs_priority", "not_in_list", "low,medium"), True),
        (cond("hs_priority", "in_list", "low,medium"), False),
    ],
)
def test_string_operators_are_case_insensitive(condition, expected):
    assert evaluate_condition(condition, RECORD) is expected


@pytest.mark.parametrize(
    "condition, expected",
    [
        (cond("amount", "greater_than", 1000), True),
        (cond("amount", "less_than", "2000"), True),
        (cond("amount", "greater_equal", "1500"), True),
        (cond("amount", "less_equal", 1499), False),
        (cond("num_employees", "greater_than", "200"), True),
        (cond("num_employees", "less_than", 100), False),
    ],
)
def test_numeric_operators_coerce_both_sides(condition, expected):
    assert evaluate_condition(condition, RECORD) is expected


def test_failed_numeric_coercion_is_a_non_match():
    assert evaluate_condition(cond("dealstage", "greater_than", 0), RECORD) is False
    assert evaluate_condition(cond("dealstage", "less_than", 0), RECORD) is False
    assert evaluate_condition(cond("amount", "greater_than", "n/a"), RECORD) is False


def test_missing_property_behaves_as_empty_string_and_nan():
    assert evaluate_condition(cond("missing", "equals", ""), RECORD) is True
    assert evaluate_condition(cond("missing", "contains", "x"), RECORD) is False
    assert evaluate_condition(cond("missing", "greater_than", -1), RECORD) is False
    assert evaluate_condition(cond("missing", "less_than", 1), RECORD) is False


def test_is_empty_and_is_not_empty():
    assert evaluate_condition(cond("missing", "is_empty"), RECORD) is True
    assert evaluate_condition(cond("notes", "is_empty"), RECORD) is True
    assert evaluate_condition(cond("zero", "is_empty"), RECORD) is False
    assert evaluate_condition(cond("dealstage", "is_not_empty"), RECORD) is True
    assert evaluate_condition(cond("notes", "is_not_empty"), RECORD) is False


def test_unknown_operator_is_false_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="rules.conditions"):
        assert evaluate_condition(cond("dealstage", "matches_regex", ".*"), RECORD) is False
    assert "Unknown condition operator" in caplog.text


def test_malformed_condition_never_raises():
    assert evaluate_condition({}, RECORD) is False
    assert evaluate_condition({"operator": "equals", "value": ""}, RECORD) is True


def test_all_operators_registered():
    assert set(OPERATORS) == {
        "equals",
        "not_equals",
        "contains",
        "not_contains",
        "starts_with",
        "ends_with",
        "greater_than",
        "less_than",
        "greater_equal",
        "less_equal",
        "is_empty",
        "is_not_empty",
        "in_list",
        "not_in_list",
    }


@pytest.mark.parametrize(
    "value, expected",
    [
        ("$1,500", 1500.0),
        ("1500.50 EUR", 1500.5),
        ("-20", -20.0),
        (42, 42.0),
        ("1.500,00", 1.5),
    ],
)
def test_parse_number(value, expected):
    assert parse_number(value) == expected


@pytest.mark.parametrize("value", [None, "", "abc", "-", "."])
def test_parse_number_returns_nan(value):
    assert math.isnan(parse_number(value))


def test_as_text():
    assert as_text(None) == ""
    assert as_text(True) == "true"
    assert as_text(1500.0) == "1500"
    assert as_text(2.5) == "2.5"
