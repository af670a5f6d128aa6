"""
Tests for input validation functions.

Validators return (is_valid, error_message) tuples; collect_errors gathers
the messages of every failed check.
"""

from datetime import date
from decimal import Decimal

import pytest

from bakery_control.utils import validators
from bakery_control.utils.constants import MAX_NAME_LENGTH, MAX_QUANTITY, MIN_QUANTITY


class TestStringValidation:
    def test_required_string_valid(self):
        assert validators.validate_required_string("Flour", "Name") == (True, "")

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_required_string_missing(self, value):
        is_valid, error = validators.validate_required_string(value, "Name")
        assert not is_valid
        assert error == "Name: This field is required"

    def test_string_length(self):
        assert validators.validate_string_length("a" * MAX_NAME_LENGTH, MAX_NAME_LENGTH)[0]
        is_valid, error = validators.validate_string_length(
            "a" * (MAX_NAME_LENGTH + 1), MAX_NAME_LENGTH, "Name"
        )
        assert not is_valid
        assert f"{MAX_NAME_LENGTH} characters or less" in error


class TestNumericValidation:
    @pytest.mark.parametrize("value", [1, 0.001, "2.5", Decimal("3")])
    def test_positive_valid(self, value):
        assert validators.validate_positive_number(value)[0]

    @pytest.mark.parametrize("value", [0, -1, "-0.5"])
    def test_positive_invalid(self, value):
        is_valid, error = validators.validate_positive_number(value, "Quantity")
        assert not is_valid
        assert error == "Quantity: Value must be greater than zero"

    @pytest.mark.parametrize("value", ["abc", None, "nan", "inf"])
    def test_not_a_number(self, value):
        for check in (validators.validate_positive_number, validators.validate_non_negative_number):
            is_valid, error = check(value, "Quantity")
            assert not is_valid
            assert error == "Quantity: Please enter a valid number"

    def test_non_negative(self):
        assert validators.validate_non_negative_number(0)[0]
        assert not validators.validate_non_negative_number(-0.001)[0]

    def test_range(self):
        assert validators.validate_number_range(MAX_QUANTITY, MIN_QUANTITY, MAX_QUANTITY)[0]
        is_valid, error = validators.validate_number_range(-1, MIN_QUANTITY, MAX_QUANTITY, "Stock")
        assert not is_valid
        assert error.startswith("Stock: Must be between")
        assert not validators.validate_number_range("-inf", -10, 10)[0]


class TestDomainValidation:
    @pytest.mark.parametrize("unit", ["kilogram", "Gram", "DOZEN"])
    def test_unit_valid(self, unit):
        assert validators.validate_unit(unit)[0]

    def test_unit_invalid(self):
        assert validators.validate_unit("bucket") == (False, "Unit: Invalid unit type")
        assert validators.validate_unit("") == (False, "Unit: This field is required")

    def test_production_status(self):
        assert validators.validate_production_status("InProgress")[0]
        assert validators.validate_production_status("inprogress") == (
            False,
            "Status: Invalid production status",
        )

    def test_date_range(self):
        assert validators.validate_date_range(date(2026, 1, 1), date(2026, 1, 1))[0]
        assert validators.validate_date_range(date(2026, 1, 2), date(2026, 1, 1)) == (
            False,
            "Start date cannot be after end date",
        )


class TestHelpers:
    def test_collect_errors(self):
        results = [(True, ""), (False, "A: bad"), (False, "B: bad")]
        assert validators.collect_errors(results) == ["A: bad", "B: bad"]

    @pytest.mark.parametrize(
        "value, expected",
        [(2, Decimal("2")), (0.1, Decimal("0.1")), (" 1.50 ", Decimal("1.50"))],
    )
    def test_to_decimal(self, value, expected):
        assert validators.to_decimal(value) == expected

    def test_to_decimal_keeps_decimal(self):
        value = Decimal("1.005")
        assert validators.to_decimal(value) is value
