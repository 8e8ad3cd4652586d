import datetime
from decimal import Decimal

import pytest

from app.utils.formatting import (
    format_currency,
    format_date,
    format_time,
    get_initials,
    money,
    truncate_text,
)
from app.utils.geo import distance_km
from app.utils.validators import parse_bool, parse_id_list, parse_money


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (1234.5, "$1,234.50"),
            (Decimal("50"), "$50.00"),
            (None, "$0.00"),
            (-12.345, "-$12.35"),
        ],
    )
    def test_format_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_format_date(self):
        assert format_date("2025-05-05") == "May 5, 2025"
        assert format_date(datetime.date(2025, 12, 31)) == "December 31, 2025"
        assert format_date("2025-01-02T10:00:00") == "January 2, 2025"

    def test_format_time(self):
        assert format_time("14:05:00") == "2:05 PM"
        assert format_time("00:30") == "12:30 AM"
        assert format_time(datetime.time(12, 0)) == "12:00 PM"

    def test_truncate_text(self):
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a long description", 6) == "a long..."

    def test_get_initials(self):
        assert get_initials("Ari Ink Studio") == "AS"
        assert get_initials("cher") == "C"
        assert get_initials("   ") == ""
        assert get_initials("") == ""

    def test_money(self):
        assert money(Decimal("49.99")) == 49.99
        assert money(None) is None


class TestParsers:
    def test_parse_money(self):
        assert parse_money("19.999") == Decimal("20.00")
        assert parse_money("") is None
        with pytest.raises(ValueError):
            parse_money("ten")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf", float("nan"), "1e40"])
    def test_parse_money_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            parse_money(value)

    def test_parse_bool(self):
        assert parse_bool("TRUE") is True
        assert parse_bool("0") is False
        assert parse_bool("sometimes") is None

    def test_parse_id_list(self):
        assert parse_id_list("4, 5,x") == [4, 5]
        assert parse_id_list(["7"]) == [7]
        assert parse_id_list(None) == []


class TestDistance:
    def test_same_point(self):
        assert distance_km(45.5, -122.6, 45.5, -122.6) == 0

    def test_portland_to_seattle(self):
        assert distance_km(45.5152, -122.6784, 47.6062, -122.3321) == pytest.approx(234, abs=3)

    def test_missing_coordinate(self):
        assert distance_km(45.5, None, 47.6, -122.3) is None
