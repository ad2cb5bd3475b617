"""
Tests for numeric display formatting.
"""

from projection_engine.calculations.formatting import (
    format_duration,
    format_money,
    format_number,
    format_percent,
    format_years,
)


class TestFormatting:
    """Test formatting helpers."""

    def test_format_number(self):
        assert format_number(1234567.891) == "1,234,567.89"
        assert format_number(12.4, 0) == "12"

    def test_format_money(self):
        assert format_money(1234.5) == "USD 1,234.50"
        assert format_money(-1234.5, "EUR") == "EUR -1,234.50"

    def test_format_percent(self):
        assert format_percent(0.0725) == "7.25%"
        assert format_percent(1.0, 0) == "100%"

    def test_format_duration(self):
        assert format_duration(27) == "2 yr 3 mo"
        assert format_duration(24) == "2 yr"
        assert format_duration(5) == "5 mo"
        assert format_duration(0) == "0 mo"
        assert format_duration(None) == "Never"

    def test_format_duration_non_monthly(self):
        assert format_duration(6, periods_per_year=4) == "1.5 yr"

    def test_format_years(self):
        assert format_years(4.68) == "4.7 yr"
        assert format_years(None) == "Indefinitely"
