"""
Tests for unit and currency normalization.
"""

import pytest

from projection_engine.calculations.units import (
    BASE_CURRENCY,
    UNIT_TABLES,
    Dimension,
    InvalidUnitError,
    convert,
    from_base,
    normalize_values,
    registered_units,
    to_base,
    units_for,
)

RATES = {"EUR": 1.25, "GBP": 1.5}


class TestConversions:
    """Test physical unit conversions."""

    def test_miles_to_km(self):
        """Test length conversion."""
        assert convert(1, "mi", "km", "length") == pytest.approx(1.609344)

    def test_feet_to_inches(self):
        """Test conversion between two non-base units."""
        assert convert(2, "ft", "in", Dimension.LENGTH) == pytest.approx(24)

    def test_pounds_to_kg(self):
        """Test weight conversion."""
        assert to_base(10, "lbs", "weight") == pytest.approx(4.53592)

    def test_acres_to_hectares(self):
        """Test area conversion."""
        assert convert(1, "acres", "hectares", "area") == pytest.approx(0.4046856)

    def test_gallons_to_liters(self):
        """Test volume conversion."""
        assert to_base(1, "gal_us", "volume") == pytest.approx(3.78541)

    @pytest.mark.parametrize(
        "value,from_unit,to_unit,expected",
        [
            (212, "F", "C", 100),
            (32, "F", "C", 0),
            (0, "C", "F", 32),
            (-40, "C", "F", -40),
            (0, "C", "K", 273.15),
            (300, "K", "F", 80.33),
        ],
    )
    def test_temperature(self, value, from_unit, to_unit, expected):
        """Test offset-based temperature conversion."""
        assert convert(value, from_unit, to_unit, "temperature") == pytest.approx(expected, abs=0.01)


class TestRoundTrip:
    """Test every registered unit survives a round trip through its base."""

    @pytest.mark.parametrize(
        "dimension,unit",
        [(dimension, unit) for dimension, table in UNIT_TABLES.items() for unit in table],
    )
    def test_round_trip(self, dimension, unit):
        """Test from_base(to_base(v)) == v."""
        for value in (0.0, 1.0, 123.456, -17.5):
            assert from_base(to_base(value, unit, dimension), unit, dimension) == pytest.approx(value, abs=1e-9)


class TestCurrency:
    """Test caller-supplied currency tables."""

    def test_base_currency_always_present(self):
        """Test USD needs no rate table."""
        assert to_base(100, BASE_CURRENCY, "currency") == 100

    def test_rate_multiplier(self):
        """Test a rate converts to the base currency."""
        assert to_base(100, "EUR", "currency", RATES) == pytest.approx(125)
        assert from_base(125, "EUR", "currency", RATES) == pytest.approx(100)

    def test_cross_currency(self):
        """Test converting between two non-base currencies."""
        assert convert(150, "EUR", "GBP", "currency", RATES) == pytest.approx(125)

    def test_unknown_currency(self):
        """Test a currency without a rate is rejected."""
        with pytest.raises(InvalidUnitError) as exc_info:
            to_base(100, "EUR", "currency")
        assert exc_info.value.unit == "EUR"
        assert exc_info.value.dimension == "currency"

    @pytest.mark.parametrize("rates", [{"EUR": 0}, {"EUR": -1.1}, {"USD": 2.0}])
    def test_invalid_rate_tables(self, rates):
        """Test non-positive rates and a rebased USD are rejected."""
        with pytest.raises(InvalidUnitError):
            units_for("currency", rates)


class TestErrors:
    """Test unit lookup failures."""

    def test_unknown_unit(self):
        """Test an unregistered unit raises InvalidUnitError."""
        with pytest.raises(InvalidUnitError) as exc_info:
            to_base(1, "furlong", "length")
        assert exc_info.value.unit == "furlong"
        assert exc_info.value.dimension == "length"

    def test_unit_from_other_dimension(self):
        """Test a unit is only valid within its dimension."""
        with pytest.raises(InvalidUnitError):
            to_base(1, "kg", "length")

    def test_unknown_dimension(self):
        """Test an unknown dimension raises InvalidUnitError."""
        with pytest.raises(InvalidUnitError):
            units_for("time")

    def test_invalid_unit_is_value_error(self):
        """Test InvalidUnitError can be handled as ValueError."""
        assert issubclass(InvalidUnitError, ValueError)


class TestNormalizeValues:
    """Test flat-map normalization."""

    def test_tagged_fields_converted(self):
        """Test only tagged fields are converted."""
        values = {"loan_amount": 20000, "interest_rate": 6.5, "extra_payment": 100}
        normalized = normalize_values(
            values,
            {"loan_amount": "EUR"},
            {"loan_amount": Dimension.CURRENCY, "extra_payment": Dimension.CURRENCY},
            RATES,
        )
        assert normalized["loan_amount"] == pytest.approx(25000)
        assert normalized["interest_rate"] == 6.5
        assert normalized["extra_payment"] == 100
        # Input map is left untouched
        assert values["loan_amount"] == 20000

    def test_tag_on_field_without_dimension(self):
        """Test a unit tag on a dimensionless field is rejected."""
        with pytest.raises(InvalidUnitError):
            normalize_values({"interest_rate": 5}, {"interest_rate": "EUR"}, {}, RATES)

    def test_missing_value_skipped(self):
        """Test a tagged field without a value is left alone."""
        normalized = normalize_values(
            {"loan_amount": None}, {"loan_amount": "EUR"}, {"loan_amount": "currency"}, RATES
        )
        assert normalized["loan_amount"] is None

    def test_registered_units(self):
        """Test the unit listing covers every dimension."""
        listing = registered_units(RATES)
        assert set(listing) == {dimension.value for dimension in Dimension}
        assert listing["currency"] == ["USD", "EUR", "GBP"]
        assert "acres" in listing["area"]
