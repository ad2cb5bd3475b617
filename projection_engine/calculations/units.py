"""
Unit and Currency Normalization

Converts user-entered values into the canonical unit a calculation runs in,
and back. Linear units carry a factor to the base unit; temperature units also
carry an offset applied before the factor.

Currency conversion is a pass-through multiplier table supplied by the caller:
each entry is the value of one unit of that currency in the base currency.
Nothing here fetches live rates.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

BASE_CURRENCY = "USD"


class Dimension(str, Enum):
    """Physical or monetary dimension a value is measured in."""

    LENGTH = "length"
    WEIGHT = "weight"
    AREA = "area"
    VOLUME = "volume"
    TEMPERATURE = "temperature"
    CURRENCY = "currency"


class InvalidUnitError(ValueError):
    """Raised when a unit tag is not registered for a dimension."""

    def __init__(self, unit: str, dimension: Optional[str] = None, reason: str = ""):
        self.unit = unit
        self.dimension = dimension
        message = reason or f"Unit '{unit}' is not registered for dimension '{dimension}'"
        super().__init__(message)


@dataclass(frozen=True)
class UnitDefinition:
    """A unit and its conversion to the dimension's base unit."""

    id: str
    name: str
    to_base: float
    offset: float = 0.0

    def convert_to_base(self, value: float) -> float:
        return (value + self.offset) * self.to_base

    def convert_from_base(self, base_value: float) -> float:
        return base_value / self.to_base - self.offset


def _table(units: Iterable[UnitDefinition]) -> Mapping[str, UnitDefinition]:
    return MappingProxyType({unit.id: unit for unit in units})


# Base: meter
LENGTH_UNITS = _table([
    UnitDefinition("mm", "Millimeters", 0.001),
    UnitDefinition("cm", "Centimeters", 0.01),
    UnitDefinition("m", "Meters", 1.0),
    UnitDefinition("km", "Kilometers", 1000.0),
    UnitDefinition("in", "Inches", 0.0254),
    UnitDefinition("ft", "Feet", 0.3048),
    UnitDefinition("yd", "Yards", 0.9144),
    UnitDefinition("mi", "Miles", 1609.344),
    UnitDefinition("nmi", "Nautical Miles", 1852.0),
])

# Base: kilogram
WEIGHT_UNITS = _table([
    UnitDefinition("g", "Grams", 0.001),
    UnitDefinition("kg", "Kilograms", 1.0),
    UnitDefinition("lbs", "Pounds", 0.453592),
    UnitDefinition("oz", "Ounces", 0.0283495),
    UnitDefinition("st", "Stones", 6.35029),
])

# Base: square meter
AREA_UNITS = _table([
    UnitDefinition("m2", "Square Meters", 1.0),
    UnitDefinition("km2", "Square Kilometers", 1_000_000.0),
    UnitDefinition("hectares", "Hectares", 10_000.0),
    UnitDefinition("ft2", "Square Feet", 0.092903),
    UnitDefinition("yd2", "Square Yards", 0.836127),
    UnitDefinition("acres", "Acres", 4046.856),
    UnitDefinition("manzana", "Manzanas", 6987.295),
    UnitDefinition("fanegada", "Fanegadas", 6400.0),
    UnitDefinition("tarea", "Tareas", 628.86),
])

# Base: liter
VOLUME_UNITS = _table([
    UnitDefinition("mL", "Milliliters", 0.001),
    UnitDefinition("L", "Liters", 1.0),
    UnitDefinition("m3", "Cubic Meters", 1000.0),
    UnitDefinition("tbsp", "Tablespoons (US)", 0.0147868),
    UnitDefinition("fl_oz", "Fluid Ounces (US)", 0.0295735),
    UnitDefinition("cups", "Cups (US)", 0.236588),
    UnitDefinition("pt_us", "Pints (US)", 0.473176),
    UnitDefinition("pt_uk", "Pints (Imperial)", 0.568261),
    UnitDefinition("gal_us", "Gallons (US)", 3.78541),
])

# Base: degree Celsius
TEMPERATURE_UNITS = _table([
    UnitDefinition("C", "Celsius", 1.0),
    UnitDefinition("F", "Fahrenheit", 5.0 / 9.0, offset=-32.0),
    UnitDefinition("K", "Kelvin", 1.0, offset=-273.15),
])

UNIT_TABLES: Mapping[Dimension, Mapping[str, UnitDefinition]] = MappingProxyType({
    Dimension.LENGTH: LENGTH_UNITS,
    Dimension.WEIGHT: WEIGHT_UNITS,
    Dimension.AREA: AREA_UNITS,
    Dimension.VOLUME: VOLUME_UNITS,
    Dimension.TEMPERATURE: TEMPERATURE_UNITS,
})


def _parse_dimension(dimension) -> Dimension:
    try:
        return Dimension(dimension)
    except ValueError:
        raise InvalidUnitError(
            str(dimension), str(dimension), reason=f"Unknown dimension '{dimension}'"
        ) from None


def _currency_table(
    currency_rates: Optional[Mapping[str, float]],
) -> Mapping[str, UnitDefinition]:
    units = {BASE_CURRENCY: UnitDefinition(BASE_CURRENCY, BASE_CURRENCY, 1.0)}
    for code, rate in (currency_rates or {}).items():
        if rate is None or rate <= 0:
            raise InvalidUnitError(
                code,
                Dimension.CURRENCY.value,
                reason=f"Currency rate for '{code}' must be positive, got {rate}",
            )
        if code == BASE_CURRENCY and rate != 1:
            raise InvalidUnitError(
                code,
                Dimension.CURRENCY.value,
                reason=f"Base currency '{BASE_CURRENCY}' must have a rate of 1",
            )
        units[code] = UnitDefinition(code, code, float(rate))
    return units


def units_for(
    dimension, currency_rates: Optional[Mapping[str, float]] = None
) -> Mapping[str, UnitDefinition]:
    """Return the unit table registered for a dimension."""
    dim = _parse_dimension(dimension)
    if dim is Dimension.CURRENCY:
        return _currency_table(currency_rates)
    return UNIT_TABLES[dim]


def get_unit(
    unit: str, dimension, currency_rates: Optional[Mapping[str, float]] = None
) -> UnitDefinition:
    """Look up a unit definition, failing loudly when it is not registered."""
    table = units_for(dimension, currency_rates)
    definition = table.get(unit)
    if definition is None:
        raise InvalidUnitError(unit, _parse_dimension(dimension).value)
    return definition


def to_base(
    value: float,
    unit: str,
    dimension,
    currency_rates: Optional[Mapping[str, float]] = None,
) -> float:
    """Convert a value expressed in `unit` to the dimension's base unit."""
    return get_unit(unit, dimension, currency_rates).convert_to_base(value)


def from_base(
    value: float,
    unit: str,
    dimension,
    currency_rates: Optional[Mapping[str, float]] = None,
) -> float:
    """Convert a base-unit value into `unit`."""
    return get_unit(unit, dimension, currency_rates).convert_from_base(value)


def convert(
    value: float,
    from_unit: str,
    to_unit: str,
    dimension,
    currency_rates: Optional[Mapping[str, float]] = None,
) -> float:
    """Convert between two units of the same dimension."""
    base_value = to_base(value, from_unit, dimension, currency_rates)
    return from_base(base_value, to_unit, dimension, currency_rates)


def normalize_values(
    values: Mapping[str, object],
    field_units: Optional[Mapping[str, str]],
    field_dimensions: Mapping[str, Dimension],
    currency_rates: Optional[Mapping[str, float]] = None,
) -> Dict[str, object]:
    """
    Convert every unit-tagged field of a flat input map to its base unit.

    Fields without a unit tag are assumed to already be canonical. A unit tag
    on a field that has no dimension is a caller error.
    """
    normalized = dict(values)
    for field_name, unit in (field_units or {}).items():
        dimension = field_dimensions.get(field_name)
        if dimension is None:
            raise InvalidUnitError(
                unit, None, reason=f"Field '{field_name}' does not accept a unit"
            )
        value = normalized.get(field_name)
        if value is None or isinstance(value, bool):
            continue
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            # Left for input validation to report
            continue
        normalized[field_name] = to_base(numeric, unit, dimension, currency_rates)
        logger.debug("Normalized %s from %s: %s -> %s", field_name, unit, value, normalized[field_name])
    return normalized


def registered_units(currency_rates: Optional[Mapping[str, float]] = None) -> Dict[str, List[str]]:
    """List registered unit ids per dimension."""
    return {
        dim.value: list(units_for(dim, currency_rates).keys()) for dim in Dimension
    }
