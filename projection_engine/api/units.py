"""
Unit conversion API endpoints.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict

from projection_engine.api.calculations import merged_rates
from projection_engine.calculations import units
from projection_engine.config import Settings, get_settings

router = APIRouter()


class ConvertRequest(BaseModel):
    """Input for a single conversion."""

    model_config = ConfigDict(allow_inf_nan=False)

    value: float
    from_unit: str
    to_unit: str
    dimension: str
    currency_rates: Dict[str, float] = {}


class ConvertResponse(BaseModel):
    """Converted value and its base-unit equivalent."""

    value: float
    base_value: float


@router.get("", response_model=Dict[str, List[str]])
async def list_units(settings: Settings = Depends(get_settings)):
    """List registered unit ids per dimension."""
    return units.registered_units(settings.currency_rates)


@router.post("/convert", response_model=ConvertResponse)
async def convert_value(
    request: ConvertRequest,
    settings: Settings = Depends(get_settings),
):
    """Convert a value between two units of the same dimension."""
    rates = merged_rates(request.currency_rates, settings)
    try:
        base_value = units.to_base(request.value, request.from_unit, request.dimension, rates)
        value = units.from_base(base_value, request.to_unit, request.dimension, rates)
    except units.InvalidUnitError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ConvertResponse(value=value, base_value=base_value)
