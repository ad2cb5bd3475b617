"""
Calculator API endpoints.

Thin HTTP wrapper over the calculator call contract: the request body carries
the flat value map, optional unit tags and optional currency rates.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from projection_engine.calculations.calculators import (
    CalculatorResult,
    calculate,
    calculator_catalog,
    get_calculator,
)
from projection_engine.calculations.units import InvalidUnitError
from projection_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


class CalculateRequest(BaseModel):
    """Input for a calculator run."""

    values: Dict[str, Any]
    field_units: Dict[str, str] = {}
    currency_rates: Dict[str, float] = {}


class CalculatorInfo(BaseModel):
    """Description of one calculator."""

    kind: str
    description: str
    fields: List[str]
    money_fields: List[str]


def merged_rates(request_rates: Dict[str, float], settings: Settings) -> Dict[str, float]:
    """Request currency rates take precedence over configured ones."""
    return {**settings.currency_rates, **request_rates}


@router.get("/calculators", response_model=List[CalculatorInfo])
async def list_calculators():
    """List available calculators and the keys they read."""
    return calculator_catalog()


@router.post("/calculate/{kind}", response_model=CalculatorResult)
async def run_calculator(
    kind: str,
    request: CalculateRequest,
    settings: Settings = Depends(get_settings),
):
    """Run one calculator on a flat map of values."""
    try:
        get_calculator(kind)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    try:
        return calculate(
            kind,
            request.values,
            field_units=request.field_units,
            currency_rates=merged_rates(request.currency_rates, settings),
        )
    except InvalidUnitError as e:
        logger.info("Rejected %s request: %s", kind, e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
