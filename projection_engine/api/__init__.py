"""
API routes for the projection engine.
"""

from fastapi import APIRouter

from projection_engine.api import calculations, units

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, tags=["calculations"])
router.include_router(units.router, prefix="/units", tags=["units"])
