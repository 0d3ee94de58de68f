"""
API routes for the underwriting engine.
"""

from fastapi import APIRouter

from app.api import calculations, deals, transactions

router = APIRouter()

# Include sub-routers
router.include_router(deals.router, prefix="/deals", tags=["deals"])
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
