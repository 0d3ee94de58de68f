"""
Saved deal (portfolio) API endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.calculations import DealInput
from app.calculations.proforma import proforma_annual
from app.db.database import get_db
from app.db.models import Deal

logger = logging.getLogger(__name__)
router = APIRouter()


class DealResponse(BaseModel):
    """Schema for deal response."""

    id: str
    property_name: str
    address: Optional[str]
    purchase_price: Optional[float]
    rent_monthly: Optional[float]
    cashflow: Optional[float]
    cap_rate: Optional[float]
    cash_on_cash: Optional[float]
    snapshot: dict
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class DealListResponse(BaseModel):
    """Response for listing deals."""

    deals: List[DealResponse]
    total: int


class PortfolioSummary(BaseModel):
    """Totals across all saved deals."""

    count: int
    total_purchase_price: float
    total_rent_monthly: float
    total_cashflow: float


def deal_to_response(deal: Deal) -> DealResponse:
    """Convert Deal model to response schema."""
    return DealResponse(
        id=deal.id,
        property_name=deal.property_name,
        address=deal.address,
        purchase_price=deal.purchase_price,
        rent_monthly=deal.rent_monthly,
        cashflow=deal.cashflow,
        cap_rate=deal.cap_rate,
        cash_on_cash=deal.cash_on_cash,
        snapshot=deal.snapshot,
        created_at=deal.created_at.isoformat() if deal.created_at else None,
        updated_at=deal.updated_at.isoformat() if deal.updated_at else None,
    )


def _active_deals(db: Session):
    return db.query(Deal).filter(Deal.is_deleted == False)  # noqa: E712


def _get_deal_or_404(db: Session, deal_id: str) -> Deal:
    deal = _active_deals(db).filter(Deal.id == deal_id).first()
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


@router.get("/", response_model=DealListResponse)
async def list_deals(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """List saved deals, newest first."""
    query = _active_deals(db).order_by(Deal.created_at.desc())

    total = query.count()
    deals = query.offset(skip).limit(limit).all()

    return DealListResponse(
        deals=[deal_to_response(d) for d in deals],
        total=total,
    )


@router.post("/", response_model=DealResponse, status_code=201)
async def create_deal(
    deal_data: DealInput,
    db: Session = Depends(get_db),
):
    """Save a deal snapshot with its headline metrics."""
    params = deal_data.to_params()
    pf = proforma_annual(params)

    db_deal = Deal(
        property_name=params.property_name or "(Untitled)",
        address=params.address,
        purchase_price=params.purchase_price,
        rent_monthly=params.rent_monthly,
        cashflow=pf.cashflow,
        cap_rate=pf.cap_rate,
        cash_on_cash=pf.cash_on_cash,
        snapshot=params.to_dict(),
    )

    db.add(db_deal)
    db.commit()
    db.refresh(db_deal)

    logger.info(f"Saved deal {db_deal.id} ({db_deal.property_name})")
    return deal_to_response(db_deal)


@router.get("/summary", response_model=PortfolioSummary)
async def portfolio_summary(db: Session = Depends(get_db)):
    """Sum purchase price, rent and cash flow across saved deals."""
    deals = _active_deals(db).all()
    return PortfolioSummary(
        count=len(deals),
        total_purchase_price=sum(d.purchase_price or 0.0 for d in deals),
        total_rent_monthly=sum(d.rent_monthly or 0.0 for d in deals),
        total_cashflow=sum(d.cashflow or 0.0 for d in deals),
    )


@router.get("/{deal_id}", response_model=DealResponse)
async def get_deal(
    deal_id: str,
    db: Session = Depends(get_db),
):
    """Get a saved deal by ID."""
    return deal_to_response(_get_deal_or_404(db, deal_id))


@router.delete("/{deal_id}")
async def delete_deal(
    deal_id: str,
    db: Session = Depends(get_db),
):
    """Soft delete a saved deal."""
    db_deal = _get_deal_or_404(db, deal_id)

    db_deal.is_deleted = True
    db.commit()

    logger.info(f"Deleted deal {deal_id}")
    return {"deleted": True, "id": deal_id}
