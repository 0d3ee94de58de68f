"""
Actuals ledger API endpoints: transactions, categorization rules, CSV
import and monthly rollups.
"""

import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deals import _get_deal_or_404
from app.calculations import transactions as ledger
from app.config import get_settings
from app.db.database import get_db
from app.db.models import Transaction, TransactionRule

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


# ============================================================================
# SCHEMAS
# ============================================================================

class TransactionInput(BaseModel):
    """Schema for recording a transaction. A missing date means today."""

    transaction_date: Optional[date] = None
    description: str = ""
    amount: float = Field(0.0, allow_inf_nan=False)
    type: Literal["income", "expense", "debt"] = "expense"
    category: str = ledger.DEFAULT_CATEGORY
    property_id: str = ledger.UNASSIGNED
    apply_rules: bool = True


class TransactionResponse(BaseModel):
    """Schema for transaction response."""

    id: str
    transaction_date: date
    description: str
    amount: float
    type: str
    category: str
    property_id: str

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int


class ImportInput(BaseModel):
    """Bank or card CSV export as text."""

    csv_text: str
    property_id: str = ledger.UNASSIGNED


class ImportResponse(BaseModel):
    imported: int
    transactions: List[TransactionResponse]


class RuleInput(BaseModel):
    needle: str
    category: str = ledger.DEFAULT_CATEGORY


class RuleResponse(BaseModel):
    id: str
    needle: str
    category: str
    position: int

    class Config:
        from_attributes = True


class MonthlyActualsResponse(BaseModel):
    month: str
    count: int
    income: float
    expense: float
    debt: float
    noi: float
    cashflow: float


class ActualsResponse(BaseModel):
    """Monthly rollup with averages and cash flow volatility."""

    property_id: str
    months: List[MonthlyActualsResponse]
    avg_monthly_cashflow: Optional[float]
    avg_monthly_noi: Optional[float]
    cashflow_volatility: Optional[float]


# ============================================================================
# HELPERS
# ============================================================================

def _active_transactions(db: Session):
    return db.query(Transaction).filter(Transaction.is_deleted == False)  # noqa: E712


def _load_rules(db: Session) -> List[TransactionRule]:
    return db.query(TransactionRule).order_by(TransactionRule.position).all()


def _category_rules(db: Session) -> List[ledger.CategoryRule]:
    return [ledger.CategoryRule(needle=r.needle, category=r.category) for r in _load_rules(db)]


def _check_property(db: Session, property_id: str):
    if property_id != ledger.UNASSIGNED:
        _get_deal_or_404(db, property_id)


def _to_record(tx: Transaction) -> ledger.TransactionRecord:
    return ledger.TransactionRecord(
        date=tx.transaction_date,
        description=tx.description,
        amount=tx.amount,
        type=tx.type,
        category=tx.category,
        property_id=tx.property_id,
    )


def _to_model(record: ledger.TransactionRecord) -> Transaction:
    return Transaction(
        transaction_date=record.date,
        description=record.description,
        amount=record.amount,
        type=record.type,
        category=record.category,
        property_id=record.property_id,
    )


def _actuals(db: Session, property_id: str) -> ledger.ActualsSummary:
    records = [_to_record(tx) for tx in _active_transactions(db).all()]
    return ledger.summarize_actuals(ledger.rollup_by_month(records, property_id=property_id))


# ============================================================================
# CATEGORIES AND RULES
# ============================================================================

@router.get("/categories", response_model=List[str])
async def list_categories():
    """Default category list."""
    return list(ledger.DEFAULT_CATEGORIES)


@router.get("/rules", response_model=List[RuleResponse])
async def list_rules(db: Session = Depends(get_db)):
    """Categorization rules in the order they are tried."""
    return [RuleResponse.model_validate(r) for r in _load_rules(db)]


@router.post("/rules", response_model=RuleResponse, status_code=201)
async def create_rule(rule_data: RuleInput, db: Session = Depends(get_db)):
    """Append a keyword rule. Earlier rules win."""
    needle = rule_data.needle.strip()
    if not needle:
        raise HTTPException(status_code=400, detail="Rule keyword is required")

    last = db.query(func.max(TransactionRule.position)).scalar()
    rule = TransactionRule(
        needle=needle,
        category=rule_data.category or ledger.DEFAULT_CATEGORY,
        position=0 if last is None else last + 1,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)

    logger.info(f"Added rule '{rule.needle}' -> {rule.category}")
    return RuleResponse.model_validate(rule)


@router.delete("/rules/{rule_id}")
async def delete_rule(rule_id: str, db: Session = Depends(get_db)):
    rule = db.query(TransactionRule).filter(TransactionRule.id == rule_id).first()
    if not rule:
        raise HTTPException(status_code=404, detail="Rule not found")

    db.delete(rule)
    db.commit()
    return {"deleted": True, "id": rule_id}


# ============================================================================
# ACTUALS
# ============================================================================

@router.get("/actuals", response_model=ActualsResponse)
async def get_actuals(
    property_id: str = ledger.ALL_PROPERTIES,
    db: Session = Depends(get_db),
):
    """Monthly income, expense, debt, NOI and cash flow."""
    summary = _actuals(db, property_id)
    return ActualsResponse(
        property_id=property_id,
        months=[
            MonthlyActualsResponse(
                month=m.month, count=m.count, income=m.income, expense=m.expense,
                debt=m.debt, noi=m.noi, cashflow=m.cashflow,
            )
            for m in summary.months
        ],
        avg_monthly_cashflow=summary.avg_monthly_cashflow,
        avg_monthly_noi=summary.avg_monthly_noi,
        cashflow_volatility=summary.cashflow_volatility,
    )


@router.get("/actuals.csv")
async def download_actuals(
    property_id: str = ledger.ALL_PROPERTIES,
    db: Session = Depends(get_db),
):
    """Monthly rollup as a CSV download."""
    summary = _actuals(db, property_id)
    filename = f"actuals_{property_id}_{date.today().isoformat()}.csv"
    return Response(
        content=ledger.monthly_csv(summary.months),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# TRANSACTIONS
# ============================================================================

@router.get("/", response_model=TransactionListResponse)
async def list_transactions(
    property_id: str = ledger.ALL_PROPERTIES,
    q: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """List transactions, newest date first, filtered by property and description."""
    query = _active_transactions(db)
    if property_id != ledger.ALL_PROPERTIES:
        query = query.filter(Transaction.property_id == property_id)
    if q and q.strip():
        query = query.filter(Transaction.description.ilike(f"%{q.strip()}%"))

    query = query.order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
    total = query.count()
    items = query.offset(skip).limit(limit).all()

    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in items],
        total=total,
    )


@router.post("/", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    tx_data: TransactionInput,
    db: Session = Depends(get_db),
):
    """Record a transaction. Matching rules override the given category."""
    _check_property(db, tx_data.property_id)

    record = ledger.normalize_transaction(
        date_value=tx_data.transaction_date,
        description=tx_data.description,
        amount=tx_data.amount,
        tx_type=tx_data.type,
        category=tx_data.category,
        property_id=tx_data.property_id,
    )
    if tx_data.apply_rules:
        record = ledger.apply_rules(record, _category_rules(db))

    db_tx = _to_model(record)
    db.add(db_tx)
    db.commit()
    db.refresh(db_tx)

    logger.info(f"Recorded {db_tx.type} {db_tx.amount:.2f} as {db_tx.category}")
    return TransactionResponse.model_validate(db_tx)


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_transactions(
    import_data: ImportInput,
    db: Session = Depends(get_db),
):
    """Import a CSV export, categorizing each row with the stored rules."""
    _check_property(db, import_data.property_id)

    records = ledger.parse_csv_transactions(
        import_data.csv_text, property_id=import_data.property_id
    )
    if len(records) > settings.tx_max_import_rows:
        raise HTTPException(
            status_code=400,
            detail=f"CSV has {len(records)} rows, limit is {settings.tx_max_import_rows}",
        )

    rules = _category_rules(db)
    db_items = [_to_model(ledger.apply_rules(r, rules)) for r in records]
    db.add_all(db_items)
    db.commit()
    for item in db_items:
        db.refresh(item)

    logger.info(f"Imported {len(db_items)} transactions for {import_data.property_id}")
    return ImportResponse(
        imported=len(db_items),
        transactions=[TransactionResponse.model_validate(t) for t in db_items],
    )


@router.delete("/")
async def clear_transactions(
    property_id: str = ledger.ALL_PROPERTIES,
    db: Session = Depends(get_db),
):
    """Soft delete every transaction, or only one property's."""
    query = _active_transactions(db)
    if property_id != ledger.ALL_PROPERTIES:
        query = query.filter(Transaction.property_id == property_id)

    deleted = query.update({Transaction.is_deleted: True}, synchronize_session=False)
    db.commit()

    logger.info(f"Cleared {deleted} transactions ({property_id})")
    return {"deleted": deleted}


@router.get("/{tx_id}", response_model=TransactionResponse)
async def get_transaction(tx_id: str, db: Session = Depends(get_db)):
    tx = _active_transactions(db).filter(Transaction.id == tx_id).first()
    if not tx:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.model_validate(tx)


@router.delete("/{tx_id}")
async def delete_transaction(tx_id: str, db: Session = Depends(get_db)):
    """Soft delete a transaction."""
    tx = _active_transactions(db).filter(Transaction.id == tx_id).first()
    if not tx:
        raise HTTPException(status_code=404, detail="Transaction not found")

    tx.is_deleted = True
    db.commit()

    logger.info(f"Deleted transaction {tx_id}")
    return {"deleted": True, "id": tx_id}
