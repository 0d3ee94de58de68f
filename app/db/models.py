"""
SQLAlchemy ORM models for the saved-deal portfolio and the actuals ledger.
"""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Float,
    Boolean,
    Date,
    DateTime,
    Integer,
    JSON,
    Text,
)
from sqlalchemy.orm import declarative_base
import uuid

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


class AuditMixin:
    """Timestamps and soft-delete flag shared by stored records."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    is_deleted = Column(Boolean, default=False, nullable=False)


class Deal(AuditMixin, Base):
    """
    A saved deal: the full parameter snapshot plus the headline metrics
    computed when it was saved.
    """

    __tablename__ = "deals"

    id = Column(String, primary_key=True, default=generate_uuid)
    property_name = Column(String(255), nullable=False, default="(Untitled)")
    address = Column(Text, nullable=True)

    purchase_price = Column(Float, nullable=True)
    rent_monthly = Column(Float, nullable=True)

    # Metrics at save time (annual, ratios as fractions)
    cashflow = Column(Float, nullable=True)
    cap_rate = Column(Float, nullable=True)
    cash_on_cash = Column(Float, nullable=True)

    # DealParameters.to_dict()
    snapshot = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<Deal {self.property_name}>"


class Transaction(AuditMixin, Base):
    """
    A recorded income, expense or debt payment. `property_id` is a saved
    deal id or "unassigned".
    """

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=generate_uuid)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    amount = Column(Float, nullable=False, default=0.0)
    type = Column(String(20), nullable=False, default="expense")
    category = Column(String(100), nullable=False, default="Other")
    property_id = Column(String, nullable=False, default="unassigned", index=True)

    def __repr__(self):
        return f"<Transaction {self.transaction_date} {self.amount:.2f} {self.category}>"


class TransactionRule(Base):
    """Keyword to category rule, applied in position order."""

    __tablename__ = "transaction_rules"

    id = Column(String, primary_key=True, default=generate_uuid)
    needle = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, default="Other")
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TransactionRule '{self.needle}' -> {self.category}>"
