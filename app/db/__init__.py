"""
Database configuration and models.
"""

from app.db.database import engine, SessionLocal, get_db
from app.db.models import Base, Deal, Transaction, TransactionRule

__all__ = [
    "engine", "SessionLocal", "get_db", "Base", "Deal", "Transaction", "TransactionRule",
]
