"""
Actuals Ledger

Recorded income, expense and debt transactions per property, keyword-rule
categorization, bank CSV import and monthly rollups (NOI and cash flow).
"""

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Schedule E style buckets plus common landlord categories
DEFAULT_CATEGORIES = (
    "Rent",
    "Other Income",
    "Advertising",
    "Cleaning and Maintenance",
    "Commissions",
    "Insurance",
    "Legal and Professional",
    "Management Fees",
    "Mortgage Interest",
    "Other Interest",
    "Repairs",
    "Supplies",
    "Taxes",
    "Utilities",
    "HOA",
    "CapEx",
    "Travel",
    "Other",
)
DEFAULT_CATEGORY = "Other"

TX_INCOME = "income"
TX_EXPENSE = "expense"
TX_DEBT = "debt"
TX_TYPES = (TX_INCOME, TX_EXPENSE, TX_DEBT)

UNASSIGNED = "unassigned"
ALL_PROPERTIES = "all"

MONTHLY_CSV_HEADER = ("Month", "Transactions", "Income", "Expenses", "Debt", "NOI", "Cash Flow")

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_US_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})(?!\d)")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")

DateLike = Union[date, datetime, str, None]


@dataclass(frozen=True)
class CategoryRule:
    """Assign `category` when `needle` appears in a description (case-insensitive)."""

    needle: str
    category: str = DEFAULT_CATEGORY


@dataclass(frozen=True)
class TransactionRecord:
    date: date
    description: str = ""
    amount: float = 0.0
    type: str = TX_EXPENSE
    category: str = DEFAULT_CATEGORY
    property_id: str = UNASSIGNED

    @property
    def month(self) -> str:
        return self.date.strftime("%Y-%m")


@dataclass(frozen=True)
class MonthlyActuals:
    """Income is signed; expense and debt are magnitudes."""

    month: str
    count: int
    income: float
    expense: float
    debt: float

    @property
    def noi(self) -> float:
        return self.income - self.expense

    @property
    def cashflow(self) -> float:
        return self.income - self.expense - self.debt


@dataclass(frozen=True)
class ActualsSummary:
    months: List[MonthlyActuals]
    avg_monthly_cashflow: Optional[float]
    avg_monthly_noi: Optional[float]
    cashflow_volatility: Optional[float]


def guess_date(text: DateLike, today: Optional[date] = None) -> date:
    """
    Best-effort date from a bank export cell.

    Tries YYYY-MM-DD, then M/D/YYYY or M-D-YY (two-digit years are 20xx),
    then dateutil. Anything unparseable becomes `today`.
    """
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text

    today = today or date.today()
    s = str(text if text is not None else "").strip()
    if not s:
        return today

    try:
        m = _ISO_DATE.match(s)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

        m = _US_DATE.match(s)
        if m:
            year = m.group(3)
            if len(year) == 2:
                year = "20" + year
            return date(int(year), int(m.group(1)), int(m.group(2)))

        return date_parser.parse(s).date()
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable transaction date '{s}', using {today}")
        return today


def parse_amount(text) -> float:
    """Strip currency symbols and separators; malformed or blank reads as 0."""
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        cleaned = _NON_NUMERIC.sub("", str(text if text is not None else ""))
        if not cleaned:
            return 0.0
        try:
            value = float(cleaned)
        except ValueError:
            return 0.0
    return value if math.isfinite(value) else 0.0


def normalize_transaction(
    date_value: DateLike = None,
    description: Optional[str] = "",
    amount=0.0,
    tx_type: Optional[str] = None,
    category: Optional[str] = None,
    property_id: Optional[str] = None,
    today: Optional[date] = None,
) -> TransactionRecord:
    """Build a record with defaults: unknown type is an expense, blank category is Other."""
    return TransactionRecord(
        date=guess_date(date_value, today=today),
        description=str(description or ""),
        amount=parse_amount(amount),
        type=tx_type if tx_type in TX_TYPES else TX_EXPENSE,
        category=str(category or DEFAULT_CATEGORY),
        property_id=property_id or UNASSIGNED,
    )


def apply_rules(tx: TransactionRecord, rules: Iterable[CategoryRule]) -> TransactionRecord:
    """First rule whose keyword occurs in the description wins."""
    description = tx.description.lower()
    for rule in rules:
        needle = (rule.needle or "").strip().lower()
        if not needle:
            continue
        if needle in description:
            return replace(tx, category=rule.category or tx.category)
    return tx


def _column(headers: Sequence[str], needle: str) -> int:
    for i, header in enumerate(headers):
        if header == needle or needle in header:
            return i
    return -1


def _cell(row: Sequence[str], index: int) -> str:
    if 0 <= index < len(row):
        return row[index]
    return ""


def read_csv_rows(text: str) -> List[List[str]]:
    """Rows of a CSV document with blank rows dropped."""
    reader = csv.reader(io.StringIO(text or ""))
    return [row for row in reader if any(cell.strip() for cell in row)]


def parse_csv_transactions(
    text: str,
    property_id: str = UNASSIGNED,
    today: Optional[date] = None,
) -> List[TransactionRecord]:
    """
    Parse a bank or card export.

    Columns are found by header name: "date", "description" (or "memo"),
    and either "amount" or "debit"/"credit". Credits are positive and
    debits negative. The type is income for a non-negative amount and
    expense otherwise.
    """
    rows = read_csv_rows(text)
    if not rows:
        return []

    headers = [h.strip().lower() for h in rows[0]]
    i_date = _column(headers, "date")
    i_desc = _column(headers, "description")
    if i_desc < 0:
        i_desc = _column(headers, "memo")
    i_amount = _column(headers, "amount")
    i_debit = _column(headers, "debit")
    i_credit = _column(headers, "credit")

    records = []
    for row in rows[1:]:
        if i_amount >= 0:
            amount = parse_amount(_cell(row, i_amount))
        else:
            debit = parse_amount(_cell(row, i_debit)) if i_debit >= 0 else 0.0
            credit = parse_amount(_cell(row, i_credit)) if i_credit >= 0 else 0.0
            amount = credit - debit

        records.append(
            normalize_transaction(
                date_value=_cell(row, i_date),
                description=_cell(row, i_desc),
                amount=amount,
                tx_type=TX_INCOME if amount >= 0 else TX_EXPENSE,
                property_id=property_id,
                today=today,
            )
        )

    logger.info(f"Parsed {len(records)} transactions from CSV")
    return records


def rollup_by_month(
    items: Iterable[TransactionRecord], property_id: str = ALL_PROPERTIES
) -> List[MonthlyActuals]:
    """Monthly totals in ascending month order, optionally for one property."""
    buckets = {}
    for tx in items:
        if property_id != ALL_PROPERTIES and tx.property_id != property_id:
            continue
        count, income, expense, debt = buckets.get(tx.month, (0, 0.0, 0.0, 0.0))
        amount = parse_amount(tx.amount)
        if tx.type == TX_INCOME:
            income += amount
        elif tx.type == TX_DEBT:
            debt += abs(amount)
        else:
            expense += abs(amount)
        buckets[tx.month] = (count + 1, income, expense, debt)

    return [
        MonthlyActuals(month=month, count=count, income=income, expense=expense, debt=debt)
        for month, (count, income, expense, debt) in sorted(buckets.items())
    ]


def summarize_actuals(months: List[MonthlyActuals]) -> ActualsSummary:
    """Average monthly cash flow and NOI plus cash flow volatility (population std)."""
    if not months:
        return ActualsSummary(months=[], avg_monthly_cashflow=None,
                              avg_monthly_noi=None, cashflow_volatility=None)

    cashflows = np.array([m.cashflow for m in months], dtype=float)
    nois = np.array([m.noi for m in months], dtype=float)
    return ActualsSummary(
        months=months,
        avg_monthly_cashflow=float(cashflows.mean()),
        avg_monthly_noi=float(nois.mean()),
        cashflow_volatility=float(cashflows.std()),
    )


def monthly_csv(months: Iterable[MonthlyActuals]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(MONTHLY_CSV_HEADER)
    for m in months:
        writer.writerow([
            m.month, m.count,
            f"{m.income:.2f}", f"{m.expense:.2f}", f"{m.debt:.2f}",
            f"{m.noi:.2f}", f"{m.cashflow:.2f}",
        ])
    return buffer.getvalue()
