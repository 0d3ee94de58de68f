"""
Loan Amortization Calculations

Implements the fixed-rate monthly payment and amortization schedule
(Excel PMT/IPMT/PPMT behaviour), with rates given as annual percentages.
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Sequence

from app.calculations.deal import finite

PAID_OFF_THRESHOLD = 0.005


@dataclass(frozen=True)
class AmortizationRow:
    """One month of a loan schedule."""

    month: int
    payment: float
    principal: float
    interest: float
    balance: float


def total_months(term_years: float) -> int:
    """Term in months, rounded half up."""
    return int(math.floor(finite(term_years) * 12 + 0.5))


def monthly_payment(
    principal: float, annual_rate_pct: float, term_years: float
) -> float:
    """
    Calculate monthly loan payment.

    Args:
        principal: Loan principal amount
        annual_rate_pct: Annual interest rate in percent (e.g., 6.75)
        term_years: Amortization term in years

    Returns:
        Monthly payment amount (0 for a non-positive principal or term)
    """
    principal = finite(principal)
    monthly_rate = finite(annual_rate_pct) / 100 / 12
    months = total_months(term_years)

    if principal <= 0 or months <= 0:
        return 0.0

    growth = (1 + monthly_rate) ** months
    # Rates below float resolution leave growth at exactly 1
    if monthly_rate == 0 or growth - 1 == 0:
        return principal / months

    return principal * (monthly_rate * growth) / (growth - 1)


def iter_amortization(
    principal: float, annual_rate_pct: float, term_years: float
) -> Iterator[AmortizationRow]:
    """
    Lazily yield amortization rows.

    A payment smaller than the accrued interest is not allowed to grow the
    balance: the principal portion floors at zero. Iteration ends on the row
    whose balance drops to PAID_OFF_THRESHOLD or after the nominal term.
    """
    balance = finite(principal)
    monthly_rate = finite(annual_rate_pct) / 100 / 12
    payment = monthly_payment(principal, annual_rate_pct, term_years)

    for month in range(1, total_months(term_years) + 1):
        interest = balance * monthly_rate
        principal_pmt = max(0.0, payment - interest)
        balance = max(0.0, balance - principal_pmt)

        yield AmortizationRow(
            month=month,
            payment=payment,
            principal=principal_pmt,
            interest=interest,
            balance=balance,
        )

        if balance <= PAID_OFF_THRESHOLD:
            break


def amort_schedule(
    principal: float, annual_rate_pct: float, term_years: float
) -> List[AmortizationRow]:
    """Generate the full amortization schedule as a list."""
    return list(iter_amortization(principal, annual_rate_pct, term_years))


def balance_after(schedule: Sequence[AmortizationRow], month: int) -> float:
    """
    Outstanding balance after `month` payments.

    Months past the end of an early-terminated schedule resolve to its final
    row; an empty schedule (or a non-positive month) resolves to 0.
    """
    if not schedule or month <= 0:
        return 0.0
    return schedule[min(month, len(schedule)) - 1].balance


def calculate_total_interest(schedule: Sequence[AmortizationRow]) -> float:
    """Calculate total interest paid over loan term."""
    return sum(row.interest for row in schedule)


def calculate_total_principal(schedule: Sequence[AmortizationRow]) -> float:
    return sum(row.principal for row in schedule)
