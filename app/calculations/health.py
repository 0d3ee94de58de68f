"""
Deal health checks and input issues.

The pro forma deliberately lets pathological inputs drive NOI or cash flow
negative; these checks are where such deals are flagged for the user.
"""

import math
from dataclasses import dataclass
from typing import List

from app.calculations.deal import DealParameters, finite
from app.calculations.proforma import proforma_annual, total_cash_invested

MIN_DSCR = 1.15

LEVEL_MISSING = "missing"
LEVEL_WARN = "warn"


@dataclass(frozen=True)
class HealthCheck:
    title: str
    detail: str
    bad: bool


@dataclass(frozen=True)
class InputIssue:
    level: str
    field: str
    title: str
    detail: str


def health_checks(params: DealParameters) -> List[HealthCheck]:
    """Evaluate the deal's operating health from its pro forma."""
    pf = proforma_annual(params)
    checks = []

    if pf.cashflow < 0:
        checks.append(HealthCheck(
            "Negative annual cash flow",
            "NOI is below debt service. Consider higher rent, a lower price, "
            "a bigger down payment, or different financing.",
            True,
        ))
    else:
        checks.append(HealthCheck(
            "Cash flow is positive", "Debt service is covered with some margin.", False
        ))

    if pf.dscr and pf.dscr < MIN_DSCR:
        checks.append(HealthCheck(
            f"DSCR < {MIN_DSCR}",
            "Many lenders like 1.15-1.25+. The cushion is thin.",
            True,
        ))
    else:
        checks.append(HealthCheck(
            "DSCR looks okay", "Coverage is reasonable for typical underwriting.", False
        ))

    if total_cash_invested(params) <= 0:
        checks.append(HealthCheck(
            "Cash invested is 0",
            "For a creative deal, set loan amount, closing or rehab so "
            "return metrics compute.",
            True,
        ))

    if pf.gsi > 0 and pf.vacancy + pf.management + pf.maintenance + pf.capex >= pf.gsi:
        checks.append(HealthCheck(
            "Percent-of-income expenses exceed 100%",
            "Vacancy, management, maintenance and capex together consume all "
            "gross income, so NOI is negative.",
            True,
        ))

    return checks


def _is_number(value) -> bool:
    try:
        return value is not None and math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def input_issues(params: DealParameters) -> List[InputIssue]:
    """Missing required inputs and suspicious zero values."""
    issues = []

    required = [
        ("purchase_price", "Purchase Price"),
        ("rent_monthly", "Rent"),
        ("term_years", "Term (years)"),
    ]
    for name, label in required:
        value = getattr(params, name)
        if not _is_number(value) or float(value) < 1:
            issues.append(InputIssue(
                LEVEL_MISSING, name, f"{label} is missing",
                "Fill this in for reliable calculations.",
            ))

    down = params.down_payment_pct
    rate = params.interest_rate

    if _is_number(down) and float(down) == 0:
        issues.append(InputIssue(
            LEVEL_WARN, "down_payment_pct", "Down payment is 0%",
            "If this isn't an all-cash deal, set a down payment %.",
        ))
    if _is_number(rate) and float(rate) == 0 and (
        not _is_number(down) or float(down) < 99.9
    ):
        issues.append(InputIssue(
            LEVEL_WARN, "interest_rate", "Interest rate is 0%",
            "If financing is involved, enter an interest rate.",
        ))

    zero_warnings = [
        ("property_taxes_annual", "Taxes are 0",
         "If unknown, estimate annual taxes for more accurate NOI and cash flow."),
        ("insurance_annual", "Insurance is 0",
         "If unknown, estimate annual insurance for more accurate NOI and cash flow."),
        ("vacancy_pct", "Vacancy is 0%",
         "Most rentals have some vacancy; 3-8% is common depending on market."),
    ]
    for name, title, detail in zero_warnings:
        if finite(getattr(params, name)) == 0:
            issues.append(InputIssue(LEVEL_WARN, name, title, detail))

    return issues
