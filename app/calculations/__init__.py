"""
Financial Calculation Engine

Pure calculation modules for rental property underwriting: loan
amortization, annual pro forma, IRR, sensitivity, Monte Carlo and the
actuals ledger.
None of them perform I/O or mutate their inputs.
"""

from app.calculations import (
    deal,
    amortization,
    proforma,
    irr,
    statistics,
    sensitivity,
    monte_carlo,
    health,
    transactions,
)

__all__ = [
    "deal",
    "amortization",
    "proforma",
    "irr",
    "statistics",
    "sensitivity",
    "monte_carlo",
    "health",
    "transactions",
]
