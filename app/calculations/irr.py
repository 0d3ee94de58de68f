"""
IRR and NPV Calculations

Implements IRR for yearly-spaced cash flows using Newton-Raphson, falling
back to bisection when Newton stalls or diverges.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 80
MAX_BISECTIONS = 120
TOLERANCE = 1e-7
STEP_TOLERANCE = 1e-10
MIN_DERIVATIVE = 1e-12
DEFAULT_GUESS = 0.1
BISECTION_LOW = -0.95
BISECTION_HIGH = 5.0


def calculate_npv(cash_flows: Sequence[float], discount_rate: float) -> float:
    """
    Calculate NPV (Net Present Value) of cash flows.

    Overflow and division by zero yield a non-finite result instead of
    raising, so callers can test with math.isfinite.

    Args:
        cash_flows: Array of cash flows (negative = outflow, positive = inflow)
        discount_rate: Annual discount rate (e.g., 0.10 for 10%)

    Returns:
        NPV value
    """
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(flows.size, dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(flows / np.power(1.0 + discount_rate, periods)))


def _npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    """Calculate derivative of NPV with respect to rate (for Newton-Raphson)."""
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(flows.size, dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(-periods * flows / np.power(1.0 + rate, periods + 1)))


def _newton(cash_flows: List[float]) -> Optional[float]:
    rate = DEFAULT_GUESS

    for _ in range(MAX_ITERATIONS):
        npv = calculate_npv(cash_flows, rate)
        if abs(npv) < TOLERANCE:
            return rate

        dnpv = _npv_derivative(cash_flows, rate)
        if not math.isfinite(dnpv) or abs(dnpv) < MIN_DERIVATIVE:
            return None

        new_rate = rate - npv / dnpv
        if not math.isfinite(new_rate):
            return None

        if abs(new_rate - rate) < STEP_TOLERANCE:
            return new_rate

        rate = new_rate

    return None


def _bisect(cash_flows: List[float]) -> Optional[float]:
    lo, hi = BISECTION_LOW, BISECTION_HIGH
    npv_lo = calculate_npv(cash_flows, lo)
    npv_hi = calculate_npv(cash_flows, hi)

    if not (math.isfinite(npv_lo) and math.isfinite(npv_hi)) or npv_lo * npv_hi > 0:
        return None

    for _ in range(MAX_BISECTIONS):
        mid = (lo + hi) / 2
        npv_mid = calculate_npv(cash_flows, mid)
        if abs(npv_mid) < TOLERANCE:
            return mid
        if npv_lo * npv_mid < 0:
            hi = mid
        else:
            lo, npv_lo = mid, npv_mid

    return (lo + hi) / 2


def calculate_irr(cash_flows: Sequence[float]) -> Optional[float]:
    """
    Calculate IRR (Internal Rate of Return).

    Index 0 is the initial outlay, later indices are yearly net flows.

    Args:
        cash_flows: Array of periodic cash flows

    Returns:
        Annual IRR as decimal (e.g., 0.15 for 15%), or None when no root can
        be found (fewer than two flows, a non-finite flow, or no sign change
        to bracket)
    """
    flows = [float(cf) for cf in cash_flows]
    if len(flows) < 2:
        return None
    if not all(math.isfinite(cf) for cf in flows):
        return None

    rate = _newton(flows)
    if rate is not None:
        return rate

    logger.debug("Newton-Raphson did not converge, falling back to bisection")
    return _bisect(flows)


def calculate_multiple(cash_flows: Sequence[float]) -> Optional[float]:
    """
    Calculate equity multiple.

    Args:
        cash_flows: Array of cash flows (investments are negative)

    Returns:
        Multiple (e.g., 2.0 = 2.0x return), None without any outflow
    """
    total_inflows = sum(cf for cf in cash_flows if cf > 0)
    total_outflows = abs(sum(cf for cf in cash_flows if cf < 0))

    if total_outflows == 0:
        return None

    return total_inflows / total_outflows


def calculate_profit(cash_flows: Sequence[float]) -> float:
    """Calculate profit (total inflows minus total outflows)."""
    return sum(cash_flows)
