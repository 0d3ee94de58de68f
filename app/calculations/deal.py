"""
Deal Parameters

Immutable snapshot of every assumption the engine reads. Percent fields are
stored as 0-100 values and clamped by the formulas that consume them.
"""

import math
from dataclasses import dataclass, fields, replace, asdict
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


def finite(value: Any) -> float:
    """Coerce a numeric field to float, reading None/NaN/inf as 0."""
    if value is None:
        return 0.0
    number = float(value)
    return number if math.isfinite(number) else 0.0


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


@dataclass(frozen=True)
class LineItem:
    """An itemized monthly income or expense line."""

    label: str = ""
    amount: float = 0.0


def _to_lines(lines: Optional[Iterable[Any]]) -> Tuple[LineItem, ...]:
    if not lines:
        return ()
    out = []
    for line in lines:
        if isinstance(line, LineItem):
            out.append(line)
        elif isinstance(line, Mapping):
            out.append(LineItem(label=str(line.get("label", "")), amount=line.get("amount", 0.0)))
        else:
            raise TypeError(f"Unsupported line item: {line!r}")
    return tuple(out)


@dataclass(frozen=True)
class DealParameters:
    """Flat record of deal assumptions. Never mutated by the engine."""

    property_name: str = ""
    address: str = ""

    # Acquisition
    purchase_price: float = 350000.0
    closing_costs: float = 8000.0
    rehab_costs: float = 0.0
    after_repair_value: float = 350000.0

    # Financing
    down_payment_pct: float = 25.0
    interest_rate: float = 6.75
    term_years: float = 30.0
    points_pct: float = 0.0
    loan_fees: float = 0.0
    loan_amount: Optional[float] = None  # None = derive from price and down %

    # Income (monthly)
    rent_monthly: float = 2800.0
    other_income_lines: Tuple[LineItem, ...] = ()

    # Fixed expenses
    property_taxes_annual: float = 3600.0
    insurance_annual: float = 1200.0
    hoa_monthly: float = 0.0
    utilities_monthly: float = 0.0

    # Percent-of-income expenses
    vacancy_pct: float = 5.0
    management_pct: float = 8.0
    maintenance_pct: float = 5.0
    capex_pct: float = 5.0
    other_expense_lines: Tuple[LineItem, ...] = ()

    # Exit
    holding_years: float = 10.0
    selling_cost_pct: float = 7.0
    appreciation_rate: float = 3.0
    exit_cap_rate: float = 6.5

    # Flip
    flip_resale_price: float = 420000.0
    flip_months_held: float = 6.0
    flip_holding_costs_monthly: float = 0.0
    flip_extra_selling_costs: float = 0.0

    # BRRRR
    brrrr_refi_ltv_pct: float = 75.0
    brrrr_refi_costs: float = 6000.0
    brrrr_refi_rate: float = 6.5
    brrrr_refi_term_years: float = 30.0

    def __post_init__(self):
        # Lists handed in by callers are frozen into tuples of LineItem
        object.__setattr__(self, "other_income_lines", _to_lines(self.other_income_lines))
        object.__setattr__(self, "other_expense_lines", _to_lines(self.other_expense_lines))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DealParameters":
        """Build a snapshot from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["other_income_lines"] = [dict(x) for x in data["other_income_lines"]]
        data["other_expense_lines"] = [dict(x) for x in data["other_expense_lines"]]
        return data

    def with_changes(self, **changes: Any) -> "DealParameters":
        """Return a new snapshot with the given fields replaced."""
        return replace(self, **changes)


def scale_lines(lines: Iterable[LineItem], factor: float) -> Tuple[LineItem, ...]:
    return tuple(LineItem(label=x.label, amount=finite(x.amount) * factor) for x in lines)
