"""
Sensitivity Grid

Re-evaluates the pro forma over a square grid of rent and vacancy
perturbations around the base deal.
"""

from dataclasses import dataclass
from typing import List

from app.calculations.deal import DealParameters, finite
from app.calculations.proforma import proforma_annual


@dataclass(frozen=True)
class SensitivityGrid:
    """Cash-on-cash (%) by rent change (rows) and vacancy level (columns)."""

    rent_deltas_pct: List[float]
    vacancy_pcts: List[float]
    values: List[List[float]]

    @property
    def center(self) -> int:
        return len(self.rent_deltas_pct) // 2


def sensitivity_grid(
    params: DealParameters,
    rent_delta_pct: float,
    vacancy_delta_pp: float,
    size: int,
) -> SensitivityGrid:
    """
    Build a size x size cash-on-cash grid.

    Row r scales rent by (r - center) * rent_delta_pct percent of the base
    rent; column c adds (c - center) * vacancy_delta_pp points to the base
    vacancy. An odd size puts the unperturbed deal in the center cell.
    """
    size = max(0, int(size))
    center = size // 2
    base_rent = finite(params.rent_monthly)
    base_vacancy = finite(params.vacancy_pct)

    rent_deltas = [(r - center) * rent_delta_pct for r in range(size)]
    vacancy_pcts = [base_vacancy + (c - center) * vacancy_delta_pp for c in range(size)]

    values = []
    for rent_delta in rent_deltas:
        rent = base_rent * (1 + rent_delta / 100)
        row = []
        for vacancy in vacancy_pcts:
            snapshot = params.with_changes(rent_monthly=rent, vacancy_pct=vacancy)
            row.append(proforma_annual(snapshot).cash_on_cash * 100)
        values.append(row)

    return SensitivityGrid(
        rent_deltas_pct=rent_deltas,
        vacancy_pcts=vacancy_pcts,
        values=values,
    )
