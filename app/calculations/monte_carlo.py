"""
Monte Carlo Projection

Projects yearly cash flows under sampled rent growth, expense growth,
appreciation and vacancy, then aggregates IRR and net sale proceeds.

Debt service is held at the original fixed annual amount for every
projected year. The loan terms do not change mid-projection, so the
schedule is only consulted for the payoff balance at exit.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from app.calculations.amortization import AmortizationRow, amort_schedule, balance_after
from app.calculations.deal import DealParameters, clamp, finite, scale_lines
from app.calculations.irr import calculate_irr
from app.calculations.proforma import (
    MAX_SELLING_COST_FRACTION,
    ProFormaResult,
    compute_loan_amount,
    proforma_annual,
    total_cash_invested,
)
from app.calculations.statistics import mean, quantile

logger = logging.getLogger(__name__)

EXIT_APPRECIATION = "appreciation"
EXIT_CAP = "exitcap"
EXIT_METHODS = (EXIT_APPRECIATION, EXIT_CAP)

MAX_VACANCY_FRACTION = 0.5
MIN_EXIT_CAP = 0.01
MAX_EXIT_CAP = 0.25

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class Distribution:
    """Normal distribution in percent units (3.0 = 3%)."""

    mean: float = 0.0
    std: float = 0.0

    def sample(self, rng: np.random.Generator) -> float:
        """Draw one value as a fraction."""
        return (self.mean + self.std * standard_normal(rng)) / 100


@dataclass(frozen=True)
class DistributionSpec:
    rent_growth: Distribution = Distribution(3.0, 2.0)
    expense_growth: Distribution = Distribution(3.0, 1.0)
    appreciation: Distribution = Distribution(3.0, 2.0)
    vacancy: Distribution = Distribution(5.0, 2.0)

    @classmethod
    def from_params(cls, params: DealParameters) -> "DistributionSpec":
        """Defaults centered on the deal's own appreciation and vacancy."""
        return cls(
            appreciation=Distribution(finite(params.appreciation_rate), 2.0),
            vacancy=Distribution(finite(params.vacancy_pct), 2.0),
        )


@dataclass(frozen=True)
class SimulationSample:
    cash_flows: Tuple[float, ...]
    irr: Optional[float]
    net_sale_proceeds: float


@dataclass(frozen=True)
class SimulationResult:
    runs: int
    years: int
    exit_method: str
    irr_count: int
    irr_p10: Optional[float]
    irr_p50: Optional[float]
    irr_p90: Optional[float]
    irr_mean: Optional[float]
    net_sale_p10: Optional[float]
    net_sale_p50: Optional[float]
    net_sale_p90: Optional[float]
    samples: List[SimulationSample] = field(default_factory=list)


@dataclass(frozen=True)
class _TrialContext:
    """Per-run constants shared read-only by every trial."""

    params: DealParameters
    invested: float
    debt_service: float
    payoff_balance: float


def parse_mean_std(text: str) -> Distribution:
    """
    Parse "mean ± std", "mean+/-std", "mean,std" or a bare mean (std 0).

    Raises:
        ValueError: If either number is malformed or not finite
    """
    s = "".join(str(text if text is not None else "").split())
    mean_text, std_text = s, "0"
    for separator in ("±", "+/-", ","):
        parts = s.split(separator)
        if len(parts) == 2:
            mean_text, std_text = parts
            break

    dist = Distribution(mean=float(mean_text), std=float(std_text))
    if not (math.isfinite(dist.mean) and math.isfinite(dist.std)):
        raise ValueError(f"Distribution '{text}' must have a finite mean and std")
    return dist


def standard_normal(rng: np.random.Generator) -> float:
    """Box-Muller transform of two uniform draws on (0, 1)."""
    u = 0.0
    while u == 0.0:
        u = rng.random()
    v = 0.0
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def project_year(
    params: DealParameters,
    year: int,
    rent_growth: float,
    expense_growth: float,
    vacancy: float,
) -> ProFormaResult:
    """Pro forma for projection year `year` (1-based) with compounded lines."""
    rent_mult = (1 + rent_growth) ** (year - 1)
    expense_mult = (1 + expense_growth) ** (year - 1)

    snapshot = params.with_changes(
        rent_monthly=finite(params.rent_monthly) * rent_mult,
        vacancy_pct=vacancy * 100,
        property_taxes_annual=finite(params.property_taxes_annual) * expense_mult,
        insurance_annual=finite(params.insurance_annual) * expense_mult,
        hoa_monthly=finite(params.hoa_monthly) * expense_mult,
        utilities_monthly=finite(params.utilities_monthly) * expense_mult,
        other_expense_lines=scale_lines(params.other_expense_lines, expense_mult),
        other_income_lines=scale_lines(params.other_income_lines, rent_mult),
    )
    return proforma_annual(snapshot)


def _build_context(params: DealParameters, years: int) -> _TrialContext:
    loan = compute_loan_amount(params)
    schedule: List[AmortizationRow] = amort_schedule(
        loan, params.interest_rate, params.term_years
    )
    return _TrialContext(
        params=params,
        invested=total_cash_invested(params),
        debt_service=proforma_annual(params).debt_service,
        payoff_balance=balance_after(schedule, years * 12),
    )


def simulate_trial(
    context: _TrialContext,
    dist: DistributionSpec,
    years: int,
    exit_method: str,
    rng: np.random.Generator,
) -> SimulationSample:
    """Run one stochastic projection."""
    params = context.params

    # Draw order: rent, expenses, appreciation, vacancy
    rent_growth = dist.rent_growth.sample(rng)
    expense_growth = dist.expense_growth.sample(rng)
    appreciation = dist.appreciation.sample(rng)
    vacancy = clamp(dist.vacancy.sample(rng), 0.0, MAX_VACANCY_FRACTION)

    cash_flows = [-context.invested]
    for year in range(1, years + 1):
        pf = project_year(params, year, rent_growth, expense_growth, vacancy)
        cash_flows.append(pf.noi - context.debt_service)

    if exit_method == EXIT_CAP:
        cap = clamp(finite(params.exit_cap_rate) / 100, MIN_EXIT_CAP, MAX_EXIT_CAP)
        terminal = project_year(params, years, rent_growth, expense_growth, vacancy)
        sale_price = terminal.noi / cap
    else:
        sale_price = finite(params.purchase_price) * (1 + appreciation) ** years

    selling_pct = clamp(
        finite(params.selling_cost_pct) / 100, 0.0, MAX_SELLING_COST_FRACTION
    )
    net_sale = sale_price * (1 - selling_pct) - context.payoff_balance

    # Sale proceeds land in the final operating year, not a new period
    cash_flows[-1] += net_sale

    return SimulationSample(
        cash_flows=tuple(cash_flows),
        irr=calculate_irr(cash_flows),
        net_sale_proceeds=net_sale,
    )


def run_monte_carlo(
    params: DealParameters,
    runs: int,
    years: int,
    dist: Optional[DistributionSpec] = None,
    exit_method: str = EXIT_APPRECIATION,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    batch_size: int = 1000,
    keep_samples: bool = False,
) -> SimulationResult:
    """
    Run a Monte Carlo projection.

    Args:
        params: Base deal snapshot (read only)
        runs: Number of trials
        years: Projection horizon in years
        dist: Sampling distributions; defaults to DistributionSpec.from_params
        exit_method: "appreciation" or "exitcap"
        rng: numpy Generator to draw from; built from `seed` when omitted
        seed: Seed for a fresh generator when `rng` is not given
        progress: Called as progress(completed, runs) after each batch. A
            host cancels by raising from the callback.
        batch_size: Trials between progress callbacks
        keep_samples: Attach every SimulationSample to the result

    Returns:
        SimulationResult; IRR and net sale statistics cover only trials
        where that value is finite

    Raises:
        ValueError: If exit_method is unknown
    """
    if exit_method not in EXIT_METHODS:
        raise ValueError(
            f"Unknown exit method '{exit_method}', expected one of {EXIT_METHODS}"
        )

    runs = max(0, int(runs))
    years = max(1, int(years))
    batch_size = max(1, int(batch_size))
    if dist is None:
        dist = DistributionSpec.from_params(params)
    if rng is None:
        rng = np.random.default_rng(seed)

    context = _build_context(params, years)

    irr_values: List[float] = []
    net_sales: List[float] = []
    samples: List[SimulationSample] = []

    completed = 0
    while completed < runs:
        batch_end = min(runs, completed + batch_size)
        for _ in range(completed, batch_end):
            sample = simulate_trial(context, dist, years, exit_method, rng)
            if sample.irr is not None and math.isfinite(sample.irr):
                irr_values.append(sample.irr)
            if math.isfinite(sample.net_sale_proceeds):
                net_sales.append(sample.net_sale_proceeds)
            if keep_samples:
                samples.append(sample)
        completed = batch_end
        logger.debug(f"Monte Carlo progress: {completed}/{runs} trials")
        if progress is not None:
            progress(completed, runs)

    irr_values.sort()
    net_sales.sort()

    logger.info(
        f"Monte Carlo complete: {runs} runs over {years} years "
        f"({len(irr_values)} with a defined IRR)"
    )

    return SimulationResult(
        runs=runs,
        years=years,
        exit_method=exit_method,
        irr_count=len(irr_values),
        irr_p10=quantile(irr_values, 0.10),
        irr_p50=quantile(irr_values, 0.50),
        irr_p90=quantile(irr_values, 0.90),
        irr_mean=mean(irr_values),
        net_sale_p10=quantile(net_sales, 0.10),
        net_sale_p50=quantile(net_sales, 0.50),
        net_sale_p90=quantile(net_sales, 0.90),
        samples=samples,
    )
