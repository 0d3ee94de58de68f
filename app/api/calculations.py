"""
Financial calculation API endpoints.

These endpoints accept a deal snapshot and return calculated results.
Nothing here is persisted.
"""

import logging
from dataclasses import asdict
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator, model_validator

from app.calculations import amortization, health, irr, monte_carlo, proforma, sensitivity
from app.calculations.deal import DealParameters
from app.config import get_settings

logger = logging.getLogger(__name__)
router = APIRouter()


class LineItemInput(BaseModel):
    """Itemized monthly income or expense line."""

    label: str = ""
    amount: float = 0.0


class DealInput(BaseModel):
    """Deal assumptions. Percentages are 0-100 values."""

    property_name: str = ""
    address: str = ""

    # Acquisition
    purchase_price: float = 350000
    closing_costs: float = 8000
    rehab_costs: float = 0
    after_repair_value: float = 350000

    # Financing
    down_payment_pct: float = 25
    interest_rate: float = 6.75
    term_years: float = 30
    points_pct: float = 0
    loan_fees: float = 0
    loan_amount: Optional[float] = None

    # Income
    rent_monthly: float = 2800
    other_income_lines: List[LineItemInput] = []

    # Expenses
    property_taxes_annual: float = 3600
    insurance_annual: float = 1200
    hoa_monthly: float = 0
    utilities_monthly: float = 0
    vacancy_pct: float = 5
    management_pct: float = 8
    maintenance_pct: float = 5
    capex_pct: float = 5
    other_expense_lines: List[LineItemInput] = []

    # Exit
    holding_years: float = 10
    selling_cost_pct: float = 7
    appreciation_rate: float = 3
    exit_cap_rate: float = 6.5

    # Flip
    flip_resale_price: float = 420000
    flip_months_held: float = 6
    flip_holding_costs_monthly: float = 0
    flip_extra_selling_costs: float = 0

    # BRRRR
    brrrr_refi_ltv_pct: float = 75
    brrrr_refi_costs: float = 6000
    brrrr_refi_rate: float = 6.5
    brrrr_refi_term_years: float = 30

    def to_params(self) -> DealParameters:
        return DealParameters.from_dict(self.model_dump())


@router.post("/proforma")
async def calculate_proforma(inputs: DealInput):
    """Annual pro forma with loan sizing and cash invested."""
    params = inputs.to_params()
    loan = proforma.compute_loan_amount(params)

    return {
        "loan_amount": loan,
        "cash_invested": proforma.total_cash_invested(params),
        "monthly_payment": amortization.monthly_payment(
            loan, params.interest_rate, params.term_years
        ),
        "proforma": asdict(proforma.proforma_annual(params)),
    }


@router.post("/flip")
async def calculate_flip(inputs: DealInput):
    """Buy-rehab-sell economics."""
    return asdict(proforma.flip_results(inputs.to_params()))


@router.post("/brrrr")
async def calculate_brrrr(inputs: DealInput):
    """Buy-rehab-rent-refinance economics."""
    return asdict(proforma.brrrr_results(inputs.to_params()))


@router.post("/health")
async def calculate_health(inputs: DealInput):
    """Deal health checks and input issues."""
    params = inputs.to_params()
    return {
        "checks": [asdict(c) for c in health.health_checks(params)],
        "issues": [asdict(i) for i in health.input_issues(params)],
    }


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: float
    annual_rate_pct: float
    term_years: float
    limit: Optional[int] = Field(default=None, ge=1)


@router.post("/amortization")
async def calculate_amortization(inputs: AmortizationInput):
    """Generate loan amortization schedule."""
    schedule = amortization.amort_schedule(
        inputs.principal, inputs.annual_rate_pct, inputs.term_years
    )
    rows = schedule[: inputs.limit] if inputs.limit else schedule

    return {
        "schedule": [asdict(row) for row in rows],
        "months": len(schedule),
        "total_interest": amortization.calculate_total_interest(schedule),
        "total_principal": amortization.calculate_total_principal(schedule),
    }


class IRRInput(BaseModel):
    """Input for IRR calculation."""

    cash_flows: List[float]


class IRRResponse(BaseModel):
    """Response with IRR calculation. Undefined values are null."""

    irr: Optional[float] = None
    multiple: Optional[float] = None
    profit: float
    npv_at_10_percent: float


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for yearly cash flows."""
    return IRRResponse(
        irr=irr.calculate_irr(inputs.cash_flows),
        multiple=irr.calculate_multiple(inputs.cash_flows),
        profit=irr.calculate_profit(inputs.cash_flows),
        npv_at_10_percent=irr.calculate_npv(inputs.cash_flows, 0.10),
    )


class SensitivityInput(BaseModel):
    """Input for the rent x vacancy sensitivity grid."""

    deal: DealInput = DealInput()
    rent_delta_pct: float = 5.0
    vacancy_delta_pp: float = 3.0
    size: int = Field(default=5, ge=1, le=15)

    @field_validator("size")
    @classmethod
    def size_must_be_odd(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError("size must be odd so the grid has a center cell")
        return v


@router.post("/sensitivity")
async def calculate_sensitivity(inputs: SensitivityInput):
    """Cash-on-cash (%) grid over rent and vacancy perturbations."""
    grid = sensitivity.sensitivity_grid(
        inputs.deal.to_params(),
        inputs.rent_delta_pct,
        inputs.vacancy_delta_pp,
        inputs.size,
    )
    return {
        "rent_deltas_pct": grid.rent_deltas_pct,
        "vacancy_pcts": grid.vacancy_pcts,
        "values": grid.values,
        "center": grid.center,
    }


class DistributionInput(BaseModel):
    """Normal distribution in percent units. Also accepts "3 ± 2" strings."""

    mean: float = Field(0.0, allow_inf_nan=False)
    std: float = Field(0.0, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def parse_text(cls, data):
        if isinstance(data, str):
            dist = monte_carlo.parse_mean_std(data)
            return {"mean": dist.mean, "std": dist.std}
        return data

    def to_distribution(self) -> monte_carlo.Distribution:
        return monte_carlo.Distribution(mean=self.mean, std=self.std)


class MonteCarloInput(BaseModel):
    """Input for a Monte Carlo run. Runs and years are clamped, not rejected."""

    deal: DealInput = DealInput()
    runs: Optional[int] = None
    years: Optional[int] = None
    rent_growth: DistributionInput = DistributionInput(mean=3.0, std=2.0)
    expense_growth: DistributionInput = DistributionInput(mean=3.0, std=1.0)
    appreciation: Optional[DistributionInput] = None
    vacancy: Optional[DistributionInput] = None
    exit_method: Literal["appreciation", "exitcap"] = "appreciation"
    seed: Optional[int] = None
    include_samples: bool = False


class MonteCarloResponse(BaseModel):
    """Aggregated simulation outcome. Undefined statistics are null."""

    runs: int
    years: int
    exit_method: str
    irr_count: int
    irr_p10: Optional[float] = None
    irr_p50: Optional[float] = None
    irr_p90: Optional[float] = None
    irr_mean: Optional[float] = None
    net_sale_p10: Optional[float] = None
    net_sale_p50: Optional[float] = None
    net_sale_p90: Optional[float] = None
    samples: List[dict] = []


def _bounded(value: Optional[int], default: int, lo: int, hi: int) -> int:
    return min(hi, max(lo, value if value is not None else default))


@router.post("/monte-carlo", response_model=MonteCarloResponse)
def calculate_monte_carlo(inputs: MonteCarloInput):
    """Run a Monte Carlo projection of IRR and net sale proceeds."""
    settings = get_settings()
    params = inputs.deal.to_params()

    runs = _bounded(
        inputs.runs, settings.mc_default_runs, settings.mc_min_runs, settings.mc_max_runs
    )
    years = _bounded(
        inputs.years, settings.mc_default_years, settings.mc_min_years, settings.mc_max_years
    )

    defaults = monte_carlo.DistributionSpec.from_params(params)
    dist = monte_carlo.DistributionSpec(
        rent_growth=inputs.rent_growth.to_distribution(),
        expense_growth=inputs.expense_growth.to_distribution(),
        appreciation=(
            inputs.appreciation.to_distribution()
            if inputs.appreciation else defaults.appreciation
        ),
        vacancy=(
            inputs.vacancy.to_distribution() if inputs.vacancy else defaults.vacancy
        ),
    )

    seed = inputs.seed if inputs.seed is not None else settings.mc_seed
    logger.info(
        f"Monte Carlo requested: {runs} runs, {years} years, exit={inputs.exit_method}"
    )

    try:
        result = monte_carlo.run_monte_carlo(
            params,
            runs=runs,
            years=years,
            dist=dist,
            exit_method=inputs.exit_method,
            seed=seed,
            batch_size=settings.mc_batch_size,
            keep_samples=inputs.include_samples,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    data = asdict(result)
    return MonteCarloResponse(**data)
