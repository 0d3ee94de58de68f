"""
Pro Forma Calculations

Annual operating statement and single-pass strategy economics (flip, BRRRR)
derived from a DealParameters snapshot.
"""

import math
from dataclasses import dataclass
from typing import Iterable

from app.calculations.amortization import amort_schedule, balance_after, monthly_payment
from app.calculations.deal import DealParameters, LineItem, clamp, finite

# Each percent-of-income bucket is capped individually, not jointly
MAX_BUCKET_FRACTION = 0.9
MAX_SELLING_COST_FRACTION = 0.25


@dataclass(frozen=True)
class ProFormaResult:
    """Annual pro forma figures. Ratios are fractions (0.05 = 5%)."""

    gsi: float
    vacancy: float
    egi: float
    taxes: float
    insurance: float
    hoa: float
    utilities: float
    management: float
    maintenance: float
    capex: float
    other_expenses: float
    opex: float
    noi: float
    debt_service: float
    cashflow: float
    cap_rate: float
    cash_on_cash: float
    dscr: float
    breakeven_occupancy: float


@dataclass(frozen=True)
class FlipResult:
    sale_price: float
    months_held: float
    holding_costs: float
    selling_costs: float
    loan_balance: float
    total_out: float
    net_proceeds: float
    profit: float
    roi: float


@dataclass(frozen=True)
class BrrrrResult:
    appraised_value: float
    new_loan: float
    payoff: float
    cash_out: float
    cash_left_in: float
    new_debt_service: float
    cashflow_after_refi: float
    coc_after_refi: float


def compute_loan_amount(params: DealParameters) -> float:
    """Explicit loan amount if set, otherwise price less the down payment."""
    if params.loan_amount is not None and math.isfinite(float(params.loan_amount)):
        return float(params.loan_amount)
    down = clamp(finite(params.down_payment_pct) / 100, 0.0, 1.0)
    return finite(params.purchase_price) * (1 - down)


def total_cash_invested(params: DealParameters) -> float:
    """Down payment + points on the loan + closing + rehab + loan fees."""
    loan = compute_loan_amount(params)
    down = finite(params.purchase_price) - loan
    points = loan * (finite(params.points_pct) / 100)
    return (
        down
        + finite(params.closing_costs)
        + finite(params.rehab_costs)
        + finite(params.loan_fees)
        + points
    )


def sum_lines(lines: Iterable[LineItem]) -> float:
    return sum(finite(line.amount) for line in lines)


def proforma_annual(params: DealParameters) -> ProFormaResult:
    """
    Calculate the annual pro forma.

    Vacancy, management, maintenance and capex are percentages of gross
    scheduled income, each clamped to at most 90%. Together they may exceed
    100% and drive NOI negative; health checks report that case.

    Args:
        params: Deal snapshot

    Returns:
        ProFormaResult with zero ratios wherever the denominator is not positive
    """
    rent = finite(params.rent_monthly) * 12
    other_income = sum_lines(params.other_income_lines) * 12
    gsi = rent + other_income

    def bucket(pct: float) -> float:
        return gsi * clamp(finite(pct) / 100, 0.0, MAX_BUCKET_FRACTION)

    vacancy = bucket(params.vacancy_pct)
    egi = gsi - vacancy

    taxes = finite(params.property_taxes_annual)
    insurance = finite(params.insurance_annual)
    hoa = finite(params.hoa_monthly) * 12
    utilities = finite(params.utilities_monthly) * 12

    management = bucket(params.management_pct)
    maintenance = bucket(params.maintenance_pct)
    capex = bucket(params.capex_pct)

    other_expenses = sum_lines(params.other_expense_lines) * 12

    opex = (
        taxes + insurance + hoa + utilities
        + management + maintenance + capex + other_expenses
    )
    noi = egi - opex

    loan = compute_loan_amount(params)
    debt_service = monthly_payment(loan, params.interest_rate, params.term_years) * 12
    cashflow = noi - debt_service

    price = finite(params.purchase_price)
    invested = total_cash_invested(params)

    return ProFormaResult(
        gsi=gsi,
        vacancy=vacancy,
        egi=egi,
        taxes=taxes,
        insurance=insurance,
        hoa=hoa,
        utilities=utilities,
        management=management,
        maintenance=maintenance,
        capex=capex,
        other_expenses=other_expenses,
        opex=opex,
        noi=noi,
        debt_service=debt_service,
        cashflow=cashflow,
        cap_rate=noi / price if price > 0 else 0.0,
        cash_on_cash=cashflow / invested if invested > 0 else 0.0,
        dscr=noi / debt_service if debt_service > 0 else 0.0,
        breakeven_occupancy=(opex + debt_service) / gsi if gsi > 0 else 0.0,
    )


def flip_results(params: DealParameters) -> FlipResult:
    """Buy, rehab and resell: profit and ROI on total out-of-pocket cash."""
    sale = finite(params.flip_resale_price)
    months = finite(params.flip_months_held)

    purchase = finite(params.purchase_price)
    holding = finite(params.flip_holding_costs_monthly) * months

    selling_pct = clamp(
        finite(params.selling_cost_pct) / 100, 0.0, MAX_SELLING_COST_FRACTION
    )
    selling = sale * selling_pct + finite(params.flip_extra_selling_costs)

    loan = compute_loan_amount(params)
    if months <= 0:
        payoff = loan
    else:
        # Payoff is the balance on the original loan after the months held
        schedule = amort_schedule(loan, params.interest_rate, params.term_years)
        payoff = balance_after(schedule, max(1, int(math.floor(months))))

    total_out = (
        (purchase - loan)
        + finite(params.closing_costs)
        + finite(params.rehab_costs)
        + finite(params.loan_fees)
        + loan * finite(params.points_pct) / 100
        + holding
    )
    net_proceeds = sale - selling - payoff
    profit = net_proceeds - total_out

    return FlipResult(
        sale_price=sale,
        months_held=months,
        holding_costs=holding,
        selling_costs=selling,
        loan_balance=payoff,
        total_out=total_out,
        net_proceeds=net_proceeds,
        profit=profit,
        roi=profit / total_out if total_out > 0 else 0.0,
    )


def brrrr_results(params: DealParameters) -> BrrrrResult:
    """
    Buy, rehab, rent, refinance: cash pulled out at the refinance and the
    cash-on-cash return on what is left in the deal.

    The refinance is assumed to happen right after rehab, so the payoff is
    the full original loan.
    """
    appraised = finite(params.after_repair_value) or finite(params.purchase_price)
    ltv = clamp(finite(params.brrrr_refi_ltv_pct) / 100, 0.0, 1.0)
    new_loan = appraised * ltv

    payoff = compute_loan_amount(params)
    cash_out = max(0.0, new_loan - payoff - finite(params.brrrr_refi_costs))
    cash_left_in = total_cash_invested(params) - cash_out

    new_debt_service = monthly_payment(
        new_loan, params.brrrr_refi_rate, params.brrrr_refi_term_years
    ) * 12
    cashflow_after_refi = proforma_annual(params).noi - new_debt_service

    return BrrrrResult(
        appraised_value=appraised,
        new_loan=new_loan,
        payoff=payoff,
        cash_out=cash_out,
        cash_left_in=cash_left_in,
        new_debt_service=new_debt_service,
        cashflow_after_refi=cashflow_after_refi,
        coc_after_refi=(
            cashflow_after_refi / cash_left_in if cash_left_in > 0 else 0.0
        ),
    )
