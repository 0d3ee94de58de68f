"""
Tests for the Monte Carlo projection engine.
"""

import numpy as np
import pytest

from app.calculations import monte_carlo
from app.calculations.amortization import amort_schedule, balance_after
from app.calculations.deal import DealParameters
from app.calculations.irr import calculate_irr
from app.calculations.monte_carlo import (
    Distribution,
    DistributionSpec,
    parse_mean_std,
    project_year,
    run_monte_carlo,
    standard_normal,
)
from app.calculations.proforma import proforma_annual, total_cash_invested


def fixed_spec(rent=0.0, expense=0.0, appreciation=3.0, vacancy=5.0):
    """Zero-variance distributions."""
    return DistributionSpec(
        rent_growth=Distribution(rent, 0.0),
        expense_growth=Distribution(expense, 0.0),
        appreciation=Distribution(appreciation, 0.0),
        vacancy=Distribution(vacancy, 0.0),
    )


class TestSampling:
    """Test distributions and the normal sampler."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3 ± 2", (3.0, 2.0)),
            ("3+/-2", (3.0, 2.0)),
            ("3,2", (3.0, 2.0)),
            (" 5 ± 1.5 ", (5.0, 1.5)),
            ("4", (4.0, 0.0)),
            ("-1.5", (-1.5, 0.0)),
        ],
    )
    def test_parse_mean_std(self, text, expected):
        dist = parse_mean_std(text)
        assert (dist.mean, dist.std) == expected

    def test_parse_mean_std_malformed(self):
        with pytest.raises(ValueError):
            parse_mean_std("three")

    @pytest.mark.parametrize("text", ["nan,0", "3 ± inf", "-inf", "nan"])
    def test_parse_mean_std_non_finite(self, text):
        with pytest.raises(ValueError):
            parse_mean_std(text)

    def test_standard_normal_moments(self):
        rng = np.random.default_rng(123)
        draws = np.array([standard_normal(rng) for _ in range(20000)])
        assert abs(draws.mean()) < 0.05
        assert abs(draws.std() - 1) < 0.05

    def test_zero_std_sample_is_mean(self):
        rng = np.random.default_rng(1)
        assert Distribution(4.0, 0.0).sample(rng) == pytest.approx(0.04)

    def test_spec_from_params(self):
        spec = DistributionSpec.from_params(DealParameters(appreciation_rate=4, vacancy_pct=7))
        assert spec.appreciation.mean == 4
        assert spec.vacancy.mean == 7


class TestMonteCarlo:
    """Test simulation runs and aggregation."""

    def test_zero_variance_collapses(self, base_deal):
        result = run_monte_carlo(base_deal, runs=200, years=10, dist=fixed_spec(2, 2), seed=1)

        assert result.irr_count == 200
        assert result.irr_p10 == result.irr_p50 == result.irr_p90
        assert result.irr_mean == pytest.approx(result.irr_p50)
        assert result.net_sale_p10 == result.net_sale_p50 == result.net_sale_p90

    def test_zero_variance_appreciation_value(self, base_deal):
        years = 10
        result = run_monte_carlo(base_deal, runs=100, years=years, dist=fixed_spec(), seed=1)

        schedule = amort_schedule(262500, 6.75, 30)
        expected_net_sale = 350000 * 1.03 ** years * (1 - 0.07) - balance_after(schedule, 120)
        assert result.net_sale_p50 == pytest.approx(expected_net_sale)

        # No growth and base vacancy: every year earns the base cash flow
        cashflow = proforma_annual(base_deal).cashflow
        flows = [-total_cash_invested(base_deal)] + [cashflow] * years
        flows[-1] += expected_net_sale
        assert result.irr_p50 == pytest.approx(calculate_irr(flows), abs=1e-9)

    def test_exit_cap_value(self, base_deal):
        result = run_monte_carlo(
            base_deal, runs=100, years=5, dist=fixed_spec(), exit_method="exitcap", seed=1
        )
        noi = proforma_annual(base_deal).noi
        schedule = amort_schedule(262500, 6.75, 30)
        expected = noi / 0.065 * (1 - 0.07) - balance_after(schedule, 60)
        assert result.net_sale_p50 == pytest.approx(expected)

    def test_exit_cap_is_clamped(self, base_deal):
        params = base_deal.with_changes(exit_cap_rate=0)
        result = run_monte_carlo(
            params, runs=100, years=5, dist=fixed_spec(), exit_method="exitcap", seed=1
        )
        noi = proforma_annual(params).noi
        balance = balance_after(amort_schedule(262500, 6.75, 30), 60)
        assert result.net_sale_p50 == pytest.approx(noi / 0.01 * 0.93 - balance)

    def test_growth_compounds_from_year_two(self, base_deal):
        result = run_monte_carlo(
            base_deal, runs=1, years=3, dist=fixed_spec(rent=10), seed=1, keep_samples=True
        )
        flows = result.samples[0].cash_flows
        ds = proforma_annual(base_deal).debt_service

        assert flows[1] == pytest.approx(proforma_annual(base_deal).cashflow)
        year2 = proforma_annual(base_deal.with_changes(rent_monthly=2800 * 1.1))
        assert flows[2] == pytest.approx(year2.noi - ds)

    def test_vacancy_is_clamped(self, base_deal):
        result = run_monte_carlo(
            base_deal, runs=1, years=2, dist=fixed_spec(vacancy=80), seed=1, keep_samples=True
        )
        expected = project_year(base_deal, 1, 0.0, 0.0, 0.5)
        ds = proforma_annual(base_deal).debt_service
        assert result.samples[0].cash_flows[1] == pytest.approx(expected.noi - ds)

    def test_horizon_past_loan_term(self, base_deal):
        params = base_deal.with_changes(term_years=5)
        result = run_monte_carlo(params, runs=100, years=10, dist=fixed_spec(), seed=1)
        expected = 350000 * 1.03 ** 10 * 0.93
        assert result.net_sale_p50 == pytest.approx(expected, abs=0.01)

    def test_samples(self, base_deal):
        result = run_monte_carlo(base_deal, runs=150, years=7, seed=3, keep_samples=True)
        assert len(result.samples) == 150
        assert all(len(s.cash_flows) == 8 for s in result.samples)
        assert result.samples[0].cash_flows[0] == pytest.approx(-95500)

    def test_samples_not_kept_by_default(self, base_deal):
        assert run_monte_carlo(base_deal, runs=100, years=5, seed=3).samples == []

    def test_seed_is_reproducible(self, base_deal):
        first = run_monte_carlo(base_deal, runs=300, years=10, seed=42)
        second = run_monte_carlo(base_deal, runs=300, years=10, seed=42)
        other = run_monte_carlo(base_deal, runs=300, years=10, seed=43)

        assert first == second
        assert first.irr_p50 != other.irr_p50

    def test_injected_generator(self, base_deal):
        seeded = run_monte_carlo(base_deal, runs=100, years=5, seed=9)
        injected = run_monte_carlo(base_deal, runs=100, years=5, rng=np.random.default_rng(9))
        assert seeded == injected

    def test_percentiles_are_ordered(self, base_deal):
        result = run_monte_carlo(base_deal, runs=500, years=10, seed=5)
        assert result.irr_p10 <= result.irr_p50 <= result.irr_p90
        assert result.net_sale_p10 <= result.net_sale_p50 <= result.net_sale_p90

    def test_undefined_irr_excluded(self, base_deal, monkeypatch):
        monkeypatch.setattr(monte_carlo, "calculate_irr", lambda flows: None)
        result = run_monte_carlo(base_deal, runs=100, years=5, dist=fixed_spec(), seed=1)

        assert result.irr_count == 0
        assert result.irr_p10 is None
        assert result.irr_mean is None
        assert result.net_sale_p50 is not None

    def test_non_finite_draws_are_excluded(self, base_deal):
        dist = fixed_spec()
        dist = DistributionSpec(
            rent_growth=dist.rent_growth,
            expense_growth=dist.expense_growth,
            appreciation=Distribution(float("nan"), 0.0),
            vacancy=dist.vacancy,
        )
        result = run_monte_carlo(base_deal, runs=100, years=5, dist=dist, seed=1)

        assert result.irr_count == 0
        assert result.irr_p50 is None
        assert result.net_sale_p10 is None
        assert result.net_sale_p90 is None

    def test_zero_runs(self, base_deal):
        result = run_monte_carlo(base_deal, runs=0, years=5)
        assert result.irr_p50 is None
        assert result.net_sale_p50 is None

    def test_unknown_exit_method(self, base_deal):
        with pytest.raises(ValueError):
            run_monte_carlo(base_deal, runs=10, years=5, exit_method="dcf")

    def test_progress_between_batches(self, base_deal):
        calls = []
        run_monte_carlo(
            base_deal, runs=250, years=3, seed=1, batch_size=100,
            progress=lambda done, total: calls.append((done, total)),
        )
        assert calls == [(100, 250), (200, 250), (250, 250)]

    def test_progress_can_cancel(self, base_deal):
        class Cancelled(Exception):
            pass

        def cancel(done, total):
            raise Cancelled()

        with pytest.raises(Cancelled):
            run_monte_carlo(base_deal, runs=500, years=3, batch_size=100, progress=cancel)

    def test_degenerate_deal_does_not_raise(self):
        params = DealParameters(purchase_price=0, rent_monthly=0, closing_costs=0, term_years=0)
        result = run_monte_carlo(params, runs=100, years=5, seed=1)
        assert result.runs == 100
