"""
Tests for deal health checks and input issues.
"""

from app.calculations.deal import DealParameters
from app.calculations.health import LEVEL_MISSING, LEVEL_WARN, health_checks, input_issues


def titles(checks):
    return [c.title for c in checks if c.bad]


class TestHealthChecks:
    """Test operating health checks."""

    def test_reference_deal(self, base_deal):
        checks = health_checks(base_deal)
        assert checks[0].title == "Cash flow is positive"
        # DSCR is about 1.03 on the reference deal
        assert titles(checks) == ["DSCR < 1.15"]

    def test_negative_cash_flow(self, base_deal):
        checks = health_checks(base_deal.with_changes(rent_monthly=1500))
        assert "Negative annual cash flow" in titles(checks)

    def test_all_cash_deal_skips_dscr_warning(self, base_deal):
        checks = health_checks(base_deal.with_changes(down_payment_pct=100))
        assert "DSCR < 1.15" not in titles(checks)

    def test_no_cash_invested(self):
        params = DealParameters(loan_amount=350000, closing_costs=0)
        assert "Cash invested is 0" in titles(health_checks(params))

    def test_buckets_exceed_income(self, base_deal):
        params = base_deal.with_changes(vacancy_pct=50, management_pct=50)
        assert "Percent-of-income expenses exceed 100%" in titles(health_checks(params))


class TestInputIssues:
    """Test missing and suspicious inputs."""

    def test_reference_deal_has_no_issues(self, base_deal):
        assert input_issues(base_deal) == []

    def test_missing_required(self):
        issues = input_issues(DealParameters(purchase_price=0, rent_monthly=0, term_years=0))
        missing = {i.field for i in issues if i.level == LEVEL_MISSING}
        assert missing == {"purchase_price", "rent_monthly", "term_years"}

    def test_zero_value_warnings(self, base_deal):
        params = base_deal.with_changes(
            down_payment_pct=0, interest_rate=0, property_taxes_annual=0,
            insurance_annual=0, vacancy_pct=0,
        )
        warned = {i.field for i in input_issues(params) if i.level == LEVEL_WARN}
        assert warned == {
            "down_payment_pct", "interest_rate", "property_taxes_annual",
            "insurance_annual", "vacancy_pct",
        }

    def test_zero_rate_on_all_cash_deal(self, base_deal):
        params = base_deal.with_changes(down_payment_pct=100, interest_rate=0)
        fields = {i.field for i in input_issues(params)}
        assert "interest_rate" not in fields
