"""
Tests for the income/investment growth projections.
"""

from decimal import Decimal

import pytest

from finplan.data_models import IncomeParameters, IncomeScheduleRow
from finplan.errors import InvalidParameters
from finplan.income_engine import (
    contribution_for_month,
    geometric_monthly_rate,
    project_growth,
    project_income_growth,
    summarize_growth,
)


def _plan(**overrides):
    values = {
        "initial_amount": 100_000,
        "periodic_contribution": 10_000,
        "annual_growth_rate": 12,
        "time_horizon_months": 120,
    }
    values.update(overrides)
    return IncomeParameters(**values)


class TestFutureValueProjection:
    """Geometric-rate projection (``project_growth``)."""

    def test_monthly_sip_matches_closed_form(self):
        """A 10,000 monthly SIP at 12 % lands within 1 % of the annuity formula."""
        params = _plan(initial_amount=0, time_horizon_months=12)
        schedule = project_growth(params)

        r = 1.12 ** (1 / 12) - 1
        closed_form = 10_000 * ((1 + r) ** 12 - 1) / r
        assert float(schedule[-1].ending_balance) == pytest.approx(closed_form, rel=0.01)

    def test_lump_sum_compounds_to_annual_rate(self):
        params = _plan(initial_amount=100_000, periodic_contribution=0, time_horizon_months=12)
        final = project_growth(params)[-1].ending_balance
        assert abs(final - Decimal("112000")) < Decimal("0.000001")

    def test_one_row_per_month(self):
        schedule = project_growth(_plan(time_horizon_months=30))
        assert [row.month for row in schedule] == list(range(1, 31))

    def test_row_invariants(self):
        params = _plan()
        rate = geometric_monthly_rate(params.annual_growth_rate)
        previous_end = params.initial_amount
        for row in project_growth(params):
            assert row.starting_balance == previous_end
            assert row.ending_balance == row.starting_balance + row.contribution + row.growth
            assert row.growth == (row.starting_balance + row.contribution) * rate
            previous_end = row.ending_balance

    def test_zero_growth_only_accumulates(self):
        params = _plan(annual_growth_rate=0, time_horizon_months=24)
        summary = summarize_growth(project_growth(params))
        assert summary.total_growth == 0
        assert summary.total_contributions == Decimal("240000")
        assert summary.final_balance == Decimal("340000")

    def test_schedule_is_deterministic(self):
        params = _plan(contribution_frequency="quarterly")
        assert project_growth(params) == project_growth(params)


class TestContributionFrequency:
    @pytest.mark.parametrize(
        "frequency,expected",
        [
            ("monthly", list(range(1, 25))),
            ("quarterly", [1, 4, 7, 10, 13, 16, 19, 22]),
            ("annually", [1, 13]),
            ("one-time", [1]),
        ],
    )
    def test_contribution_months(self, frequency, expected):
        params = _plan(contribution_frequency=frequency, time_horizon_months=24)
        months = [m for m in range(1, 25) if contribution_for_month(params, m) > 0]
        assert months == expected

    def test_unknown_frequency_rejected(self):
        with pytest.raises(InvalidParameters):
            _plan(contribution_frequency="weekly")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"time_horizon_months": 0},
            {"initial_amount": -1},
            {"periodic_contribution": -1},
            {"tax_bracket": 120},
        ],
    )
    def test_invalid_plans_rejected(self, overrides):
        with pytest.raises(InvalidParameters):
            _plan(**overrides)


class TestIncomeGrowthProjection:
    """Simple-rate projection with tax and inflation (``project_income_growth``)."""

    def test_defaults_match_simple_compounding(self):
        params = _plan(periodic_contribution=0, time_horizon_months=2)
        schedule = project_income_growth(params)
        first, second = schedule

        assert first.gross_growth == Decimal("1000")
        assert first.tax == 0
        assert first.ending_balance == Decimal("101000")
        assert second.ending_balance == Decimal("102010")
        assert first.real_balance == first.ending_balance

    def test_tax_is_taken_from_growth(self):
        params = _plan(periodic_contribution=0, tax_bracket=30, time_horizon_months=1)
        row = project_income_growth(params)[0]

        assert row.gross_growth == Decimal("1000")
        assert row.tax == Decimal("300")
        assert row.growth == Decimal("700")
        assert row.ending_balance == Decimal("100700")

    def test_tax_slows_compounding(self):
        untaxed = summarize_growth(project_income_growth(_plan()))
        taxed = summarize_growth(project_income_growth(_plan(tax_bracket=30)))
        assert taxed.final_balance < untaxed.final_balance
        assert taxed.total_contributions == untaxed.total_contributions

    def test_inflation_is_reporting_only(self):
        nominal = project_income_growth(_plan())
        inflated = project_income_growth(_plan(annual_inflation_rate=6))

        assert [row.ending_balance for row in nominal] == [row.ending_balance for row in inflated]
        assert inflated[-1].real_balance < inflated[-1].ending_balance
        assert inflated[-1].real_monthly_income < inflated[-1].monthly_income

    def test_monthly_income_after_tax(self):
        params = _plan(periodic_contribution=0, tax_bracket=20, time_horizon_months=1)
        row = project_income_growth(params)[0]
        expected = row.ending_balance * Decimal("0.01") * Decimal("0.8")
        assert abs(row.monthly_income - expected) < Decimal("1E-18")

    def test_row_invariant_with_tax(self):
        for row in project_income_growth(_plan(tax_bracket=10)):
            assert row.ending_balance == row.starting_balance + row.contribution + row.growth
            assert row.growth == row.gross_growth - row.tax


class TestSummarizeGrowth:
    def test_empty_schedule(self):
        summary = summarize_growth(())
        assert summary.final_balance == 0
        assert summary.total_contributions == 0
        assert summary.total_growth == 0

    def test_totals(self):
        rows = (
            IncomeScheduleRow(1, Decimal("0"), Decimal("100"), Decimal("1"), Decimal("101")),
            IncomeScheduleRow(2, Decimal("101"), Decimal("100"), Decimal("2.01"), Decimal("203.01")),
        )
        summary = summarize_growth(rows)
        assert summary.final_balance == Decimal("203.01")
        assert summary.total_contributions == Decimal("200")
        assert summary.total_growth == Decimal("3.01")


def test_zero_rate_keeps_balances_plain():
    assert geometric_monthly_rate(Decimal("0")) == 0
    params = _plan(initial_amount=0, periodic_contribution=0, annual_growth_rate=0, time_horizon_months=600)
    final = project_growth(params)[-1].ending_balance
    assert final == 0
    assert final.as_tuple().exponent == 0
