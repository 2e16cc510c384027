"""Income and investment growth engine.

Two projections are offered because they answer different questions:

* ``project_growth`` is the future-value projection. The annual growth rate
  is compounded down to a geometric monthly rate, ``(1 + g)^(1/12) - 1``, so
  twelve months of growth reproduce the annual rate exactly.
* ``project_income_growth`` builds a nominal month-by-month schedule with the
  simple monthly rate ``g / 12`` (the convention the loan engine uses), taxes
  each month's growth at the investor's bracket and reports inflation-adjusted
  figures alongside.

In both, a contribution made in a month grows during that same month
("invest, then grow").
"""

from __future__ import annotations

from decimal import Decimal, getcontext
from typing import Sequence, Tuple, Union

from .data_models import IncomeGrowthRow, IncomeParameters, IncomeScheduleRow, IncomeSummary
from .utils import HUNDRED, ZERO, monthly_rate

getcontext().prec = 28

ONE = Decimal("1")


def geometric_monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Monthly rate that compounds to ``annual_rate_percent`` over a year."""
    if annual_rate_percent == 0:
        return ZERO
    base = ONE + annual_rate_percent / HUNDRED
    if base <= 0:
        # A loss of 100 % or more wipes the balance out in the first month.
        return -ONE
    return base ** (ONE / Decimal(12)) - ONE


def contribution_for_month(params: IncomeParameters, month: int) -> Decimal:
    """Contribution due in ``month`` (1-based) under the configured frequency."""
    frequency = params.contribution_frequency
    if frequency == "monthly":
        due = True
    elif frequency == "quarterly":
        due = month % 3 == 1
    elif frequency == "annually":
        due = month % 12 == 1
    else:  # one-time
        due = month == 1
    return params.periodic_contribution if due else ZERO


def project_growth(params: IncomeParameters) -> Tuple[IncomeScheduleRow, ...]:
    """Project a lump sum plus contributions month by month.

    Returns one row per month from 1 to ``time_horizon_months``. Each row
    satisfies ``ending_balance = starting_balance + contribution + growth``
    with ``growth = (starting_balance + contribution) * monthly_rate``.
    """
    rate = geometric_monthly_rate(params.annual_growth_rate)
    rows = []
    balance = params.initial_amount
    for month in range(1, params.time_horizon_months + 1):
        contribution = contribution_for_month(params, month)
        growth = (balance + contribution) * rate
        ending = balance + contribution + growth
        rows.append(
            IncomeScheduleRow(
                month=month,
                starting_balance=balance,
                contribution=contribution,
                growth=growth,
                ending_balance=ending,
            )
        )
        balance = ending
    return tuple(rows)


def project_income_growth(params: IncomeParameters) -> Tuple[IncomeGrowthRow, ...]:
    """Project a taxed, inflation-reported investment month by month.

    The month's gross growth is ``(starting_balance + contribution) * g/12``.
    Tax at ``tax_bracket`` percent is taken from positive growth before it is
    added to the balance. ``monthly_income`` is the after-tax income the
    closing balance would yield over the next month.

    Inflation compounds separately, ``(1 + i/12)`` per month, and is used only
    to deflate the balance and income into today's money.
    """
    rate = monthly_rate(params.annual_growth_rate)
    tax_share = params.tax_bracket / HUNDRED
    inflation_step = ONE + monthly_rate(params.annual_inflation_rate)
    inflation_factor = ONE
    rows = []
    balance = params.initial_amount
    for month in range(1, params.time_horizon_months + 1):
        contribution = contribution_for_month(params, month)
        gross_growth = (balance + contribution) * rate
        tax = gross_growth * tax_share if gross_growth > 0 else ZERO
        growth = gross_growth - tax
        ending = balance + contribution + growth
        monthly_income = ending * rate * (ONE - tax_share)
        inflation_factor *= inflation_step
        if inflation_factor > 0:
            real_balance = ending / inflation_factor
            real_income = monthly_income / inflation_factor
        else:
            real_balance = ZERO
            real_income = ZERO
        rows.append(
            IncomeGrowthRow(
                month=month,
                starting_balance=balance,
                contribution=contribution,
                gross_growth=gross_growth,
                tax=tax,
                growth=growth,
                ending_balance=ending,
                monthly_income=monthly_income,
                real_balance=real_balance,
                real_monthly_income=real_income,
            )
        )
        balance = ending
    return tuple(rows)


def summarize_growth(
    schedule: Sequence[Union[IncomeScheduleRow, IncomeGrowthRow]]
) -> IncomeSummary:
    """Final balance, total contributions and total (net) growth of a projection."""
    if not schedule:
        return IncomeSummary(final_balance=ZERO, total_contributions=ZERO, total_growth=ZERO)
    return IncomeSummary(
        final_balance=schedule[-1].ending_balance,
        total_contributions=sum((row.contribution for row in schedule), ZERO),
        total_growth=sum((row.growth for row in schedule), ZERO),
    )
