"""Scenario comparisons built on the loan and income engines.

``compare_prepayment_vs_investment`` answers "should this money go into the
loan or into an investment?", ``net_possession_timeline`` tracks investments
minus debt over time, and ``compare_loans`` puts two loan offers side by side.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal, getcontext
from typing import List, Tuple

from .data_models import (
    EXTRA_PAYMENT_FREQUENCIES,
    ComparisonResult,
    IncomeParameters,
    LoanComparison,
    LoanParameters,
    NetPossessionPoint,
    NetPossessionSummary,
    Recommendation,
)
from .errors import InvalidParameters
from .income_engine import project_growth
from .loan_engine import generate_schedule, summarize_schedule
from .utils import ZERO, is_payment_month, monthly_rate, to_decimal

getcontext().prec = 28

logger = logging.getLogger(__name__)


def compare_prepayment_vs_investment(
    loan: LoanParameters,
    amount: Decimal,
    frequency: str = "monthly",
    investment_rate: Decimal = ZERO,
) -> ComparisonResult:
    """Compare prepaying ``loan`` with ``amount`` against investing it.

    Two independent simulations run over the same horizon:

    * prepayment: the loan amortizes with ``amount`` as an extra payment every
      ``frequency`` period from month 1 until it is paid off;
    * investment: on the same months ``amount`` is invested at
      ``investment_rate`` percent a year, contributed at month end.

    The horizon is the number of months the prepayment policy needs to retire
    the loan. ``interest_saved`` is the interest the plain loan charges over
    that horizon minus the interest paid while prepaying. At equal rates this
    matches the investment gain up to rounding, since every rupee prepaid
    stops accruing loan interest at the rate the investment would earn.
    """
    amount = to_decimal(amount)
    investment_rate = to_decimal(investment_rate)
    frequency = frequency.lower()
    if amount < 0:
        raise InvalidParameters("Prepayment amount cannot be negative")
    if frequency not in EXTRA_PAYMENT_FREQUENCIES:
        raise InvalidParameters(
            "Prepayment frequency must be one of "
            f"{', '.join(EXTRA_PAYMENT_FREQUENCIES)}; got {frequency}"
        )

    baseline = generate_schedule(replace(loan, extra_payment=ZERO))
    prepaying = generate_schedule(
        replace(
            loan,
            extra_payment=amount,
            extra_payment_frequency=frequency,
            extra_payment_start_month=1,
        )
    )
    horizon = len(prepaying)

    prepay_interest = sum((row.interest for row in prepaying), ZERO)
    baseline_interest = sum((row.interest for row in baseline), ZERO)
    baseline_interest_in_horizon = sum((row.interest for row in baseline[:horizon]), ZERO)
    interest_saved = baseline_interest_in_horizon - prepay_interest

    rate = monthly_rate(investment_rate)
    interval = EXTRA_PAYMENT_FREQUENCIES[frequency]
    investment = ZERO
    invested = ZERO
    for month in range(1, horizon + 1):
        investment = investment * (1 + rate)
        if is_payment_month(month, 1, interval):
            investment += amount
            invested += amount
    net_gain = investment - invested

    if interest_saved >= net_gain:
        recommendation = Recommendation.PREPAY_LOAN
    else:
        recommendation = Recommendation.INVEST_MONEY
    logger.debug(
        "Prepay vs invest over %d months: saved %s, gained %s", horizon, interest_saved, net_gain
    )

    return ComparisonResult(
        months_to_repay=horizon,
        baseline_months=len(baseline),
        total_interest_paid=prepay_interest,
        baseline_interest=baseline_interest,
        interest_saved=interest_saved,
        lifetime_interest_saved=baseline_interest - prepay_interest,
        total_invested=invested,
        investment_value=investment,
        net_gain_from_investment=net_gain,
        recommendation=recommendation,
        difference=abs(interest_saved - net_gain),
    )


def net_possession_timeline(
    loan: LoanParameters, income: IncomeParameters
) -> Tuple[List[NetPossessionPoint], NetPossessionSummary]:
    """Investments minus outstanding debt for every month of the income horizon.

    Month 0 is the starting position: the full loan against the initial
    investment. The loan balance is taken from its amortization schedule and
    is zero once the loan is retired; the investment follows
    ``project_growth``. A schedule cut short by the iteration cap, or an empty
    one, leaves its last balance outstanding for the rest of the horizon and
    ``loan_paid_off_month`` is None.
    """
    schedule = generate_schedule(loan)
    growth = project_growth(income)
    outstanding = schedule[-1].remaining_balance if schedule else loan.principal

    points = [
        NetPossessionPoint(
            month=0,
            loan_balance=loan.principal,
            income_balance=income.initial_amount,
            net_possession=income.initial_amount - loan.principal,
        )
    ]
    for month in range(1, income.time_horizon_months + 1):
        loan_balance = schedule[month - 1].remaining_balance if month <= len(schedule) else outstanding
        income_balance = growth[month - 1].ending_balance
        points.append(
            NetPossessionPoint(
                month=month,
                loan_balance=loan_balance,
                income_balance=income_balance,
                net_possession=income_balance - loan_balance,
            )
        )

    paid_off = schedule[-1].month if schedule and outstanding <= 0 else None
    net_positive = next((p.month for p in points if p.net_possession > 0), None)
    final = points[-1]
    summary = NetPossessionSummary(
        loan_paid_off_month=paid_off,
        net_positive_month=net_positive,
        final_net_possession=final.net_possession,
        final_loan_balance=final.loan_balance,
        final_income_balance=final.income_balance,
    )
    return points, summary


def compare_loans(first: LoanParameters, second: LoanParameters) -> LoanComparison:
    """Summaries of two loan scenarios and their differences (second - first)."""
    summary1 = summarize_schedule(generate_schedule(first))
    summary2 = summarize_schedule(generate_schedule(second))
    return LoanComparison(
        first=summary1,
        second=summary2,
        installment_difference=summary2.installment - summary1.installment,
        total_interest_difference=summary2.total_interest - summary1.total_interest,
        total_payments_difference=summary2.total_payments - summary1.total_payments,
        tenure_difference=summary2.actual_tenure_months - summary1.actual_tenure_months,
    )
