"""Advanced metrics derived from the loan and investment engines.

Every ratio or percentage in this module divides through ``safe_divide``: a
zero principal, zero contributions or a zero horizon yields 0 rather than a
division error. Rates are nominal monthly rates (``annual / 12 / 100``)
throughout, matching the loan engine.
"""

from __future__ import annotations

import logging
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow, getcontext
from typing import Optional

from .data_models import AdvancedMetrics, AnalysisParameters, IncomeParameters, LoanParameters
from .errors import InvalidParameters
from .loan_engine import compute_installment, remaining_balance
from .utils import HUNDRED, TWELVE, ZERO, finite_or_zero, monthly_rate, safe_divide, to_decimal

getcontext().prec = 28

logger = logging.getLogger(__name__)

# Search bounds for the month-by-month simulations.
MAX_BREAK_EVEN_MONTHS = 1200
MAX_FI_MONTHS = 1200

# 4 % safe withdrawal rule: a corpus of 25 years of expenses.
CORPUS_MULTIPLE = Decimal("25")

# Home loan interest deductible per year, section 24(b).
MAX_INTEREST_DEDUCTION = Decimal("200000")

# Annual income slabs: (lower bound, upper bound, rate in percent).
TAX_BRACKETS = (
    (Decimal("0"), Decimal("250000"), Decimal("0")),
    (Decimal("250000"), Decimal("500000"), Decimal("5")),
    (Decimal("500000"), Decimal("750000"), Decimal("10")),
    (Decimal("750000"), Decimal("1000000"), Decimal("15")),
    (Decimal("1000000"), Decimal("1250000"), Decimal("20")),
    (Decimal("1250000"), Decimal("1500000"), Decimal("25")),
    (Decimal("1500000"), None, Decimal("30")),
)

SAFE_WITHDRAWAL_RATES = {
    "conservative": Decimal("3"),
    "moderate": Decimal("4"),
    "aggressive": Decimal("5"),
}


def effective_interest_rate(total_interest: Decimal, principal: Decimal, tenure_months: int) -> Decimal:
    """Annualized interest cost as a percentage of the principal."""
    cost_percent = safe_divide(to_decimal(total_interest), to_decimal(principal)) * HUNDRED
    return safe_divide(cost_percent, Decimal(tenure_months) / TWELVE)


def future_value(
    principal: Decimal, monthly_contribution: Decimal, rate_per_month: Decimal, months: int
) -> Decimal:
    """Value after ``months`` of a lump sum plus end-of-month contributions.

    Zero rate degrades to ``principal + contribution * months``.
    """
    if months <= 0:
        return principal
    if rate_per_month == 0:
        return principal + monthly_contribution * months
    try:
        factor = (1 + rate_per_month) ** months
        value = principal * factor + monthly_contribution * (factor - 1) / rate_per_month
    except (DivisionByZero, InvalidOperation, Overflow):
        logger.warning("Future value undefined for rate %s over %d months", rate_per_month, months)
        return ZERO
    return finite_or_zero(value, "future value")


def break_even_month(params: AnalysisParameters) -> int:
    """First month in which the investment is worth at least the loan balance.

    The investment starts at ``initial_amount`` and grows each month by the
    expected return before the month's contribution is added. The loan
    balance comes from the closed-form remaining balance of the plain loan.
    Returns 0 when the initial amount already covers the loan, and the tenure
    when the investment never catches up. The search stops at
    ``MAX_BREAK_EVEN_MONTHS``, which is then returned.
    """
    investment = params.initial_amount
    if investment >= params.loan_amount:
        return 0
    rate = monthly_rate(params.expected_return)
    horizon = params.loan_tenure_months
    month = 0
    while month < horizon:
        if month >= MAX_BREAK_EVEN_MONTHS:
            logger.warning("Break-even search stopped at %d months", MAX_BREAK_EVEN_MONTHS)
            return MAX_BREAK_EVEN_MONTHS
        month += 1
        investment = investment * (1 + rate) + params.monthly_investment
        loan_balance = remaining_balance(
            params.loan_amount, params.loan_interest_rate, params.loan_tenure_months, month
        )
        if investment >= loan_balance:
            return month
    return horizon


def real_return_after_inflation(expected_return: Decimal, inflation_rate: Decimal) -> Decimal:
    """Nominal return minus inflation (simple subtraction, not compounded)."""
    return to_decimal(expected_return) - to_decimal(inflation_rate)


def years_to_financial_independence(
    annual_expenses: Decimal, annual_savings: Decimal, real_return: Decimal
) -> Decimal:
    """Years of saving needed to build a corpus of 25 years of expenses.

    Savings are invested monthly (``annual_savings / 12``) at the real
    return. Raises ``InvalidParameters`` when ``annual_savings`` is not
    positive, since the corpus could never grow. The search is capped at
    ``MAX_FI_MONTHS``; reaching the cap returns the cap in years.
    """
    annual_expenses = to_decimal(annual_expenses)
    annual_savings = to_decimal(annual_savings)
    if annual_savings <= 0:
        raise InvalidParameters("Annual savings must be positive to reach financial independence")
    target = annual_expenses * CORPUS_MULTIPLE
    rate = monthly_rate(to_decimal(real_return))
    monthly_savings = annual_savings / TWELVE
    corpus = ZERO
    months = 0
    while corpus < target:
        if months >= MAX_FI_MONTHS:
            logger.warning("Financial independence not reached within %d months", MAX_FI_MONTHS)
            break
        corpus = corpus * (1 + rate) + monthly_savings
        months += 1
    return Decimal(months) / TWELVE


def required_monthly_investment(
    target: Decimal, initial: Decimal, annual_return: Decimal, months: int
) -> Decimal:
    """Monthly contribution needed to grow ``initial`` into ``target``.

    Solves the future value of an annuity for its payment. A zero return
    degrades to ``(target - initial) / months``. When the initial amount alone
    reaches the target the result is 0.
    """
    if months <= 0:
        raise InvalidParameters("Investment horizon must be a positive number of months")
    target = to_decimal(target)
    initial = to_decimal(initial)
    rate = monthly_rate(to_decimal(annual_return))
    if rate == 0:
        payment = (target - initial) / Decimal(months)
    else:
        try:
            factor = (1 + rate) ** months
            payment = (target - initial * factor) / ((factor - 1) / rate)
        except (DivisionByZero, InvalidOperation, Overflow):
            logger.warning("Required investment undefined for rate %s over %d months", rate, months)
            return ZERO
        payment = finite_or_zero(payment, "required monthly investment")
    return max(payment, ZERO)


def analysis_parameters_for(
    loan: LoanParameters, income: IncomeParameters, inflation_rate: Optional[Decimal] = None
) -> AnalysisParameters:
    """Build analysis inputs from a loan and an investment plan.

    The investment is assumed to run monthly over the loan tenure.
    ``inflation_rate`` falls back to the plan's ``annual_inflation_rate``.
    """
    if inflation_rate is None:
        inflation_rate = income.annual_inflation_rate
    return AnalysisParameters(
        loan_amount=loan.principal,
        loan_interest_rate=loan.annual_rate,
        loan_tenure_months=loan.tenure_months,
        monthly_emi=compute_installment(loan),
        initial_amount=income.initial_amount,
        monthly_investment=income.periodic_contribution,
        expected_return=income.annual_growth_rate,
        inflation_rate=inflation_rate,
    )


def calculate_advanced_metrics(params: AnalysisParameters) -> AdvancedMetrics:
    """Loan cost, investment return and comparative metrics in one record."""
    tenure = params.loan_tenure_months
    total_loan_payment = params.monthly_emi * tenure
    total_interest = total_loan_payment - params.loan_amount

    investment_value = future_value(
        params.initial_amount,
        params.monthly_investment,
        monthly_rate(params.expected_return),
        tenure,
    )
    contributions = params.initial_amount + params.monthly_investment * tenure
    earnings = investment_value - contributions

    growth_multiple = safe_divide(investment_value, contributions)
    if growth_multiple > 0:
        try:
            effective_return = (growth_multiple ** (TWELVE / Decimal(tenure)) - 1) * HUNDRED
        except (InvalidOperation, Overflow):
            logger.warning("Effective return undefined over %d months", tenure)
            effective_return = ZERO
        effective_return = finite_or_zero(effective_return, "effective return rate")
    else:
        effective_return = ZERO

    return AdvancedMetrics(
        total_interest_paid=total_interest,
        effective_interest_rate=effective_interest_rate(total_interest, params.loan_amount, tenure),
        loan_cost_ratio=safe_divide(total_interest, params.loan_amount) * HUNDRED,
        total_loan_payment=total_loan_payment,
        total_investment_value=investment_value,
        total_contributions=contributions,
        total_earnings=earnings,
        effective_return_rate=effective_return,
        investment_vs_loan_ratio=safe_divide(investment_value, total_loan_payment) * HUNDRED,
        break_even_month=break_even_month(params),
        real_return_after_inflation=real_return_after_inflation(
            params.expected_return, params.inflation_rate
        ),
        wealth_accumulation_rate=safe_divide(earnings, contributions) * HUNDRED,
    )


def return_on_investment(params: AnalysisParameters) -> Decimal:
    """Percentage gain of the investment plan over the loan tenure."""
    invested = params.initial_amount + params.monthly_investment * params.loan_tenure_months
    final_amount = future_value(
        params.initial_amount,
        params.monthly_investment,
        monthly_rate(params.expected_return),
        params.loan_tenure_months,
    )
    return safe_divide(final_amount - invested, invested) * HUNDRED


def _slab_tax(amount: Decimal) -> Decimal:
    tax = ZERO
    remaining = amount
    for lower, upper, rate in TAX_BRACKETS:
        if remaining <= 0:
            break
        in_bracket = remaining if upper is None else min(remaining, upper - lower)
        tax += in_bracket * rate / HUNDRED
        remaining -= in_bracket
    return tax


def income_tax(annual_income: Decimal) -> Decimal:
    """Tax on ``annual_income`` under the slab table ``TAX_BRACKETS``."""
    return _slab_tax(max(to_decimal(annual_income), ZERO))


def home_loan_interest_tax_saving(interest_paid: Decimal, annual_income: Decimal) -> Decimal:
    """Tax saved in a year by deducting home loan interest from income.

    The deduction is capped at 2,00,000 and taken off the top of the income,
    so it is taxed at the borrower's marginal slabs.
    """
    income = max(to_decimal(annual_income), ZERO)
    deductible = min(max(to_decimal(interest_paid), ZERO), MAX_INTEREST_DEDUCTION, income)
    return _slab_tax(income) - _slab_tax(income - deductible)


def safe_withdrawal_rate(risk_tolerance: str) -> Decimal:
    """Annual withdrawal rate in percent for a risk profile."""
    try:
        return SAFE_WITHDRAWAL_RATES[risk_tolerance.lower()]
    except KeyError:
        raise InvalidParameters(
            "Risk tolerance must be one of "
            f"{', '.join(SAFE_WITHDRAWAL_RATES)}; got {risk_tolerance}"
        ) from None


def retirement_corpus(
    monthly_expenses: Decimal, inflation_rate: Decimal, years_to_retirement: int
) -> Decimal:
    """Corpus needed at retirement: inflated annual expenses times 25."""
    annual_expenses = to_decimal(monthly_expenses) * TWELVE
    growth = (1 + to_decimal(inflation_rate) / HUNDRED) ** years_to_retirement
    return annual_expenses * growth * CORPUS_MULTIPLE
