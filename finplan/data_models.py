"""Data models for the planning engine.

This module defines dataclasses representing the different entities used by
the engine: loan and income parameter records, the rows of the schedules the
engines produce, and the summaries and comparison results derived from them.
Using dataclasses makes it easy to construct, inspect and serialize these
structures.

Parameter records are frozen and validate themselves on construction, so an
engine function never sees a record with a non-positive principal, a negative
amount or a frequency outside its closed set. Numeric fields are coerced to
``Decimal`` on construction; ``LoanParameters(principal=100000, ...)`` and
``LoanParameters(principal=Decimal("100000"), ...)`` are equivalent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .errors import InvalidParameters
from .utils import to_decimal

# Extra payment frequency -> interval in months.
EXTRA_PAYMENT_FREQUENCIES = {
    "monthly": 1,
    "quarterly": 3,
    "semiannually": 6,
    "annually": 12,
}

CONTRIBUTION_FREQUENCIES = ("monthly", "quarterly", "annually", "one-time")


class Recommendation(str, Enum):
    """Verdict of the prepay-versus-invest comparison."""

    PREPAY_LOAN = "PrepayLoan"
    INVEST_MONEY = "InvestMoney"


def _coerce_decimals(record, names: Tuple[str, ...]) -> None:
    for name in names:
        value = getattr(record, name)
        if value is None:
            continue
        object.__setattr__(record, name, to_decimal(value))


def _require_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, (float, Decimal)):
            number = to_decimal(value)
            if number == number.to_integral_value():
                return int(number)
        raise InvalidParameters(f"{name} must be a whole number of months; got {value!r}")
    return value


@dataclass(frozen=True)
class LoanParameters:
    """Terms of a loan plus an optional recurring extra payment.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed. Must be positive.
    annual_rate: Decimal
        Annual nominal interest rate in percent (``8.5`` means 8.5 %).
    tenure_months: int
        Number of scheduled monthly installments.
    extra_payment: Decimal
        Additional principal paid on every extra-payment month.
    extra_payment_frequency: str
        ``"monthly"``, ``"quarterly"``, ``"semiannually"`` or ``"annually"``.
        Quarterly, semiannual and annual payments are counted from
        ``extra_payment_start_month``.
    extra_payment_start_month: int
        First month (1-based) on which an extra payment may be made.
    """

    principal: Decimal
    annual_rate: Decimal
    tenure_months: int
    extra_payment: Decimal = Decimal("0")
    extra_payment_frequency: str = "monthly"
    extra_payment_start_month: int = 1

    def __post_init__(self) -> None:
        _coerce_decimals(self, ("principal", "annual_rate", "extra_payment"))
        object.__setattr__(self, "tenure_months", _require_int(self.tenure_months, "tenure_months"))
        object.__setattr__(
            self,
            "extra_payment_start_month",
            _require_int(self.extra_payment_start_month, "extra_payment_start_month"),
        )
        frequency = str(self.extra_payment_frequency).lower()
        object.__setattr__(self, "extra_payment_frequency", frequency)
        if self.principal <= 0:
            raise InvalidParameters("Loan principal must be positive")
        if self.tenure_months <= 0:
            raise InvalidParameters("Loan tenure must be a positive number of months")
        if self.annual_rate < 0:
            raise InvalidParameters("Annual interest rate cannot be negative")
        if self.extra_payment < 0:
            raise InvalidParameters("Extra payment cannot be negative")
        if frequency not in EXTRA_PAYMENT_FREQUENCIES:
            raise InvalidParameters(
                "Extra payment frequency must be one of "
                f"{', '.join(EXTRA_PAYMENT_FREQUENCIES)}; got {self.extra_payment_frequency}"
            )
        if self.extra_payment_start_month < 1:
            raise InvalidParameters("Extra payment start month must be 1 or later")

    @property
    def extra_payment_interval(self) -> int:
        return EXTRA_PAYMENT_FREQUENCIES[self.extra_payment_frequency]


@dataclass(frozen=True)
class AmortizationRow:
    """One month of an amortization schedule.

    ``payment`` is the part of the scheduled installment actually paid this
    month (principal + interest). It equals the installment on every row
    except the last one of a loan retired early, which only pays what is
    left. ``total_payment`` adds the extra payment on top.
    """

    month: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    extra_payment: Decimal
    total_payment: Decimal
    remaining_balance: Decimal


AmortizationSchedule = Tuple[AmortizationRow, ...]


@dataclass(frozen=True)
class LoanSummary:
    installment: Decimal
    total_payments: Decimal
    total_interest: Decimal
    total_extra_payments: Decimal
    actual_tenure_months: int


@dataclass(frozen=True)
class ExtraPaymentImpact:
    """Savings from an extra-payment policy relative to the plain loan."""

    interest_saved: Decimal
    tenure_reduced: int


@dataclass(frozen=True)
class IncomeParameters:
    """A lump sum plus recurring contributions growing at a fixed rate.

    ``annual_inflation_rate`` and ``tax_bracket`` only affect the
    tax/inflation projection (``project_income_growth``). Both default to 0,
    meaning no inflation adjustment and untaxed growth.
    """

    initial_amount: Decimal
    periodic_contribution: Decimal
    annual_growth_rate: Decimal
    time_horizon_months: int
    contribution_frequency: str = "monthly"
    annual_inflation_rate: Decimal = Decimal("0")
    tax_bracket: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        _coerce_decimals(
            self,
            (
                "initial_amount",
                "periodic_contribution",
                "annual_growth_rate",
                "annual_inflation_rate",
                "tax_bracket",
            ),
        )
        object.__setattr__(
            self,
            "time_horizon_months",
            _require_int(self.time_horizon_months, "time_horizon_months"),
        )
        frequency = str(self.contribution_frequency).lower()
        object.__setattr__(self, "contribution_frequency", frequency)
        if self.initial_amount < 0:
            raise InvalidParameters("Initial amount cannot be negative")
        if self.periodic_contribution < 0:
            raise InvalidParameters("Periodic contribution cannot be negative")
        if self.time_horizon_months <= 0:
            raise InvalidParameters("Time horizon must be a positive number of months")
        if frequency not in CONTRIBUTION_FREQUENCIES:
            raise InvalidParameters(
                "Contribution frequency must be one of "
                f"{', '.join(CONTRIBUTION_FREQUENCIES)}; got {self.contribution_frequency}"
            )
        if not Decimal("0") <= self.tax_bracket <= Decimal("100"):
            raise InvalidParameters("Tax bracket must be between 0 and 100 percent")


@dataclass(frozen=True)
class IncomeScheduleRow:
    month: int
    starting_balance: Decimal
    contribution: Decimal
    growth: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class IncomeGrowthRow:
    """A month of the tax- and inflation-aware income projection.

    ``growth`` is the growth retained after tax (``gross_growth - tax``) and
    is what compounds into ``ending_balance``. ``real_balance`` and
    ``real_monthly_income`` are today's-money figures for reporting; they do
    not feed back into the balance.
    """

    month: int
    starting_balance: Decimal
    contribution: Decimal
    gross_growth: Decimal
    tax: Decimal
    growth: Decimal
    ending_balance: Decimal
    monthly_income: Decimal
    real_balance: Decimal
    real_monthly_income: Decimal


@dataclass(frozen=True)
class IncomeSummary:
    final_balance: Decimal
    total_contributions: Decimal
    total_growth: Decimal


@dataclass(frozen=True)
class AnalysisParameters:
    """Inputs of the advanced loan/investment analysis.

    ``inflation_rate`` defaults to 0 (nominal figures are reported as real).
    """

    loan_amount: Decimal
    loan_interest_rate: Decimal
    loan_tenure_months: int
    monthly_emi: Decimal
    initial_amount: Decimal
    monthly_investment: Decimal
    expected_return: Decimal
    inflation_rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        _coerce_decimals(
            self,
            (
                "loan_amount",
                "loan_interest_rate",
                "monthly_emi",
                "initial_amount",
                "monthly_investment",
                "expected_return",
                "inflation_rate",
            ),
        )
        object.__setattr__(
            self,
            "loan_tenure_months",
            _require_int(self.loan_tenure_months, "loan_tenure_months"),
        )
        if self.loan_tenure_months <= 0:
            raise InvalidParameters("Loan tenure must be a positive number of months")
        for name in ("loan_amount", "monthly_emi", "initial_amount", "monthly_investment"):
            if getattr(self, name) < 0:
                raise InvalidParameters(f"{name} cannot be negative")


@dataclass(frozen=True)
class AdvancedMetrics:
    # Loan analysis
    total_interest_paid: Decimal
    effective_interest_rate: Decimal
    loan_cost_ratio: Decimal
    total_loan_payment: Decimal
    # Investment analysis
    total_investment_value: Decimal
    total_contributions: Decimal
    total_earnings: Decimal
    effective_return_rate: Decimal
    # Comparative analysis
    investment_vs_loan_ratio: Decimal
    break_even_month: int
    real_return_after_inflation: Decimal
    wealth_accumulation_rate: Decimal


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of prepaying a loan versus investing the same money.

    ``interest_saved`` and ``net_gain_from_investment`` are measured over the
    same horizon: the ``months_to_repay`` the prepayment policy needs to retire
    the loan. ``lifetime_interest_saved`` compares the full schedules and is
    reported for information only.
    """

    months_to_repay: int
    baseline_months: int
    total_interest_paid: Decimal
    baseline_interest: Decimal
    interest_saved: Decimal
    lifetime_interest_saved: Decimal
    total_invested: Decimal
    investment_value: Decimal
    net_gain_from_investment: Decimal
    recommendation: Recommendation
    difference: Decimal


@dataclass(frozen=True)
class LoanComparison:
    """Two loan scenarios side by side; differences are second minus first."""

    first: LoanSummary
    second: LoanSummary
    installment_difference: Decimal
    total_interest_difference: Decimal
    total_payments_difference: Decimal
    tenure_difference: int


@dataclass(frozen=True)
class NetPossessionPoint:
    month: int
    loan_balance: Decimal
    income_balance: Decimal
    net_possession: Decimal


@dataclass(frozen=True)
class NetPossessionSummary:
    loan_paid_off_month: Optional[int]
    net_positive_month: Optional[int]
    final_net_possession: Decimal
    final_loan_balance: Decimal
    final_income_balance: Decimal
