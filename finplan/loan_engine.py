"""Loan amortization engine.

This module implements the financial logic required to build amortization
schedules for fixed-installment (EMI) loans. It supports recurring extra
payments at monthly, quarterly, semiannual or annual intervals, which shorten
the loan while the installment stays constant. Results are returned as a
tuple of ``AmortizationRow`` objects; ``summarize_schedule`` aggregates them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow, getcontext

from .data_models import (
    AmortizationRow,
    AmortizationSchedule,
    ExtraPaymentImpact,
    LoanParameters,
    LoanSummary,
)
from .errors import InvalidParameters
from .utils import ZERO, finite_or_zero, is_payment_month, monthly_rate

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Upper bound on schedule length; a schedule that has not converged by then
# is returned as accumulated so far.
MAX_SCHEDULE_MONTHS = 1000

# Balances below half a paisa are treated as settled.
HALF_PAISA = Decimal("0.005")


def _annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. Degenerate rate/term combinations whose
    result is not a finite number yield zero.
    """
    if rate_per_month == 0:
        return finite_or_zero(principal / Decimal(term), "installment")
    try:
        factor = (1 + rate_per_month) ** term
        payment = principal * (rate_per_month * factor) / (factor - 1)
    except (DivisionByZero, InvalidOperation, Overflow):
        logger.warning(
            "Installment undefined for rate %s over %d months; using 0", rate_per_month, term
        )
        return ZERO
    return finite_or_zero(payment, "installment")


def compute_installment(params: LoanParameters) -> Decimal:
    """Return the fixed monthly installment (EMI) for ``params``.

    Raises ``InvalidParameters`` when the principal or the tenure is not
    positive.
    """
    if params.principal <= 0 or params.tenure_months <= 0:
        raise InvalidParameters("Principal and tenure must be positive")
    return _annuity_payment(params.principal, monthly_rate(params.annual_rate), params.tenure_months)


def generate_schedule(params: LoanParameters) -> AmortizationSchedule:
    """Compute the month-by-month amortization schedule for a loan.

    Each month accrues interest on the outstanding balance, applies the
    scheduled principal (installment minus interest) and, on extra-payment
    months, the configured extra payment. A payment that would overshoot the
    balance is clamped so the balance lands exactly on zero: the scheduled
    principal is clamped first and the extra payment covers only the residual.

    The schedule ends when the balance reaches zero or the tenure is
    exhausted. An installment of zero (degenerate input) produces an empty
    schedule. Schedules longer than ``MAX_SCHEDULE_MONTHS`` are cut at the cap
    and returned as computed so far.
    """
    installment = compute_installment(params)
    if installment == 0:
        return ()

    rate_per_month = monthly_rate(params.annual_rate)
    interval = params.extra_payment_interval
    balance = params.principal
    rows = []
    month = 1

    while balance > 0 and month <= params.tenure_months:
        if month > MAX_SCHEDULE_MONTHS:
            logger.warning(
                "Amortization stopped at %d months with %s outstanding",
                MAX_SCHEDULE_MONTHS,
                balance,
            )
            break

        interest = balance * rate_per_month
        principal_payment = max(installment - interest, ZERO)
        extra_payment = ZERO
        if params.extra_payment > 0 and is_payment_month(
            month, params.extra_payment_start_month, interval
        ):
            extra_payment = params.extra_payment

        # Never pay past zero; the last installment absorbs the remainder.
        if principal_payment + extra_payment >= balance - HALF_PAISA:
            if extra_payment == 0 or principal_payment >= balance:
                principal_payment = balance
                extra_payment = ZERO
            else:
                extra_payment = balance - principal_payment

        balance = balance - principal_payment - extra_payment

        payment = principal_payment + interest
        rows.append(
            AmortizationRow(
                month=month,
                payment=payment,
                principal=principal_payment,
                interest=interest,
                extra_payment=extra_payment,
                total_payment=payment + extra_payment,
                remaining_balance=balance,
            )
        )
        month += 1

    logger.debug("Generated %d-month schedule for principal %s", len(rows), params.principal)
    return tuple(rows)


def summarize_schedule(schedule: AmortizationSchedule) -> LoanSummary:
    """Aggregate a schedule into installment, totals and actual tenure.

    An empty schedule yields an all-zero summary.
    """
    if not schedule:
        return LoanSummary(
            installment=ZERO,
            total_payments=ZERO,
            total_interest=ZERO,
            total_extra_payments=ZERO,
            actual_tenure_months=0,
        )
    return LoanSummary(
        installment=schedule[0].payment,
        total_payments=sum((row.total_payment for row in schedule), ZERO),
        total_interest=sum((row.interest for row in schedule), ZERO),
        total_extra_payments=sum((row.extra_payment for row in schedule), ZERO),
        actual_tenure_months=len(schedule),
    )


def remaining_balance(
    principal: Decimal, annual_rate: Decimal, tenure_months: int, months_elapsed: int
) -> Decimal:
    """Closed-form outstanding balance after ``months_elapsed`` installments.

    This is the balance of the plain loan (no extra payments), computed as the
    present value of the installments still due. It is independent of
    ``generate_schedule`` and may differ from a schedule that carries extra
    payments. The result is clamped to ``[0, principal]``.
    """
    if tenure_months <= 0:
        raise InvalidParameters("Loan tenure must be a positive number of months")
    remaining = tenure_months - months_elapsed
    if remaining <= 0 or principal <= 0:
        return ZERO
    if months_elapsed <= 0:
        return principal
    rate_per_month = monthly_rate(annual_rate)
    if rate_per_month == 0:
        return principal * Decimal(remaining) / Decimal(tenure_months)
    installment = _annuity_payment(principal, rate_per_month, tenure_months)
    try:
        factor = (1 + rate_per_month) ** remaining
        balance = installment * (factor - 1) / (rate_per_month * factor)
    except (DivisionByZero, InvalidOperation, Overflow):
        logger.warning("Remaining balance undefined at month %d; using 0", months_elapsed)
        return ZERO
    balance = finite_or_zero(balance, "remaining balance")
    return min(max(balance, ZERO), principal)


def extra_payment_impact(params: LoanParameters) -> ExtraPaymentImpact:
    """Interest and months saved by the extra payments configured in ``params``."""
    with_extra = summarize_schedule(generate_schedule(params))
    without_extra = summarize_schedule(generate_schedule(replace(params, extra_payment=ZERO)))
    return ExtraPaymentImpact(
        interest_saved=without_extra.total_interest - with_extra.total_interest,
        tenure_reduced=without_extra.actual_tenure_months - with_extra.actual_tenure_months,
    )
