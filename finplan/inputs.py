"""Build engine parameter records from raw user input.

Form fields and JSON payloads arrive as strings or plain numbers. The
builders here parse them (``"25L"``, ``"8.5%"``, ``"240"``), fill in the
documented defaults for optional fields and hand back validated records.
Problems surface as ``InvalidParameters`` naming the offending field.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from .data_models import AnalysisParameters, IncomeParameters, LoanParameters
from .errors import InvalidParameters
from .loan_engine import compute_installment
from .utils import parse_amount, parse_percent, to_decimal


def parse_count(value: Any) -> int:
    """Parse a whole number ("10", 10 or 10.0)."""
    if isinstance(value, bool):
        raise InvalidParameters(f"Invalid whole number: {value!r}")
    if isinstance(value, int):
        return value
    number = to_decimal(value if isinstance(value, float) else str(value).strip())
    if number != number.to_integral_value():
        raise InvalidParameters(f"Invalid whole number: {value}")
    return int(number)


def parse_months(value: Any) -> int:
    """Parse a number of months ("240", 240 or "20y" for years)."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text.endswith("y"):
            return parse_count(text[:-1]) * 12
        if text.endswith("m"):
            return parse_count(text[:-1])
    return parse_count(value)


def read_field(
    data: Mapping[str, Any],
    name: str,
    parser: Callable[[Any], Any],
    default: Optional[Any] = None,
) -> Any:
    """Parse ``data[name]``, falling back to ``default`` when it is blank.

    Without a default the field is required.
    """
    raw = data.get(name)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if default is None:
            raise InvalidParameters(f"Missing required field: {name}")
        return default
    try:
        return parser(raw)
    except InvalidParameters as exc:
        raise InvalidParameters(f"{name}: {exc}") from exc


def build_loan_parameters(data: Mapping[str, Any]) -> LoanParameters:
    """Loan record from ``principal``, ``annual_rate``, ``tenure_months`` and
    the optional extra-payment fields."""
    return LoanParameters(
        principal=read_field(data, "principal", parse_amount),
        annual_rate=read_field(data, "annual_rate", parse_percent),
        tenure_months=read_field(data, "tenure_months", parse_months),
        extra_payment=read_field(data, "extra_payment", parse_amount, Decimal("0")),
        extra_payment_frequency=read_field(data, "extra_payment_frequency", str, "monthly"),
        extra_payment_start_month=read_field(data, "extra_payment_start_month", parse_months, 1),
    )


def build_income_parameters(data: Mapping[str, Any]) -> IncomeParameters:
    """Income record; inflation and tax bracket default to 0 when omitted."""
    return IncomeParameters(
        initial_amount=read_field(data, "initial_amount", parse_amount, Decimal("0")),
        periodic_contribution=read_field(data, "periodic_contribution", parse_amount, Decimal("0")),
        contribution_frequency=read_field(data, "contribution_frequency", str, "monthly"),
        annual_growth_rate=read_field(data, "annual_growth_rate", parse_percent),
        time_horizon_months=read_field(data, "time_horizon_months", parse_months),
        annual_inflation_rate=read_field(data, "annual_inflation_rate", parse_percent, Decimal("0")),
        tax_bracket=read_field(data, "tax_bracket", parse_percent, Decimal("0")),
    )


def build_analysis_parameters(data: Mapping[str, Any]) -> AnalysisParameters:
    """Analysis record; ``monthly_emi`` is derived from the loan when omitted."""
    loan_amount = read_field(data, "loan_amount", parse_amount)
    loan_rate = read_field(data, "loan_interest_rate", parse_percent)
    tenure = read_field(data, "loan_tenure_months", parse_months)
    if data.get("monthly_emi") in (None, ""):
        monthly_emi = compute_installment(
            LoanParameters(principal=loan_amount, annual_rate=loan_rate, tenure_months=tenure)
        )
    else:
        monthly_emi = read_field(data, "monthly_emi", parse_amount)
    return AnalysisParameters(
        loan_amount=loan_amount,
        loan_interest_rate=loan_rate,
        loan_tenure_months=tenure,
        monthly_emi=monthly_emi,
        initial_amount=read_field(data, "initial_amount", parse_amount, Decimal("0")),
        monthly_investment=read_field(data, "monthly_investment", parse_amount, Decimal("0")),
        expected_return=read_field(data, "expected_return", parse_percent),
        inflation_rate=read_field(data, "inflation_rate", parse_percent, Decimal("0")),
    )
