import logging
import os
from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from flask import Flask, jsonify, request, session

from finplan.comparator import compare_loans, compare_prepayment_vs_investment, net_possession_timeline
from finplan.errors import InvalidParameters
from finplan.formatter import format_amounts
from finplan.income_engine import project_growth, project_income_growth, summarize_growth
from finplan.inputs import (
    build_analysis_parameters,
    build_income_parameters,
    build_loan_parameters,
    parse_count,
    read_field,
)
from finplan.loan_engine import extra_payment_impact, generate_schedule, summarize_schedule
from finplan.metrics import (
    calculate_advanced_metrics,
    home_loan_interest_tax_saving,
    income_tax,
    real_return_after_inflation,
    required_monthly_investment,
    retirement_corpus,
    return_on_investment,
    safe_withdrawal_rate,
    years_to_financial_independence,
)
from finplan.utils import parse_amount, parse_percent
from finplan_web.tab_state_store import create_store_from_env

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
tab_state_store = create_store_from_env(
    os.environ.get("FINPLAN_DATABASE_URL"), os.environ.get("FINPLAN_MAX_TABS_PER_USER")
)

TAB_IDS = {
    "basic_loan",
    "income_growth",
    "compound_scenario",
    "comparison_scenario1",
    "comparison_scenario2",
    "advanced_analysis",
}

LOAN_SUMMARY_AMOUNTS = ("installment", "total_payments", "total_interest", "total_extra_payments")
INCOME_SUMMARY_AMOUNTS = ("final_balance", "total_contributions", "total_growth")


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _jsonable(value):
    """Convert engine records into JSON-serialisable structures."""
    if is_dataclass(value):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidParameters("Request body must be a JSON object")
    return data


def _section(data: dict, name: str) -> dict:
    section = data.get(name)
    if not isinstance(section, dict):
        raise InvalidParameters(f"Missing parameter object: {name}")
    return section


@app.errorhandler(InvalidParameters)
def invalid_parameters(exc):
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(500)
def internal_error(exc):
    logger.error(
        "Unexpected error on %s", request.path, exc_info=getattr(exc, "original_exception", None)
    )
    return jsonify({"error": "Internal server error"}), 500


@app.post("/api/loan")
def loan():
    params = build_loan_parameters(_payload())
    schedule = generate_schedule(params)
    summary = _jsonable(summarize_schedule(schedule))
    return jsonify(
        {
            "summary": summary,
            "display": format_amounts(summary, LOAN_SUMMARY_AMOUNTS),
            "impact": _jsonable(extra_payment_impact(params)),
            "schedule": _jsonable(schedule),
        }
    )


@app.post("/api/loan/compare")
def loan_compare():
    data = _payload()
    first = build_loan_parameters(_section(data, "scenario1"))
    second = build_loan_parameters(_section(data, "scenario2"))
    return jsonify(_jsonable(compare_loans(first, second)))


@app.post("/api/income")
def income():
    data = _payload()
    params = build_income_parameters(data)
    if data.get("variant") == "income_growth":
        schedule = project_income_growth(params)
    else:
        schedule = project_growth(params)
    summary = _jsonable(summarize_growth(schedule))
    return jsonify(
        {
            "summary": summary,
            "display": format_amounts(summary, INCOME_SUMMARY_AMOUNTS),
            "schedule": _jsonable(schedule),
        }
    )


@app.post("/api/metrics")
def metrics():
    params = build_analysis_parameters(_payload())
    result = _jsonable(calculate_advanced_metrics(params))
    result["return_on_investment"] = float(return_on_investment(params))
    return jsonify(result)


@app.post("/api/goals")
def goals():
    data = _payload()
    monthly_expenses = read_field(data, "monthly_expenses", parse_amount)
    expected_return = read_field(data, "expected_return", parse_percent)
    inflation = read_field(data, "inflation_rate", parse_percent, Decimal("0"))
    years = read_field(data, "years_to_retirement", parse_count)
    if years <= 0:
        raise InvalidParameters("years_to_retirement must be positive")
    real_return = real_return_after_inflation(expected_return, inflation)
    corpus = retirement_corpus(monthly_expenses, inflation, years)
    result = {
        "real_return": real_return,
        "retirement_corpus": corpus,
        "required_monthly_investment": required_monthly_investment(
            corpus,
            read_field(data, "current_savings", parse_amount, Decimal("0")),
            expected_return,
            years * 12,
        ),
        "safe_withdrawal_rate": safe_withdrawal_rate(
            read_field(data, "risk_tolerance", str, "moderate")
        ),
    }
    if data.get("annual_savings") not in (None, ""):
        result["years_to_financial_independence"] = years_to_financial_independence(
            monthly_expenses * 12, read_field(data, "annual_savings", parse_amount), real_return
        )
    return jsonify(_jsonable(result))


@app.post("/api/tax")
def tax():
    data = _payload()
    annual_income = read_field(data, "annual_income", parse_amount)
    interest_paid = read_field(data, "interest_paid", parse_amount, Decimal("0"))
    return jsonify(
        _jsonable(
            {
                "income_tax": income_tax(annual_income),
                "home_loan_tax_saving": home_loan_interest_tax_saving(interest_paid, annual_income),
            }
        )
    )


@app.post("/api/prepay-vs-invest")
def prepay_vs_invest():
    data = _payload()
    loan_params = build_loan_parameters(_section(data, "loan"))
    if data.get("amount") in (None, "") or data.get("investment_rate") in (None, ""):
        raise InvalidParameters("Both amount and investment_rate are required")
    result = compare_prepayment_vs_investment(
        loan_params,
        parse_amount(data["amount"]),
        str(data.get("frequency") or "monthly"),
        parse_percent(data["investment_rate"]),
    )
    return jsonify(_jsonable(result))


@app.post("/api/net-possession")
def net_possession():
    data = _payload()
    loan_params = build_loan_parameters(_section(data, "loan"))
    income_params = build_income_parameters(_section(data, "income"))
    points, summary = net_possession_timeline(loan_params, income_params)
    return jsonify({"summary": _jsonable(summary), "timeline": _jsonable(points)})


def _check_tab_id(tab_id: str) -> None:
    if tab_id not in TAB_IDS:
        raise InvalidParameters(f"Unknown tab: {tab_id}")


@app.get("/api/tab-state")
def list_tab_states():
    return jsonify({"tabs": tab_state_store.list_tabs(session.get("user_token"))})


@app.get("/api/tab-state/<tab_id>")
def load_tab_state(tab_id):
    _check_tab_id(tab_id)
    state = tab_state_store.load(_ensure_user_token(), tab_id)
    return jsonify({"tab_id": tab_id, "state": state})


@app.put("/api/tab-state/<tab_id>")
def save_tab_state(tab_id):
    _check_tab_id(tab_id)
    state = _payload()
    tab_state_store.save(_ensure_user_token(), tab_id, state)
    return jsonify({"tab_id": tab_id, "state": state})


@app.delete("/api/tab-state/<tab_id>")
def clear_tab_state(tab_id):
    _check_tab_id(tab_id)
    user_token = session.get("user_token")
    tab_state_store.clear(user_token, tab_id)
    return "", 204


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting financial planner API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
