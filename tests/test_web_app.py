"""
Tests for the JSON API.
"""

import pytest

import finplan_web.app as web
from finplan_web.tab_state_store import TabStateStore

LOAN = {"principal": "10L", "annual_rate": "8.5", "tenure_months": "20y"}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(web, "tab_state_store", TabStateStore("sqlite://"))
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        yield client


class TestCalculationEndpoints:
    def test_loan(self, client):
        response = client.post("/api/loan", json=LOAN)
        assert response.status_code == 200

        body = response.get_json()
        assert body["summary"]["actual_tenure_months"] == 240
        assert len(body["schedule"]) == 240
        assert body["schedule"][0]["month"] == 1
        assert body["display"]["installment"] == "₹8,678"
        assert body["impact"] == {"interest_saved": 0.0, "tenure_reduced": 0}

    def test_loan_missing_field(self, client):
        response = client.post("/api/loan", json={"principal": "10L", "annual_rate": "8.5"})
        assert response.status_code == 400
        assert response.get_json() == {"error": "Missing required field: tenure_months"}

    def test_loan_rejects_non_json_body(self, client):
        response = client.post("/api/loan", data="principal=10L")
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            '{"principal": NaN, "annual_rate": 8.5, "tenure_months": 240}',
            '{"principal": 1000000, "annual_rate": Infinity, "tenure_months": 240}',
            '{"principal": 1000000, "annual_rate": 8.5, "tenure_months": Infinity}',
        ],
    )
    def test_loan_rejects_non_finite_numbers(self, client, body):
        response = client.post("/api/loan", data=body, content_type="application/json")
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_loan_compare(self, client):
        response = client.post(
            "/api/loan/compare",
            json={"scenario1": LOAN, "scenario2": dict(LOAN, annual_rate="9.5")},
        )
        body = response.get_json()
        assert response.status_code == 200
        assert body["installment_difference"] > 0
        assert body["tenure_difference"] == 0

    def test_loan_compare_needs_both_scenarios(self, client):
        response = client.post("/api/loan/compare", json={"scenario1": LOAN})
        assert response.status_code == 400

    def test_income_projections(self, client):
        plan = {
            "initial_amount": "1L",
            "periodic_contribution": "10k",
            "annual_growth_rate": "12",
            "time_horizon_months": "5y",
            "tax_bracket": "30",
        }
        plain = client.post("/api/income", json=plan).get_json()
        taxed = client.post("/api/income", json=dict(plan, variant="income_growth")).get_json()

        assert len(plain["schedule"]) == 60
        assert "tax" not in plain["schedule"][0]
        assert taxed["schedule"][0]["tax"] > 0
        assert taxed["summary"]["total_contributions"] == plain["summary"]["total_contributions"]
        assert plain["display"]["total_contributions"] == "₹6.00L"

    def test_metrics(self, client):
        response = client.post(
            "/api/metrics",
            json={
                "loan_amount": "10L",
                "loan_interest_rate": "8.5",
                "loan_tenure_months": 240,
                "initial_amount": "1L",
                "monthly_investment": "10k",
                "expected_return": "12",
                "inflation_rate": "6",
            },
        )
        body = response.get_json()
        assert response.status_code == 200
        assert body["real_return_after_inflation"] == 6.0
        assert body["return_on_investment"] > 0
        assert 0 < body["break_even_month"] <= 240

    def test_goals(self, client):
        response = client.post(
            "/api/goals",
            json={
                "monthly_expenses": "50k",
                "expected_return": "12",
                "inflation_rate": "0",
                "years_to_retirement": "10",
                "annual_savings": "6L",
            },
        )
        body = response.get_json()
        assert response.status_code == 200
        assert body["retirement_corpus"] == 15_000_000.0
        assert body["safe_withdrawal_rate"] == 4.0
        assert body["required_monthly_investment"] > 0
        assert body["years_to_financial_independence"] > 0

    def test_goals_need_a_horizon(self, client):
        response = client.post(
            "/api/goals",
            json={"monthly_expenses": "50k", "expected_return": "12", "years_to_retirement": 0},
        )
        assert response.status_code == 400

    def test_tax(self, client):
        response = client.post("/api/tax", json={"annual_income": "10L", "interest_paid": "3L"})
        assert response.get_json() == {"income_tax": 75000.0, "home_loan_tax_saving": 30000.0}

    def test_prepay_vs_invest(self, client):
        response = client.post(
            "/api/prepay-vs-invest",
            json={"loan": LOAN, "amount": "10k", "frequency": "monthly", "investment_rate": "3"},
        )
        body = response.get_json()
        assert response.status_code == 200
        assert body["recommendation"] == "PrepayLoan"
        assert body["months_to_repay"] < body["baseline_months"]

    def test_prepay_vs_invest_requires_amount(self, client):
        response = client.post("/api/prepay-vs-invest", json={"loan": LOAN, "investment_rate": "9"})
        assert response.status_code == 400

    def test_net_possession(self, client):
        response = client.post(
            "/api/net-possession",
            json={
                "loan": LOAN,
                "income": {"initial_amount": "2L", "annual_growth_rate": "10", "time_horizon_months": 24},
            },
        )
        body = response.get_json()
        assert response.status_code == 200
        assert len(body["timeline"]) == 25
        assert body["timeline"][0]["net_possession"] == -800000.0
        assert body["summary"]["net_positive_month"] is None


class TestTabState:
    def test_round_trip(self, client):
        assert client.get("/api/tab-state/basic_loan").get_json()["state"] is None

        response = client.put("/api/tab-state/basic_loan", json=LOAN)
        assert response.status_code == 200
        assert client.get("/api/tab-state/basic_loan").get_json()["state"] == LOAN

    def test_clear(self, client):
        client.put("/api/tab-state/income_growth", json={"annual_growth_rate": "12"})
        assert client.delete("/api/tab-state/income_growth").status_code == 204
        assert client.get("/api/tab-state/income_growth").get_json()["state"] is None

    def test_visitors_are_isolated(self, client):
        client.put("/api/tab-state/basic_loan", json=LOAN)
        with web.app.test_client() as other:
            assert other.get("/api/tab-state/basic_loan").get_json()["state"] is None

    def test_unknown_tab(self, client):
        assert client.get("/api/tab-state/settings").status_code == 400
        assert client.put("/api/tab-state/settings", json={}).status_code == 400

    def test_list_tabs(self, client):
        assert client.get("/api/tab-state").get_json() == {"tabs": []}

        client.put("/api/tab-state/income_growth", json={"annual_growth_rate": "12"})
        client.put("/api/tab-state/basic_loan", json=LOAN)
        assert client.get("/api/tab-state").get_json() == {"tabs": ["basic_loan", "income_growth"]}
