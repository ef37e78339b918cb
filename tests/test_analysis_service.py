from datetime import date

import pytest

from database import crud
from database.models import GoalStatus, SavingsGoalModel, TransactionType
from services.analysis_service import AnalysisService, score_color, score_label

INCOME = TransactionType.INCOME
TODAY = date(2024, 6, 15)


def _titles(health):
    return [item['title'] for item in health['recommendations']]


class TestScoreScale:
    """Tests des libellés et couleurs du score"""

    @pytest.mark.parametrize("score,label,color", [
        (100, "Excellent", "green"),
        (80, "Excellent", "green"),
        (79, "Good", "orange"),
        (60, "Good", "orange"),
        (59, "Fair", "red"),
        (40, "Fair", "red"),
        (39, "Needs Attention", "red"),
        (0, "Needs Attention", "red"),
    ])
    def test_label_and_color(self, score, label, color):
        assert score_label(score) == label
        assert score_color(score) == color


class TestMonthlyTrends:
    """Tests des tendances mensuelles"""

    def test_months_are_ordered_and_zero_filled(self, db_session, user, add_transaction):
        add_transaction(user, 1000, type=INCOME, on=date(2024, 1, 5))
        add_transaction(user, 200, on=date(2024, 3, 1))
        add_transaction(user, 50, on=date(2023, 12, 31))

        trends = AnalysisService(db_session).monthly_trends(user.id, 3, today=date(2024, 3, 10))
        assert [t['label'] for t in trends] == ["Jan 2024", "Feb 2024", "Mar 2024"]
        assert [(t['income'], t['expenses'], t['net']) for t in trends] == [
            (1000.0, 0.0, 1000.0),
            (0.0, 0.0, 0.0),
            (0.0, 200.0, -200.0),
        ]

    def test_window_crosses_year_boundary(self, db_session, user):
        trends = AnalysisService(db_session).monthly_trends(user.id, 2, today=date(2024, 1, 20))
        assert [(t['year'], t['month']) for t in trends] == [(2023, 12), (2024, 1)]

    @pytest.mark.parametrize("months", [0, 61])
    def test_months_out_of_range(self, db_session, user, months):
        with pytest.raises(ValueError):
            AnalysisService(db_session).monthly_trends(user.id, months)


class TestFinancialHealth:
    """Tests du score de santé financière"""

    def test_score_for_a_saver_without_budgets_or_goals(self, db_session, user, add_transaction):
        add_transaction(user, 10000, type=INCOME, category="Salary", on=date(2024, 6, 1))
        add_transaction(user, 4000, category="Food", on=date(2024, 6, 2))
        crud.update_user_financials(db_session, user.id, current_savings=4000)

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['factors'] == {
            'savings_rate': 100.0,
            'expense_ratio': 100.0,
            'budget_adherence': 50.0,
            'goal_progress': 50.0,
            'emergency_fund': 50.0,
        }
        assert health['score'] == 75
        assert health['status'] == "Good"
        assert health['color'] == "orange"
        assert health['metrics']['emergency_months'] == 3.0
        assert _titles(health)[1:] == ["Set monthly budgets", "Define a savings goal"]
        assert _titles(health)[0].startswith("Food is 100.0%")

    def test_transactions_outside_window_are_ignored(self, db_session, user, add_transaction):
        add_transaction(user, 999, on=date(2024, 1, 1))

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['metrics']['expenses'] == 0.0
        assert health['factors']['expense_ratio'] == 50.0

    def test_overspending(self, db_session, user, add_transaction):
        add_transaction(user, 1000, type=INCOME, on=date(2024, 6, 1))
        add_transaction(user, 600, category="Rent", on=date(2024, 6, 2))
        add_transaction(user, 600, category="Food", on=date(2024, 6, 3))
        crud.upsert_budget(db_session, user.id, "Food", 6, 2024, 500.0)

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['factors']['savings_rate'] == 0.0
        assert health['factors']['expense_ratio'] == 0.0
        assert health['factors']['budget_adherence'] == 0.0
        assert health['metrics']['over_budget_categories'] == ["Food"]
        titles = _titles(health)
        assert "Spending exceeds income" in titles
        assert "Budgets exceeded" in titles
        assert "Build an emergency fund" in titles
        assert health['color'] == "red"

    def test_goal_progress(self, db_session, user):
        crud.save_savings_goal(db_session, SavingsGoalModel(
            user_id=user.id, name="Laptop", target_amount=1000, current_amount=100, status=GoalStatus.IN_PROGRESS
        ))
        crud.save_savings_goal(db_session, SavingsGoalModel(
            user_id=user.id, name="Trip", target_amount=1000, current_amount=300, status=GoalStatus.IN_PROGRESS
        ))

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['factors']['goal_progress'] == 20.0
        assert "Keep contributing to your goals" in _titles(health)

    def test_completed_goals_count_as_full_progress(self, db_session, user):
        crud.save_savings_goal(db_session, SavingsGoalModel(
            user_id=user.id, name="Phone", target_amount=500, current_amount=500, status=GoalStatus.COMPLETED
        ))

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['factors']['goal_progress'] == 100.0

    def test_healthy_finances(self, db_session, user, add_transaction):
        add_transaction(user, 5000, type=INCOME, category="Salary", on=date(2024, 6, 1))
        add_transaction(user, 400, category="Food", on=date(2024, 6, 2))
        add_transaction(user, 400, category="Rent", on=date(2024, 6, 3))
        add_transaction(user, 400, category="Transport", on=date(2024, 6, 4))
        add_transaction(user, 400, category="Health", on=date(2024, 6, 5))
        crud.upsert_budget(db_session, user.id, "Food", 6, 2024, 500.0)
        crud.update_user_financials(db_session, user.id, current_savings=10000)
        crud.save_savings_goal(db_session, SavingsGoalModel(
            user_id=user.id, name="House", target_amount=1000, current_amount=800, status=GoalStatus.IN_PROGRESS
        ))

        health = AnalysisService(db_session).financial_health(user, today=TODAY)
        assert health['score'] == 97
        assert health['status'] == "Excellent"
        assert _titles(health) == ["Great job"]


class TestAnalyticsApi:
    """Tests des endpoints /api/analytics"""

    def test_health(self, client, auth_headers):
        data = client.get("/api/analytics/health", headers=auth_headers).json()
        assert 0 <= data["score"] <= 100
        assert set(data["factors"]) == {
            "savings_rate", "expense_ratio", "budget_adherence", "goal_progress", "emergency_fund"
        }
        assert data["recommendations"]

    def test_categories_for_a_period(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 60, category="Food", on=date(2024, 5, 2))
        add_transaction(user, 40, category="Rent", on=date(2024, 5, 3))
        add_transaction(user, 500, category="Food", on=date(2024, 6, 1))

        response = client.get(
            "/api/analytics/categories",
            params={"type": "EXPENSE", "startDate": "2024-05-01", "endDate": "2024-05-31"},
            headers=auth_headers
        )
        assert [(c["category"], c["percentage"]) for c in response.json()] == [("Food", 60.0), ("Rent", 40.0)]

    def test_categories_reversed_range(self, client, auth_headers):
        response = client.get(
            "/api/analytics/categories",
            params={"startDate": "2024-05-31", "endDate": "2024-05-01"},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_trends_out_of_range(self, client, auth_headers):
        assert client.get("/api/analytics/trends", params={"months": 61}, headers=auth_headers).status_code == 400
