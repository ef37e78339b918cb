from datetime import date

from database.models import TransactionType

INCOME = TransactionType.INCOME


class TestTransactionCrudApi:
    """Tests des endpoints CRUD /api/transactions"""

    payload = {
        "title": "Groceries",
        "category": "Food",
        "type": "EXPENSE",
        "amount": 42.456,
        "description": "Weekly shopping",
        "transactionDate": "2024-03-02",
    }

    def test_create_transaction(self, client, auth_headers):
        response = client.post("/api/transactions", json=self.payload, headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["amount"] == 42.46
        assert data["type"] == "EXPENSE"
        assert data["transactionDate"] == "2024-03-02"

    def test_create_rejects_negative_amount(self, client, auth_headers):
        response = client.post("/api/transactions", json={**self.payload, "amount": -5}, headers=auth_headers)
        assert response.status_code == 400

    def test_create_rejects_blank_title(self, client, auth_headers):
        response = client.post("/api/transactions", json={**self.payload, "title": "   "}, headers=auth_headers)
        assert response.status_code == 400

    def test_update_rejects_blank_category(self, client, auth_headers):
        created = client.post("/api/transactions", json=self.payload, headers=auth_headers).json()
        url = f"/api/transactions/{created['id']}"

        assert client.put(url, json={"category": "  "}, headers=auth_headers).status_code == 400
        assert client.get(url, headers=auth_headers).json()["category"] == "Food"
        assert client.get("/api/transactions", headers=auth_headers).status_code == 200

    def test_get_update_delete(self, client, auth_headers):
        created = client.post("/api/transactions", json=self.payload, headers=auth_headers).json()
        url = f"/api/transactions/{created['id']}"

        assert client.get(url, headers=auth_headers).json()["title"] == "Groceries"

        updated = client.put(url, json={"amount": 50, "description": None}, headers=auth_headers)
        assert updated.status_code == 200
        assert updated.json()["amount"] == 50.0
        assert updated.json()["description"] is None
        assert updated.json()["title"] == "Groceries"

        deleted = client.delete(url, headers=auth_headers)
        assert deleted.json()["success"] is True
        assert client.get(url, headers=auth_headers).status_code == 404

    def test_transaction_of_another_user_is_not_found(self, client, auth_headers, other_user, add_transaction):
        foreign = add_transaction(other_user, 10)
        url = f"/api/transactions/{foreign.id}"
        assert client.get(url, headers=auth_headers).status_code == 404
        assert client.put(url, json={"amount": 1}, headers=auth_headers).status_code == 404
        assert client.delete(url, headers=auth_headers).status_code == 404

    def test_list_transactions(self, client, auth_headers, user, other_user, add_transaction):
        add_transaction(user, 10, on=date(2024, 1, 1))
        add_transaction(user, 20, on=date(2024, 2, 1))
        add_transaction(other_user, 30)

        amounts = [t["amount"] for t in client.get("/api/transactions", headers=auth_headers).json()]
        assert amounts == [20.0, 10.0]


class TestTransactionQueriesApi:
    """Tests des filtres et agrégats /api/transactions"""

    def test_filter_by_type_is_case_insensitive(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 10)
        add_transaction(user, 500, type=INCOME, category="Salary")

        response = client.get("/api/transactions/type/income", headers=auth_headers)
        assert response.status_code == 200
        assert [t["category"] for t in response.json()] == ["Salary"]

    def test_invalid_type_is_a_400(self, client, auth_headers):
        response = client.get("/api/transactions/type/transfer", headers=auth_headers)
        assert response.status_code == 400
        assert "transfer" in response.json()["detail"]

    def test_filter_by_category(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 10, category="Food")
        add_transaction(user, 20, category="Rent")

        response = client.get("/api/transactions/category/Rent", headers=auth_headers)
        assert [t["amount"] for t in response.json()] == [20.0]

    def test_date_range(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 10, on=date(2024, 1, 31))
        add_transaction(user, 20, on=date(2024, 2, 15))
        add_transaction(user, 30, on=date(2024, 3, 1))

        response = client.get(
            "/api/transactions/date-range",
            params={"startDate": "2024-02-01", "endDate": "2024-03-01"},
            headers=auth_headers
        )
        assert response.status_code == 200
        assert [t["amount"] for t in response.json()] == [30.0, 20.0]

    def test_reversed_date_range_is_a_400(self, client, auth_headers):
        response = client.get(
            "/api/transactions/date-range",
            params={"startDate": "2024-03-01", "endDate": "2024-02-01"},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_summary(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 1000, type=INCOME, category="Salary")
        add_transaction(user, 250.25)
        add_transaction(user, 100)

        summary = client.get("/api/transactions/summary", headers=auth_headers).json()
        assert summary == {
            "totalIncome": 1000.0,
            "totalExpenses": 350.25,
            "balance": 649.75,
            "transactionCount": 3,
        }

    def test_monthly_summary(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 1000, type=INCOME, on=date(2024, 2, 1))
        add_transaction(user, 40, on=date(2024, 2, 29))
        add_transaction(user, 70, on=date(2024, 3, 1))

        summary = client.get("/api/transactions/summary/2024/2", headers=auth_headers).json()
        assert summary["year"] == 2024
        assert summary["month"] == 2
        assert summary["totalExpenses"] == 40.0
        assert summary["transactionCount"] == 2

    def test_monthly_summary_with_invalid_month(self, client, auth_headers):
        assert client.get("/api/transactions/summary/2024/13", headers=auth_headers).status_code == 400

    def test_breakdowns(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 75, category="Food")
        add_transaction(user, 25, category="Transport")
        add_transaction(user, 900, type=INCOME, category="Salary")

        expenses = client.get("/api/transactions/breakdown/expenses", headers=auth_headers).json()
        assert expenses == [
            {"category": "Food", "amount": 75.0, "transactionCount": 1, "percentage": 75.0},
            {"category": "Transport", "amount": 25.0, "transactionCount": 1, "percentage": 25.0},
        ]
        income = client.get("/api/transactions/breakdown/income", headers=auth_headers).json()
        assert [item["category"] for item in income] == ["Salary"]
        assert income[0]["percentage"] == 100.0

    def test_recent(self, client, auth_headers, user, add_transaction):
        for day in range(1, 6):
            add_transaction(user, day, on=date(2024, 1, day))

        response = client.get("/api/transactions/recent", params={"limit": 2}, headers=auth_headers)
        assert [t["amount"] for t in response.json()] == [5.0, 4.0]

    def test_recent_limit_out_of_range(self, client, auth_headers):
        response = client.get("/api/transactions/recent", params={"limit": 0}, headers=auth_headers)
        assert response.status_code == 400

    def test_statistics(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 10)
        add_transaction(user, 20)
        add_transaction(user, 30)
        add_transaction(user, 40, type=INCOME)

        stats = client.get("/api/transactions/statistics", headers=auth_headers).json()
        assert stats == {
            "totalTransactions": 4,
            "incomeTransactions": 1,
            "expenseTransactions": 3,
            "incomePercentage": 25.0,
            "expensePercentage": 75.0,
        }

    def test_statistics_without_transactions(self, client, auth_headers):
        stats = client.get("/api/transactions/statistics", headers=auth_headers).json()
        assert stats["totalTransactions"] == 0
        assert stats["incomePercentage"] == 0.0

    def test_trends(self, client, auth_headers, user, add_transaction):
        add_transaction(user, 80)

        trends = client.get("/api/transactions/trends", params={"months": 3}, headers=auth_headers).json()
        assert len(trends) == 3
        assert trends[-1]["expenses"] == 80.0
        assert trends[-1]["net"] == -80.0
        assert trends[0]["expenses"] == 0.0

    def test_trends_with_invalid_months(self, client, auth_headers):
        assert client.get("/api/transactions/trends", params={"months": 0}, headers=auth_headers).status_code == 400
