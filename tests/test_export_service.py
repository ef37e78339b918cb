from datetime import date
import csv
import io

from openpyxl import load_workbook
import pytest

from database import crud
from database.models import TransactionType
from models.savings_goal import SavingsGoalCreate
from services import export_service
from services.analysis_service import AnalysisService
from services.exceptions import ExportError, FileSizeLimitExceededError, UserNotFoundError
from services.export_service import (
    ExportService, estimate_export_size, estimate_processing_time, export_preview,
    format_money, period_label, validate_export_request
)
from services.savings_goal_service import SavingsGoalService
from services.user_profile_service import UserProfileService

INCOME = TransactionType.INCOME


@pytest.fixture
def ledger(db_session, user, add_transaction):
    """Quelques transactions, un budget et un objectif pour alice"""
    add_transaction(user, 3000, type=INCOME, category="Salary", on=date(2024, 3, 1))
    add_transaction(user, 120.5, category="Food", on=date(2024, 3, 3), description="Market, weekly")
    add_transaction(user, 800, category="Rent", on=date(2024, 3, 5), title="March rent")
    add_transaction(user, 45, category="Transport", on=date(2024, 4, 2))
    crud.upsert_budget(db_session, user.id, "Food", 3, 2024, 100.0)
    SavingsGoalService(db_session).create_goal(user, SavingsGoalCreate(name="Vacation", target_amount=2000, current_amount=500))
    return user


class TestFormatting:
    """Tests des fonctions de formatage et d'estimation"""

    def test_format_money(self):
        assert format_money(1234.5) == "INR 1,234.50"
        assert format_money(-20, "USD") == "USD -20.00"

    def test_period_label(self):
        assert period_label(None, None) == "All Time"
        assert period_label(date(2024, 1, 1), None) == "From Jan 01, 2024"
        assert period_label(None, date(2024, 2, 29)) == "Until Feb 29, 2024"
        assert period_label(date(2024, 1, 1), date(2024, 1, 31)) == "Jan 01, 2024 to Jan 31, 2024"

    @pytest.mark.parametrize("days,expected", [
        (0, "0 KB"),
        (30, "60 KB"),
        (511, "1022 KB"),
        (512, "1.0 MB"),
        (1825, "3.6 MB"),
    ])
    def test_estimate_export_size(self, days, expected):
        assert estimate_export_size(days) == expected

    @pytest.mark.parametrize("days,expected", [
        (30, "< 30 seconds"),
        (31, "30-60 seconds"),
        (365, "30-60 seconds"),
        (1825, "1-3 minutes"),
        (1826, "> 3 minutes"),
    ])
    def test_estimate_processing_time(self, days, expected):
        assert estimate_processing_time(days) == expected


class TestExportValidation:
    """Tests de la validation et de l'aperçu des exports"""

    def test_valid_request(self):
        result = validate_export_request(date(2024, 1, 1), date(2024, 1, 31), "PDF")
        assert result == {
            'valid': True,
            'errors': [],
            'warnings': [],
            'estimatedProcessingTime': "< 30 seconds",
            'estimatedFileSize': "60 KB",
        }

    def test_reversed_range_and_bad_format(self):
        result = validate_export_request(date(2024, 2, 1), date(2024, 1, 1), "docx")
        assert result['valid'] is False
        assert "Start date cannot be after end date" in result['errors']
        assert any("Invalid export format" in error for error in result['errors'])

    def test_large_range_is_a_warning(self):
        result = validate_export_request(date(2022, 1, 1), date(2024, 1, 1), "csv")
        assert result['valid'] is True
        assert result['warnings'] == ["Large date range may result in slower export processing"]

    def test_range_over_five_years_is_an_error(self):
        result = validate_export_request(date(2015, 1, 1), date(2024, 1, 1), None)
        assert result['errors'] == ["Date range cannot exceed 5 years"]

    def test_open_range_has_no_estimates(self):
        result = validate_export_request(None, None, "excel")
        assert result == {'valid': True, 'errors': [], 'warnings': []}

    def test_preview(self):
        preview = export_preview("alice", date(2024, 1, 1), date(2024, 1, 11))
        assert preview['startDate'] == "2024-01-01"
        assert preview['estimatedDays'] == 10
        assert preview['estimatedSize'] == "20 KB"

        open_preview = export_preview("alice", None, None)
        assert open_preview['startDate'] == "All time"
        assert 'estimatedDays' not in open_preview

    def test_preview_with_reversed_range(self):
        with pytest.raises(ValueError):
            export_preview("alice", date(2024, 2, 1), date(2024, 1, 1))


class TestExportPreconditions:
    """Tests des contrôles communs à tous les exports"""

    @pytest.mark.parametrize("username", ["", "   ", None])
    def test_empty_username(self, db_session, username):
        with pytest.raises(ValueError):
            ExportService(db_session).export_transactions_to_pdf(username)

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            ExportService(db_session).export_transactions_to_csv("ghost")

    def test_reversed_dates(self, db_session, user):
        with pytest.raises(ValueError):
            ExportService(db_session).export_to_excel("alice", date(2024, 2, 1), date(2024, 1, 1))

    def test_size_limit(self, db_session, ledger, monkeypatch):
        monkeypatch.setattr(export_service, "TRANSACTIONS_PDF_LIMIT", 100)
        with pytest.raises(FileSizeLimitExceededError) as excinfo:
            ExportService(db_session).export_transactions_to_pdf("alice")
        assert excinfo.value.limit == 100
        assert excinfo.value.size > 100

    def test_generation_failure_is_an_export_error(self, db_session, ledger, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(AnalysisService, "monthly_trends", broken)
        with pytest.raises(ExportError):
            ExportService(db_session).export_analytics_to_pdf("alice")


class TestDocuments:
    """Tests du contenu des documents générés"""

    def test_transactions_pdf(self, db_session, ledger):
        content = ExportService(db_session).export_transactions_to_pdf("alice", date(2024, 3, 1), date(2024, 3, 31))
        assert content.startswith(b"%PDF")

    def test_transactions_pdf_without_transactions(self, db_session, user):
        assert ExportService(db_session).export_transactions_to_pdf("alice").startswith(b"%PDF")

    def test_transactions_csv(self, db_session, ledger):
        content = ExportService(db_session).export_transactions_to_csv("alice", date(2024, 3, 1), date(2024, 3, 31))
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == ["Date", "Title", "Category", "Type", "Amount", "Description"]
        assert len(rows) == 4
        assert rows[1] == ["2024-03-05", "March rent", "Rent", "EXPENSE", "800.00", ""]
        assert rows[2][5] == "Market, weekly"
        assert rows[2][4] == "120.50"

    def test_csv_without_transactions_has_only_the_header(self, db_session, user):
        content = ExportService(db_session).export_transactions_to_csv("alice")
        assert content == "Date,Title,Category,Type,Amount,Description\n"

    def test_analytics_pdf(self, db_session, ledger):
        assert ExportService(db_session).export_analytics_to_pdf("alice").startswith(b"%PDF")

    def test_comprehensive_report(self, db_session, ledger):
        content = ExportService(db_session).generate_comprehensive_report("alice", date(2024, 1, 1), date(2024, 12, 31))
        assert content.startswith(b"%PDF")

    def test_comprehensive_report_over_five_years(self, db_session, ledger):
        with pytest.raises(ValueError):
            ExportService(db_session).generate_comprehensive_report("alice", date(2015, 1, 1), date(2024, 1, 1))

    def test_comprehensive_report_survives_a_failing_section(self, db_session, ledger, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("health unavailable")

        texts = []
        paragraph = ExportService._paragraph

        def recording(self, text):
            texts.append(text)
            return paragraph(self, text)

        monkeypatch.setattr(AnalysisService, "financial_health", broken)
        monkeypatch.setattr(ExportService, "_paragraph", recording)
        content = ExportService(db_session).generate_comprehensive_report("alice")
        assert content.startswith(b"%PDF")

        unavailable = [text for text in texts if text.endswith("data unavailable.")]
        assert unavailable == ["Financial health data unavailable.", "Recommendations data unavailable."]

    def test_excel_workbook(self, db_session, ledger):
        content = ExportService(db_session).export_to_excel("alice")
        wb = load_workbook(io.BytesIO(content))
        assert wb.sheetnames == ["Transactions", "Budgets", "Savings Goals", "Summary"]

        transactions = wb["Transactions"]
        assert [cell.value for cell in transactions[1]] == ["Date", "Title", "Category", "Type", "Amount", "Description"]
        assert transactions.max_row == 5
        assert transactions["E2"].number_format == '"₹"#,##0.00'
        assert transactions["A1"].font.bold

        budgets = wb["Budgets"]
        assert budgets["A2"].value == "Food"
        assert budgets["B2"].value == "March"
        assert budgets["E2"].value == 120.5

        goals = wb["Savings Goals"]
        assert goals["A2"].value == "Vacation"
        assert goals["F2"].value == "No deadline"

        summary = wb["Summary"]
        assert summary["A1"].value == "FINANCIAL SUMMARY"
        assert summary["B2"].value == "All Time"
        assert summary["B3"].value == 3000.0
        assert summary["B4"].value == 965.5
        assert summary["B6"].value == 4

    def test_excel_uses_preferred_currency_symbol(self, db_session, ledger):
        UserProfileService(db_session).update_currency(ledger.id, "USD")

        wb = load_workbook(io.BytesIO(ExportService(db_session).export_to_excel("alice")))
        assert wb["Summary"]["B3"].number_format == '"$"#,##0.00'

    def test_budget_report(self, db_session, ledger):
        assert ExportService(db_session).generate_budget_report("alice", 3, 2024).startswith(b"%PDF")

    def test_budget_report_without_budgets(self, db_session, user):
        assert ExportService(db_session).generate_budget_report("alice", 1, 2024).startswith(b"%PDF")

    @pytest.mark.parametrize("month,year", [(13, 2024), (0, 2024), (3, 0), (3, 1999), (3, date.today().year + 2)])
    def test_budget_report_invalid_period(self, db_session, user, month, year):
        with pytest.raises(ValueError):
            ExportService(db_session).generate_budget_report("alice", month, year)

    def test_savings_goals_report(self, db_session, ledger):
        assert ExportService(db_session).generate_savings_goals_report("alice").startswith(b"%PDF")

    def test_savings_goals_report_without_goals(self, db_session, user):
        assert ExportService(db_session).generate_savings_goals_report("alice").startswith(b"%PDF")
