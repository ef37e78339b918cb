import calendar
import csv
import io
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from database import crud
from database.models import GoalStatus, TransactionType, UserModel
from services.analysis_service import AnalysisService, score_color
from services.budget_service import BudgetService
from services.date_utils import validate_range
from services.exceptions import ExportError, FileSizeLimitExceededError
from services.user_profile_service import UserProfileService
from services.user_service import UserService

logger = logging.getLogger(__name__)

MB = 1024 * 1024

# Tailles maximales des documents générés
TRANSACTIONS_PDF_LIMIT = 25 * MB
CSV_LIMIT = 10 * MB
ANALYTICS_PDF_LIMIT = 25 * MB
COMPREHENSIVE_PDF_LIMIT = 50 * MB
EXCEL_LIMIT = 100 * MB
BUDGET_PDF_LIMIT = 25 * MB
SAVINGS_PDF_LIMIT = 25 * MB

# Plage maximale d'un rapport complet (5 ans)
MAX_RANGE_DAYS = 1825
LARGE_RANGE_DAYS = 365
ESTIMATED_KB_PER_DAY = 2

SUPPORTED_FORMATS = ('pdf', 'csv', 'excel')

CSV_HEADER = ["Date", "Title", "Category", "Type", "Amount", "Description"]

CURRENCY_SYMBOLS = {
    'INR': '₹',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
}

HEADER_COLOR = colors.HexColor('#1F3A93')
SCORE_COLORS = {
    'green': colors.HexColor('#2E7D32'),
    'orange': colors.HexColor('#EF6C00'),
    'red': colors.HexColor('#C62828'),
}


def format_money(amount: float, currency: str = 'INR') -> str:
    # Les polices PDF standard n'ont pas de glyphe pour ₹ : on affiche le code ISO
    return f"{currency} {amount:,.2f}"

def format_date(value: Optional[date], pattern: str = "%b %d, %Y") -> str:
    return value.strftime(pattern) if value else ""

def period_label(start_date: Optional[date], end_date: Optional[date]) -> str:
    if start_date and end_date:
        return f"{format_date(start_date)} to {format_date(end_date)}"
    if start_date:
        return f"From {format_date(start_date)}"
    if end_date:
        return f"Until {format_date(end_date)}"
    return "All Time"

def estimate_export_size(days: int) -> str:
    """Estimation grossière (~2 KB par jour de données)"""
    estimated_kb = days * ESTIMATED_KB_PER_DAY
    if estimated_kb < 1024:
        return f"{estimated_kb} KB"
    if estimated_kb < 1024 * 1024:
        return f"{estimated_kb / 1024:.1f} MB"
    return f"{estimated_kb / (1024 * 1024):.1f} GB"

def estimate_processing_time(days: int) -> str:
    if days <= 30:
        return "< 30 seconds"
    if days <= 365:
        return "30-60 seconds"
    if days <= MAX_RANGE_DAYS:
        return "1-3 minutes"
    return "> 3 minutes"

def validate_export_request(start_date: Optional[date], end_date: Optional[date], export_format: Optional[str]) -> Dict:
    """
    Vérifie une demande d'export sans la générer : erreurs bloquantes, avertissements et estimations
    """
    errors = []
    warnings = []
    if start_date and end_date and start_date > end_date:
        errors.append("Start date cannot be after end date")

    if start_date and end_date:
        days = (end_date - start_date).days
        if days > MAX_RANGE_DAYS:
            errors.append("Date range cannot exceed 5 years")
        elif days > LARGE_RANGE_DAYS:
            warnings.append("Large date range may result in slower export processing")

    if export_format is not None and export_format.lower() not in SUPPORTED_FORMATS:
        errors.append("Invalid export format. Supported formats: PDF, CSV, Excel")

    result = {'valid': not errors, 'errors': errors, 'warnings': warnings}
    if start_date and end_date:
        days = (end_date - start_date).days
        result['estimatedProcessingTime'] = estimate_processing_time(days)
        result['estimatedFileSize'] = estimate_export_size(days)
    return result

def export_preview(username: str, start_date: Optional[date], end_date: Optional[date]) -> Dict:
    validate_range(start_date, end_date)
    preview = {
        'startDate': start_date.isoformat() if start_date else "All time",
        'endDate': end_date.isoformat() if end_date else "All time",
        'username': username,
        'exportDate': date.today().isoformat(),
    }
    if start_date and end_date:
        days = (end_date - start_date).days
        preview['estimatedDays'] = days
        preview['estimatedSize'] = estimate_export_size(days)
    return preview


class ExportService:
    """
    Génération des rapports (PDF, CSV, Excel) à partir des transactions, budgets et objectifs
    """

    def __init__(self, db: Session):
        self.db = db
        self.users = UserService(db)
        self.analysis = AnalysisService(db)
        self.budgets = BudgetService(db)
        self.profiles = UserProfileService(db)

        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            'ReportTitle', parent=self.styles['Title'], fontSize=20, alignment=TA_CENTER, spaceAfter=6
        )
        self.subtitle_style = ParagraphStyle(
            'ReportSubtitle', parent=self.styles['Normal'], fontSize=11, alignment=TA_CENTER, spaceAfter=12
        )
        self.heading_style = ParagraphStyle(
            'SectionHeading', parent=self.styles['Heading2'], spaceBefore=14, spaceAfter=6
        )
        self.body_style = self.styles['Normal']

    # ------------------------------------------------------------------
    # Validation et helpers communs
    # ------------------------------------------------------------------

    def _resolve_user(self, username: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> UserModel:
        if username is None or not str(username).strip():
            raise ValueError("Le nom d'utilisateur ne peut pas être vide")
        validate_range(start_date, end_date)
        return self.users.get_by_username(username)

    def _check_size(self, content: bytes, limit: int, label: str) -> None:
        if len(content) > limit:
            logger.warning(f"Export {label} trop volumineux: {len(content)} octets (limite {limit})")
            raise FileSizeLimitExceededError(len(content), limit)

    def _generate(self, label: str, builder: Callable[[], bytes], limit: int) -> bytes:
        try:
            content = builder()
        except Exception as e:
            logger.error(f"Erreur lors de la génération de l'export {label}: {str(e)}")
            raise ExportError(f"Erreur lors de la génération de l'export {label}: {str(e)}") from e
        self._check_size(content, limit, label)
        logger.info(f"Export {label} généré ({len(content)} octets)")
        return content

    def _build_pdf(self, elements: List, title: str) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=A4, title=title,
            leftMargin=0.7 * inch, rightMargin=0.7 * inch, topMargin=0.7 * inch, bottomMargin=0.7 * inch
        )
        doc.build(elements)
        return buffer.getvalue()

    def _heading(self, text: str) -> Paragraph:
        return Paragraph(escape(text), self.heading_style)

    def _paragraph(self, text: str) -> Paragraph:
        return Paragraph(escape(text), self.body_style)

    def _table(self, rows: List[List], col_widths: Optional[List[float]] = None, extra_styles: Optional[List[Tuple]] = None) -> Table:
        """Tableau avec ligne d'en-tête colorée"""
        table = Table(rows, colWidths=col_widths, repeatRows=1)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), HEADER_COLOR),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F2F4F8')]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]
        table.setStyle(TableStyle(style + (extra_styles or [])))
        return table

    def _key_value_table(self, rows: List[Tuple[str, str]], extra_styles: Optional[List[Tuple]] = None) -> Table:
        """Tableau à deux colonnes (libellé en gras, valeur)"""
        table = Table([list(row) for row in rows], colWidths=[2.8 * inch, 3.2 * inch])
        style = [
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#F2F4F8')),
        ]
        table.setStyle(TableStyle(style + (extra_styles or [])))
        return table

    def _title_block(self, title: str, subtitle: str) -> List:
        return [Paragraph(escape(title), self.title_style), Paragraph(escape(subtitle), self.subtitle_style)]

    def _generated_on(self) -> str:
        return f"Generated on: {date.today().strftime('%B %d, %Y')}"

    def _summary_rows(self, summary: Dict, currency: str) -> List[Tuple[str, str]]:
        return [
            ("Total Income:", format_money(summary['totalIncome'], currency)),
            ("Total Expenses:", format_money(summary['totalExpenses'], currency)),
            ("Net Balance:", format_money(summary['balance'], currency)),
            ("Total Transactions:", str(summary['transactionCount'])),
        ]

    def _breakdown_table(self, breakdown: List[Dict], currency: str, with_details: bool = False) -> Table:
        if with_details:
            rows = [["Category", "Amount", "Transactions", "Percentage"]]
            rows += [
                [item['category'], format_money(item['amount'], currency), str(item['transactionCount']), f"{item['percentage']:.1f}%"]
                for item in breakdown
            ]
        else:
            rows = [["Category", "Total Amount", "Share"]]
            rows += [
                [item['category'], format_money(item['amount'], currency), f"{item['percentage']:.1f}%"]
                for item in breakdown
            ]
        return self._table(rows)

    def _trends_table(self, trends: List[Dict], currency: str) -> Table:
        rows = [["Month", "Income", "Expenses", "Net"]]
        for trend in trends:
            rows.append([
                trend['label'],
                format_money(trend['income'], currency),
                format_money(trend['expenses'], currency),
                format_money(trend['net'], currency),
            ])
        return self._table(rows)

    def _transactions_table(self, transactions: List, currency: str) -> Table:
        rows = [["Date", "Title", "Category", "Type", "Amount"]]
        for t in transactions:
            rows.append([
                format_date(t.transaction_date),
                t.title if len(t.title) <= 40 else t.title[:37] + "...",
                t.category,
                t.type.value,
                format_money(t.amount, currency),
            ])
        return self._table(rows, col_widths=[1.1 * inch, 2.3 * inch, 1.3 * inch, 0.8 * inch, 1.3 * inch])

    def _budget_table(self, statuses: List[Dict], currency: str, with_progress: bool = True) -> Table:
        header = ["Category", "Budget", "Spent", "Remaining"]
        if with_progress:
            header.append("Progress")
        header.append("Status")
        rows = [header]
        extra = []
        for index, status in enumerate(statuses, start=1):
            over = status['over_budget']
            row = [
                status['category'],
                format_money(status['budget_amount'], currency),
                format_money(status['spent_amount'], currency),
                format_money(status['remaining_amount'], currency),
            ]
            if with_progress:
                row.append(f"{status['progress_percentage']:.1f}%")
            row.append("Over Budget" if over else "On Track")
            rows.append(row)
            extra.append(('TEXTCOLOR', (-1, index), (-1, index), SCORE_COLORS['red'] if over else SCORE_COLORS['green']))
        return self._table(rows, extra_styles=extra)

    def _goals_table(self, goals: List, currency: str, with_remaining: bool = False) -> Table:
        header = ["Goal", "Target", "Current"]
        if with_remaining:
            header.append("Remaining")
        header += ["Progress", "Target Date", "Status"]
        rows = [header]
        extra = []
        for index, goal in enumerate(goals, start=1):
            row = [
                goal.name,
                format_money(goal.target_amount, currency),
                format_money(goal.current_amount, currency),
            ]
            if with_remaining:
                row.append(format_money(goal.remaining_amount, currency))
            row += [
                f"{goal.progress_percentage:.1f}%",
                format_date(goal.target_date) or "No deadline",
                goal.status.value.replace('_', ' ').title(),
            ]
            rows.append(row)
            if goal.status == GoalStatus.COMPLETED:
                extra.append(('TEXTCOLOR', (-1, index), (-1, index), SCORE_COLORS['green']))
            elif goal.status == GoalStatus.CANCELLED:
                extra.append(('TEXTCOLOR', (-1, index), (-1, index), SCORE_COLORS['red']))
        return self._table(rows, extra_styles=extra)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def export_transactions_to_pdf(self, username: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> bytes:
        """
        Rapport PDF des transactions : résumé de la période, détail des transactions
        et répartition des dépenses par catégorie
        """
        user = self._resolve_user(username, start_date, end_date)

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            transactions = crud.get_transactions_in_period(self.db, user.id, start_date, end_date)
            elements = self._title_block("Financial Report", f"Period: {period_label(start_date, end_date)}")

            elements.append(self._heading("Financial Summary"))
            summary = self.analysis.financial_summary(user.id, start_date, end_date)
            elements.append(self._key_value_table(self._summary_rows(summary, currency)))

            elements.append(self._heading("Transaction Details"))
            if transactions:
                elements.append(self._transactions_table(transactions, currency))
            else:
                elements.append(self._paragraph("No transactions found for the selected period."))

            elements.append(self._heading("Expense Breakdown by Category"))
            breakdown = self.analysis.category_breakdown(user.id, TransactionType.EXPENSE, start_date, end_date)
            if breakdown:
                elements.append(self._breakdown_table(breakdown, currency))
            else:
                elements.append(self._paragraph("No expense data available."))
            return self._build_pdf(elements, "Financial Report")

        return self._generate("transactions-pdf", build, TRANSACTIONS_PDF_LIMIT)

    def export_transactions_to_csv(self, username: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> str:
        """Export CSV : une ligne d'en-tête puis une ligne par transaction"""
        user = self._resolve_user(username, start_date, end_date)
        try:
            transactions = crud.get_transactions_in_period(self.db, user.id, start_date, end_date)
            output = io.StringIO()
            writer = csv.writer(output, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for t in transactions:
                writer.writerow([
                    t.transaction_date.strftime("%Y-%m-%d"),
                    t.title,
                    t.category,
                    t.type.value,
                    f"{t.amount:.2f}",
                    t.description or "",
                ])
            content = output.getvalue()
        except Exception as e:
            logger.error(f"Erreur lors de la génération du CSV: {str(e)}")
            raise ExportError(f"Erreur lors de la génération du CSV: {str(e)}") from e

        self._check_size(content.encode("utf-8"), CSV_LIMIT, "transactions-csv")
        logger.info(f"Export CSV généré pour {user.username}: {len(transactions)} transactions")
        return content

    # ------------------------------------------------------------------
    # Analytique
    # ------------------------------------------------------------------

    def export_analytics_to_pdf(self, username: str) -> bytes:
        user = self._resolve_user(username)

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            elements = self._title_block("Financial Analytics Report", self._generated_on())

            elements.append(self._heading("Financial Overview"))
            summary = self.analysis.financial_summary(user.id)
            elements.append(self._key_value_table(self._summary_rows(summary, currency)))

            elements.append(self._heading("Expense Breakdown"))
            breakdown = self.analysis.category_breakdown(user.id, TransactionType.EXPENSE)
            if breakdown:
                elements.append(self._breakdown_table(breakdown, currency))
            else:
                elements.append(self._paragraph("No expense data available."))

            elements.append(self._heading("Monthly Trends"))
            elements.append(self._trends_table(self.analysis.monthly_trends(user.id, 6), currency))
            return self._build_pdf(elements, "Financial Analytics Report")

        return self._generate("analytics-pdf", build, ANALYTICS_PDF_LIMIT)

    # ------------------------------------------------------------------
    # Rapport complet
    # ------------------------------------------------------------------

    def generate_comprehensive_report(self, username: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> bytes:
        """
        Rapport complet : chaque section est générée indépendamment, une section en échec
        est remplacée par un paragraphe « unavailable »
        """
        user = self._resolve_user(username, start_date, end_date)
        if start_date and end_date and (end_date - start_date).days > MAX_RANGE_DAYS:
            raise ValueError("La période ne peut pas dépasser 5 ans")

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            elements = self._title_block("COMPREHENSIVE FINANCIAL REPORT", f"Period: {period_label(start_date, end_date)}")
            sections = [
                ("Report information", lambda: self._metadata_section(user)),
                ("Executive summary", lambda: self._executive_summary_section(user, start_date, end_date, currency)),
                ("Financial health", lambda: self._health_section(user)),
                ("Transaction analysis", lambda: self._transaction_analysis_section(user, start_date, end_date, currency)),
                ("Budget performance", lambda: self._budget_performance_section(user, currency)),
                ("Savings goals", lambda: self._savings_goals_section(user, currency)),
                ("Monthly trends", lambda: self._monthly_trends_section(user, currency)),
                ("Category analysis", lambda: self._category_section(user, start_date, end_date, currency)),
                ("Recommendations", lambda: self._recommendations_section(user)),
            ]
            for name, section in sections:
                try:
                    elements.extend(section())
                except Exception as e:
                    logger.warning(f"Section '{name}' indisponible pour {user.username}: {str(e)}")
                    elements.append(self._paragraph(f"{name} data unavailable."))
            return self._build_pdf(elements, "Comprehensive Financial Report")

        return self._generate("comprehensive-pdf", build, COMPREHENSIVE_PDF_LIMIT)

    def _metadata_section(self, user: UserModel) -> List:
        return [
            self._key_value_table([
                ("Prepared for", user.username),
                ("Email", user.email),
                ("Generated on", date.today().strftime('%B %d, %Y')),
            ]),
            Spacer(1, 0.15 * inch),
        ]

    def _executive_summary_section(self, user: UserModel, start_date, end_date, currency: str) -> List:
        summary = self.analysis.financial_summary(user.id, start_date, end_date)
        income = summary['totalIncome']
        savings_rate = (summary['balance'] / income * 100) if income > 0 else 0.0
        balance_color = SCORE_COLORS['green'] if summary['balance'] >= 0 else SCORE_COLORS['red']
        rows = [
            ("Total Income", format_money(income, currency)),
            ("Total Expenses", format_money(summary['totalExpenses'], currency)),
            ("Net Savings", format_money(summary['balance'], currency)),
            ("Savings Rate", f"{savings_rate:.1f}%"),
            ("Current Savings", format_money(user.current_savings or 0.0, currency)),
            ("Monthly Income", format_money(user.monthly_income or 0.0, currency)),
        ]
        return [
            self._heading("EXECUTIVE SUMMARY"),
            self._key_value_table(rows, extra_styles=[('TEXTCOLOR', (1, 2), (1, 2), balance_color)]),
        ]

    def _health_section(self, user: UserModel) -> List:
        health = self.analysis.financial_health(user)
        score = health['score']
        score_style = ParagraphStyle(
            'HealthScore', parent=self.styles['Heading3'], textColor=SCORE_COLORS[score_color(score)]
        )
        rows = [["Factor", "Score"]]
        rows += [[name.replace('_', ' ').title(), f"{value:.0f}/100"] for name, value in health['factors'].items()]
        return [
            self._heading("FINANCIAL HEALTH ANALYSIS"),
            Paragraph(f"Overall Health Score: {score}/100 ({escape(health['status'])})", score_style),
            self._table(rows),
        ]

    def _transaction_analysis_section(self, user: UserModel, start_date, end_date, currency: str) -> List:
        elements = [self._heading("TRANSACTION ANALYSIS")]
        transactions = crud.get_transactions_in_period(self.db, user.id, start_date, end_date)
        if not transactions:
            elements.append(self._paragraph("No transactions found for the selected period."))
            return elements
        income_count = sum(1 for t in transactions if t.type == TransactionType.INCOME)
        elements.append(self._key_value_table([
            ("Total Transactions", str(len(transactions))),
            ("Income Transactions", str(income_count)),
            ("Expense Transactions", str(len(transactions) - income_count)),
        ]))
        elements.append(self._heading("Recent Transactions"))
        elements.append(self._transactions_table(transactions[:10], currency))
        return elements

    def _budget_performance_section(self, user: UserModel, currency: str) -> List:
        today = date.today()
        elements = [self._heading("BUDGET PERFORMANCE")]
        statuses = self.budgets.budget_statuses(user.id, today.month, today.year)
        if not statuses:
            elements.append(self._paragraph("No budgets set for the current month."))
        else:
            elements.append(self._budget_table(statuses, currency, with_progress=False))
        return elements

    def _savings_goals_section(self, user: UserModel, currency: str) -> List:
        elements = [self._heading("SAVINGS GOALS PROGRESS")]
        goals = crud.get_savings_goals(self.db, user.id)
        if not goals:
            elements.append(self._paragraph("No savings goals found."))
        else:
            elements.append(self._goals_table(goals, currency))
        return elements

    def _monthly_trends_section(self, user: UserModel, currency: str) -> List:
        trends = self.analysis.monthly_trends(user.id, 6)
        elements = [self._heading("MONTHLY TRENDS ANALYSIS")]
        if not any(t['income'] or t['expenses'] for t in trends):
            elements.append(self._paragraph("No monthly trends data available."))
        else:
            elements.append(self._trends_table(trends, currency))
        return elements

    def _category_section(self, user: UserModel, start_date, end_date, currency: str) -> List:
        elements = [self._heading("CATEGORY ANALYSIS")]
        breakdown = self.analysis.category_breakdown(user.id, TransactionType.EXPENSE, start_date, end_date)
        if not breakdown:
            elements.append(self._paragraph("No category data available."))
        else:
            elements.append(self._breakdown_table(breakdown, currency, with_details=True))
        return elements

    def _recommendations_section(self, user: UserModel) -> List:
        elements = [self._heading("FINANCIAL RECOMMENDATIONS")]
        recommendations = self.analysis.financial_health(user)['recommendations']
        if not recommendations:
            elements.append(self._paragraph("No specific recommendations available. Keep up the good work!"))
        for item in recommendations:
            elements.append(Paragraph(f"• <b>{escape(item['title'])}</b>: {escape(item['message'])}", self.body_style))
        return elements

    # ------------------------------------------------------------------
    # Excel
    # ------------------------------------------------------------------

    def export_to_excel(self, username: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> bytes:
        """
        Classeur Excel avec les feuilles Transactions, Budgets, Savings Goals et Summary
        """
        user = self._resolve_user(username, start_date, end_date)

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
            formats = {
                'currency': f'"{symbol}"#,##0.00',
                'date': 'dd/mm/yyyy',
                'percent': '0.00"%"',
            }

            wb = Workbook()
            ws = wb.active
            ws.title = "Transactions"
            self._write_sheet(
                ws,
                ["Date", "Title", "Category", "Type", "Amount", "Description"],
                [
                    [t.transaction_date, t.title, t.category, t.type.value, t.amount, t.description or ""]
                    for t in crud.get_transactions_in_period(self.db, user.id, start_date, end_date)
                ],
                {1: formats['date'], 5: formats['currency']}
            )

            self._write_sheet(
                wb.create_sheet("Budgets"),
                ["Category", "Month", "Year", "Budget Amount", "Spent Amount", "Remaining", "Progress %"],
                [
                    [b['category'], calendar.month_name[b['month']], b['year'], b['budget_amount'],
                     b['spent_amount'], b['remaining_amount'], b['progress_percentage']]
                    for b in self.budgets.budget_statuses(user.id)
                ],
                {4: formats['currency'], 5: formats['currency'], 6: formats['currency'], 7: formats['percent']}
            )

            self._write_sheet(
                wb.create_sheet("Savings Goals"),
                ["Goal Name", "Description", "Target Amount", "Current Amount", "Progress %", "Target Date", "Status"],
                [
                    [g.name, g.description or "", g.target_amount, g.current_amount, g.progress_percentage,
                     g.target_date or "No deadline", g.status.value]
                    for g in crud.get_savings_goals(self.db, user.id)
                ],
                {3: formats['currency'], 4: formats['currency'], 5: formats['percent'], 6: formats['date']}
            )

            self._write_summary_sheet(wb.create_sheet("Summary"), user, start_date, end_date, formats['currency'])

            buffer = io.BytesIO()
            wb.save(buffer)
            return buffer.getvalue()

        return self._generate("excel", build, EXCEL_LIMIT)

    def _style_header(self, cells) -> None:
        thin = Side(style="thin")
        for cell in cells:
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color="1F3A93", end_color="1F3A93", fill_type="solid")
            cell.border = Border(left=thin, right=thin, top=thin, bottom=thin)
            cell.alignment = Alignment(horizontal="center")

    def _write_sheet(self, ws, headers: List[str], rows: List[List], number_formats: Dict[int, str]) -> None:
        ws.append(headers)
        self._style_header(ws[1])
        for row in rows:
            ws.append(row)
        for column, number_format in number_formats.items():
            for (cell,) in ws.iter_rows(min_row=2, min_col=column, max_col=column):
                if isinstance(cell.value, (int, float, date, datetime)):
                    cell.number_format = number_format
        self._autosize(ws)

    def _write_summary_sheet(self, ws, user: UserModel, start_date, end_date, currency_format: str) -> None:
        summary = self.analysis.financial_summary(user.id, start_date, end_date)
        ws.append(["FINANCIAL SUMMARY"])
        self._style_header(ws[1])
        ws.append(["Period", period_label(start_date, end_date)])
        for label, key in (("Total Income", 'totalIncome'), ("Total Expenses", 'totalExpenses'), ("Net Balance", 'balance')):
            ws.append([label, summary[key]])
            ws.cell(row=ws.max_row, column=2).number_format = currency_format
        ws.append(["Total Transactions", summary['transactionCount']])
        self._autosize(ws)

    def _autosize(self, ws) -> None:
        for column_cells in ws.columns:
            width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
            ws.column_dimensions[column_cells[0].column_letter].width = min(max(width + 2, 10), 60)

    # ------------------------------------------------------------------
    # Budgets et objectifs
    # ------------------------------------------------------------------

    def generate_budget_report(self, username: str, month: Optional[int] = None, year: Optional[int] = None) -> bytes:
        """Rapport PDF de performance des budgets pour un mois"""
        today = date.today()
        if month is None:
            month = today.month
        if year is None:
            year = today.year
        if month < 1 or month > 12:
            raise ValueError("Le mois doit être compris entre 1 et 12")
        if year < 2000 or year > today.year + 1:
            raise ValueError(f"L'année doit être comprise entre 2000 et {today.year + 1}")
        user = self._resolve_user(username)

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            elements = self._title_block("BUDGET PERFORMANCE REPORT", f"Period: {calendar.month_name[month]} {year}")
            statuses = self.budgets.budget_statuses(user.id, month, year)
            if not statuses:
                elements.append(self._paragraph("No budgets found for the selected period."))
                return self._build_pdf(elements, "Budget Performance Report")

            elements.append(self._heading("Budget Details"))
            elements.append(self._budget_table(statuses, currency))

            total_budget = sum(s['budget_amount'] for s in statuses)
            total_spent = sum(s['spent_amount'] for s in statuses)
            elements.append(self._heading("Overall Budget Performance"))
            elements.append(self._key_value_table([
                ("Total Budget", format_money(total_budget, currency)),
                ("Total Spent", format_money(total_spent, currency)),
                ("Remaining", format_money(total_budget - total_spent, currency)),
            ]))
            return self._build_pdf(elements, "Budget Performance Report")

        return self._generate("budget-pdf", build, BUDGET_PDF_LIMIT)

    def generate_savings_goals_report(self, username: str) -> bytes:
        user = self._resolve_user(username)

        def build():
            currency = self.profiles.get_preferred_currency(user.id)
            elements = self._title_block("SAVINGS GOALS PROGRESS REPORT", self._generated_on())
            goals = crud.get_savings_goals(self.db, user.id)
            if not goals:
                elements.append(self._paragraph("No savings goals found."))
                return self._build_pdf(elements, "Savings Goals Report")

            active = sum(1 for g in goals if g.status == GoalStatus.IN_PROGRESS)
            completed = sum(1 for g in goals if g.status == GoalStatus.COMPLETED)
            elements.append(self._heading("Goals Overview"))
            elements.append(self._key_value_table([
                ("Total Goals", str(len(goals))),
                ("Active Goals", str(active)),
                ("Completed Goals", str(completed)),
            ]))
            elements.append(self._heading("Goal Details"))
            elements.append(self._goals_table(goals, currency, with_remaining=True))
            return self._build_pdf(elements, "Savings Goals Report")

        return self._generate("savings-goals-pdf", build, SAVINGS_PDF_LIMIT)
