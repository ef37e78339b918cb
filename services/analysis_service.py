import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from database import crud
from database.models import GoalStatus, TransactionType, UserModel
from services.budget_service import BudgetService
from services.date_utils import last_n_months, month_bounds, validate_range

# Fenêtre (en jours) utilisée pour le score de santé financière
HEALTH_WINDOW_DAYS = 90

# Poids de chaque facteur dans le score global
HEALTH_WEIGHTS = {
    'savings_rate': 0.30,
    'expense_ratio': 0.20,
    'budget_adherence': 0.20,
    'goal_progress': 0.15,
    'emergency_fund': 0.15,
}


def score_color(score: float) -> str:
    """Couleur associée à un score (utilisée dans les rapports)"""
    if score >= 80:
        return 'green'
    if score >= 60:
        return 'orange'
    return 'red'

def score_label(score: float) -> str:
    if score >= 80:
        return 'Excellent'
    if score >= 60:
        return 'Good'
    if score >= 40:
        return 'Fair'
    return 'Needs Attention'


class AnalysisService:
    def __init__(self, db: Session):
        self.db = db
        # Seuils pour les recommandations
        self.alert_thresholds = {
            'top_category': 0.30,  # 30% des dépenses dans une seule catégorie
            'savings_rate': 20.0,  # taux d'épargne cible en %
            'emergency_months': 3,  # mois de dépenses couverts par l'épargne
        }

    def financial_summary(self, user_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict:
        """
        Totaux des revenus et dépenses, solde et nombre de transactions (sur une période optionnelle)
        """
        validate_range(start_date, end_date)
        total_income = crud.sum_amount(self.db, user_id, TransactionType.INCOME, start_date, end_date)
        total_expenses = crud.sum_amount(self.db, user_id, TransactionType.EXPENSE, start_date, end_date)
        if start_date is None and end_date is None:
            count = crud.count_transactions(self.db, user_id)
        else:
            count = len(crud.get_transactions_in_period(self.db, user_id, start_date, end_date))
        return {
            'totalIncome': round(total_income, 2),
            'totalExpenses': round(total_expenses, 2),
            'balance': round(total_income - total_expenses, 2),
            'transactionCount': count,
        }

    def monthly_summary(self, user_id: int, year: int, month: int) -> Dict:
        start_date, end_date = month_bounds(year, month)
        summary = self.financial_summary(user_id, start_date, end_date)
        return {'year': year, 'month': month, **summary}

    def category_breakdown(
        self,
        user_id: int,
        transaction_type: TransactionType = TransactionType.EXPENSE,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Dict]:
        """
        Répartition par catégorie : montant, nombre de transactions et part du total
        """
        validate_range(start_date, end_date)
        rows = crud.get_breakdown_by_category(self.db, user_id, transaction_type, start_date, end_date)
        total = sum(row['total_amount'] for row in rows)
        return [
            {
                'category': row['category'],
                'amount': round(row['total_amount'], 2),
                'transactionCount': row['transaction_count'],
                'percentage': round(row['total_amount'] / total * 100, 2) if total > 0 else 0.0,
            }
            for row in rows
        ]

    def monthly_trends(self, user_id: int, months: int = 6, today: Optional[date] = None) -> List[Dict]:
        """
        Revenus, dépenses et net des `months` derniers mois calendaires, du plus ancien au plus récent
        (les mois sans transaction valent 0)
        """
        if months < 1 or months > 60:
            raise ValueError("Le nombre de mois doit être compris entre 1 et 60")
        today = today or date.today()
        periods = last_n_months(today, months)
        start_date = month_bounds(*periods[0])[0]
        end_date = month_bounds(*periods[-1])[1]

        totals = {}
        for row in crud.get_monthly_totals(self.db, user_id, start_date, end_date):
            totals[(row['year'], row['month'], row['type'])] = row['total']

        trends = []
        for year, month in periods:
            income = totals.get((year, month, TransactionType.INCOME), 0.0)
            expenses = totals.get((year, month, TransactionType.EXPENSE), 0.0)
            trends.append({
                'year': year,
                'month': month,
                'label': f"{calendar.month_abbr[month]} {year}",
                'income': round(income, 2),
                'expenses': round(expenses, 2),
                'net': round(income - expenses, 2),
            })
        return trends

    def transaction_statistics(self, user_id: int) -> Dict:
        total = crud.count_transactions(self.db, user_id)
        income = crud.count_transactions(self.db, user_id, TransactionType.INCOME)
        expense = crud.count_transactions(self.db, user_id, TransactionType.EXPENSE)
        return {
            'totalTransactions': total,
            'incomeTransactions': income,
            'expenseTransactions': expense,
            'incomePercentage': round(income * 100.0 / total, 2) if total else 0.0,
            'expensePercentage': round(expense * 100.0 / total, 2) if total else 0.0,
        }

    def financial_health(self, user: UserModel, today: Optional[date] = None) -> Dict:
        """
        Score de santé financière (0-100) calculé à partir de cinq facteurs notés sur 100
        """
        today = today or date.today()
        window_start = today - timedelta(days=HEALTH_WINDOW_DAYS)
        income = crud.sum_amount(self.db, user.id, TransactionType.INCOME, window_start, today)
        expenses = crud.sum_amount(self.db, user.id, TransactionType.EXPENSE, window_start, today)

        # Taux d'épargne : 20% ou plus = 100
        savings_rate = (income - expenses) / income * 100 if income > 0 else 0.0
        savings_score = min(max(savings_rate, 0.0) / self.alert_thresholds['savings_rate'] * 100, 100.0)

        # Ratio dépenses/revenus : <= 0.5 = 100, >= 1 = 0
        if income > 0:
            ratio = expenses / income
            expense_score = 100.0 if ratio <= 0.5 else 0.0 if ratio >= 1 else (1 - ratio) / 0.5 * 100
        else:
            ratio = None
            expense_score = 0.0 if expenses > 0 else 50.0

        # Respect des budgets du mois courant
        budgets = BudgetService(self.db).budget_statuses(user.id, today.month, today.year)
        if budgets:
            budget_score = sum(1 for b in budgets if not b['over_budget']) / len(budgets) * 100
        else:
            budget_score = 50.0

        # Progression moyenne des objectifs en cours
        goals = crud.get_savings_goals(self.db, user.id)
        active_goals = [g for g in goals if g.status == GoalStatus.IN_PROGRESS]
        if active_goals:
            goal_score = sum(g.progress_percentage for g in active_goals) / len(active_goals)
        elif any(g.status == GoalStatus.COMPLETED for g in goals):
            goal_score = 100.0
        else:
            goal_score = 50.0

        # Épargne de précaution : 6 mois de dépenses = 100
        monthly_expenses = expenses / (HEALTH_WINDOW_DAYS / 30)
        savings = user.current_savings or 0.0
        if monthly_expenses > 0:
            emergency_months = savings / monthly_expenses
            emergency_score = min(emergency_months / 6 * 100, 100.0)
        else:
            emergency_months = None
            emergency_score = 100.0 if savings > 0 else 50.0

        factors = {
            'savings_rate': round(savings_score, 2),
            'expense_ratio': round(expense_score, 2),
            'budget_adherence': round(budget_score, 2),
            'goal_progress': round(goal_score, 2),
            'emergency_fund': round(emergency_score, 2),
        }
        score = int(round(sum(factors[name] * weight for name, weight in HEALTH_WEIGHTS.items())))

        metrics = {
            'income': round(income, 2),
            'expenses': round(expenses, 2),
            'savings_rate': round(savings_rate, 2),
            'expense_ratio': round(ratio, 2) if ratio is not None else None,
            'emergency_months': round(emergency_months, 1) if emergency_months is not None else None,
            'over_budget_categories': [b['category'] for b in budgets if b['over_budget']],
            'active_goals': len(active_goals),
        }
        return {
            'score': score,
            'status': score_label(score),
            'color': score_color(score),
            'factors': factors,
            'metrics': metrics,
            'recommendations': self._generate_recommendations(user.id, factors, metrics, window_start, today),
        }

    def _generate_recommendations(self, user_id: int, factors: Dict, metrics: Dict, start_date: date, end_date: date) -> List[Dict]:
        """
        Génère des recommandations à partir des facteurs les plus faibles
        """
        recommendations = []

        # Recommandation 1: catégorie dominante
        breakdown = self.category_breakdown(user_id, TransactionType.EXPENSE, start_date, end_date)
        if breakdown and breakdown[0]['percentage'] > self.alert_thresholds['top_category'] * 100:
            top = breakdown[0]
            recommendations.append({
                'type': 'warning',
                'title': f"{top['category']} is {top['percentage']:.1f}% of your spending",
                'message': f"You spent {top['amount']:,.2f} on {top['category']}. Compare prices or cut back in this category.",
            })

        # Recommandation 2: dépenses supérieures aux revenus
        if metrics['expense_ratio'] is not None and metrics['expense_ratio'] >= 1:
            recommendations.append({
                'type': 'warning',
                'title': 'Spending exceeds income',
                'message': 'Your expenses are higher than your income over the last 3 months. Review non-essential spending.',
            })
        elif factors['savings_rate'] < 100:
            recommendations.append({
                'type': 'info',
                'title': 'Increase your savings rate',
                'message': f"Your savings rate is {metrics['savings_rate']:.1f}%. Aim for at least {self.alert_thresholds['savings_rate']:.0f}% of your income.",
            })

        # Recommandation 3: budgets dépassés
        if metrics['over_budget_categories']:
            recommendations.append({
                'type': 'warning',
                'title': 'Budgets exceeded',
                'message': f"You are over budget in: {', '.join(metrics['over_budget_categories'])}.",
            })
        elif factors['budget_adherence'] == 50.0:
            recommendations.append({
                'type': 'tip',
                'title': 'Set monthly budgets',
                'message': 'Create budgets for your main spending categories to keep track of your expenses.',
            })

        # Recommandation 4: épargne de précaution
        emergency = metrics['emergency_months']
        if emergency is not None and emergency < self.alert_thresholds['emergency_months']:
            recommendations.append({
                'type': 'info',
                'title': 'Build an emergency fund',
                'message': f"Your savings cover {emergency:.1f} months of expenses. Aim for 3 to 6 months.",
            })

        # Recommandation 5: objectifs d'épargne
        if metrics['active_goals'] == 0:
            recommendations.append({
                'type': 'tip',
                'title': 'Define a savings goal',
                'message': 'A concrete savings goal with a target date makes it easier to save regularly.',
            })
        elif factors['goal_progress'] < 25:
            recommendations.append({
                'type': 'tip',
                'title': 'Keep contributing to your goals',
                'message': 'Your savings goals are less than 25% complete on average. Schedule a regular contribution.',
            })

        if not recommendations:
            recommendations.append({
                'type': 'success',
                'title': 'Great job',
                'message': 'Your finances look healthy. Keep up the good habits.',
            })
        return recommendations
