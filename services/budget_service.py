from datetime import date
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from database import crud
from database.models import BudgetModel, TransactionType, UserModel
from models.budget import BudgetCreate, BudgetUpdate
from services.date_utils import month_bounds
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class BudgetService:
    def __init__(self, db: Session):
        self.db = db

    def create_or_update(self, user: UserModel, request: BudgetCreate) -> BudgetModel:
        """
        Crée un budget, ou met à jour le montant si la catégorie a déjà un budget pour ce mois
        """
        budget = crud.upsert_budget(
            self.db,
            user_id=user.id,
            category=request.category.strip(),
            month=request.month,
            year=request.year,
            budget_amount=round(request.budget_amount, 2)
        )
        logger.info(f"Budget enregistré pour {user.username}: {budget.category} {budget.month}/{budget.year} = {budget.budget_amount}")
        return budget

    def list_budgets(self, user: UserModel, month: Optional[int] = None, year: Optional[int] = None) -> List[BudgetModel]:
        return crud.get_budgets(self.db, user.id, month, year)

    def get_budget(self, user: UserModel, budget_id: int) -> BudgetModel:
        budget = crud.get_budget_for_user(self.db, budget_id, user.id)
        if not budget:
            raise NotFoundError("Budget non trouvé")
        return budget

    def update_budget(self, user: UserModel, budget_id: int, request: BudgetUpdate) -> BudgetModel:
        budget = self.get_budget(user, budget_id)
        values = request.model_dump(exclude_unset=True, exclude_none=True)
        if 'category' in values:
            values['category'] = values['category'].strip()
        if 'budget_amount' in values:
            values['budget_amount'] = round(values['budget_amount'], 2)

        # Un seul budget par catégorie et par mois
        category = values.get('category', budget.category)
        month = values.get('month', budget.month)
        year = values.get('year', budget.year)
        existing = crud.get_budget(self.db, user.id, category, month, year)
        if existing and existing.id != budget.id:
            raise ValueError(f"Un budget existe déjà pour {category} en {month:02d}/{year}")

        budget = crud.update_budget(self.db, budget, values)
        logger.info(f"Budget {budget_id} mis à jour pour {user.username}")
        return budget

    def delete_budget(self, user: UserModel, budget_id: int) -> None:
        budget = self.get_budget(user, budget_id)
        crud.delete_budget(self.db, budget)
        logger.info(f"Budget {budget_id} supprimé pour {user.username}")

    def describe(self, budget: BudgetModel) -> Dict:
        """
        Budget enrichi du montant dépensé (transactions EXPENSE de la catégorie sur le mois du budget)
        """
        start_date, end_date = month_bounds(budget.year, budget.month)
        spent = crud.sum_amount(
            self.db, budget.user_id, TransactionType.EXPENSE,
            start_date=start_date, end_date=end_date, category=budget.category
        )
        amount = budget.budget_amount or 0.0
        return {
            'id': budget.id,
            'category': budget.category,
            'budget_amount': round(amount, 2),
            'month': budget.month,
            'year': budget.year,
            'created_at': budget.created_at,
            'spent_amount': round(spent, 2),
            'remaining_amount': round(amount - spent, 2),
            'progress_percentage': round(spent / amount * 100, 2) if amount > 0 else 0.0,
            'over_budget': spent > amount,
        }

    def budget_statuses(self, user_id: int, month: Optional[int] = None, year: Optional[int] = None) -> List[Dict]:
        """Budgets (d'un mois, ou tous) avec dépenses, reste et progression"""
        return [self.describe(budget) for budget in crud.get_budgets(self.db, user_id, month, year)]

    def summary(self, user: UserModel, month: Optional[int] = None, year: Optional[int] = None) -> Dict:
        """Résumé des budgets d'un mois (mois courant par défaut)"""
        today = date.today()
        month = month or today.month
        year = year or today.year
        statuses = self.budget_statuses(user.id, month, year)

        total_budget = sum(s['budget_amount'] for s in statuses)
        total_spent = sum(s['spent_amount'] for s in statuses)
        return {
            'month': month,
            'year': year,
            'totalBudget': round(total_budget, 2),
            'totalSpent': round(total_spent, 2),
            'totalRemaining': round(total_budget - total_spent, 2),
            'overallPercentage': round(total_spent / total_budget * 100, 2) if total_budget > 0 else 0.0,
            'overBudgetCount': sum(1 for s in statuses if s['over_budget']),
            'budgets': statuses,
        }
