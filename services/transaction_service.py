from datetime import date
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from database import crud
from database.models import TransactionModel, TransactionType, UserModel
from models.transaction import TransactionCreate, TransactionUpdate
from services.analysis_service import AnalysisService
from services.date_utils import validate_range
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

MAX_RECENT_LIMIT = 100


def parse_transaction_type(value) -> TransactionType:
    """Convertit 'income' / 'EXPENSE' / ... en TransactionType"""
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Type de transaction invalide: {value} (attendu INCOME ou EXPENSE)")


class TransactionService:
    def __init__(self, db: Session):
        self.db = db
        self.analysis = AnalysisService(db)

    def create_transaction(self, user: UserModel, request: TransactionCreate) -> TransactionModel:
        values = request.model_dump()
        values['amount'] = round(values['amount'], 2)
        transaction = crud.create_transaction(self.db, user.id, values)
        logger.info(f"Transaction créée pour {user.username}: {transaction.type.value} {transaction.amount} ({transaction.category})")
        return transaction

    def get_transactions(self, user: UserModel) -> List[TransactionModel]:
        return crud.get_transactions_by_user(self.db, user.id)

    def get_transaction(self, user: UserModel, transaction_id: int) -> TransactionModel:
        transaction = crud.get_transaction_for_user(self.db, transaction_id, user.id)
        if not transaction:
            raise NotFoundError("Transaction non trouvée")
        return transaction

    def update_transaction(self, user: UserModel, transaction_id: int, request: TransactionUpdate) -> TransactionModel:
        transaction = self.get_transaction(user, transaction_id)
        values = request.model_dump(exclude_unset=True)
        # seule la description est facultative
        values = {k: v for k, v in values.items() if v is not None or k == 'description'}
        if 'amount' in values:
            values['amount'] = round(values['amount'], 2)
        for field in ('title', 'category'):
            if field in values:
                values[field] = values[field].strip()
                if not values[field]:
                    raise ValueError(f"Le champ {field} ne peut pas être vide")
        transaction = crud.update_transaction(self.db, transaction, values)
        logger.info(f"Transaction {transaction_id} mise à jour pour {user.username}")
        return transaction

    def delete_transaction(self, user: UserModel, transaction_id: int) -> None:
        transaction = self.get_transaction(user, transaction_id)
        crud.delete_transaction(self.db, transaction)
        logger.info(f"Transaction {transaction_id} supprimée pour {user.username}")

    def get_by_type(self, user: UserModel, transaction_type) -> List[TransactionModel]:
        return crud.get_transactions_by_type(self.db, user.id, parse_transaction_type(transaction_type))

    def get_by_category(self, user: UserModel, category: str) -> List[TransactionModel]:
        return crud.get_transactions_by_category(self.db, user.id, category)

    def get_by_date_range(self, user: UserModel, start_date: Optional[date], end_date: Optional[date]) -> List[TransactionModel]:
        validate_range(start_date, end_date)
        return crud.get_transactions_in_period(self.db, user.id, start_date, end_date)

    def get_recent(self, user: UserModel, limit: int = 10) -> List[TransactionModel]:
        if limit < 1 or limit > MAX_RECENT_LIMIT:
            raise ValueError(f"La limite doit être comprise entre 1 et {MAX_RECENT_LIMIT}")
        return crud.get_recent_transactions(self.db, user.id, limit)

    def get_summary(self, user: UserModel) -> Dict:
        return self.analysis.financial_summary(user.id)

    def get_monthly_summary(self, user: UserModel, year: int, month: int) -> Dict:
        return self.analysis.monthly_summary(user.id, year, month)

    def get_expense_breakdown(self, user: UserModel) -> List[Dict]:
        return self.analysis.category_breakdown(user.id, TransactionType.EXPENSE)

    def get_income_breakdown(self, user: UserModel) -> List[Dict]:
        return self.analysis.category_breakdown(user.id, TransactionType.INCOME)

    def get_statistics(self, user: UserModel) -> Dict:
        return self.analysis.transaction_statistics(user.id)

    def get_trends(self, user: UserModel, months: int = 6) -> List[Dict]:
        return self.analysis.monthly_trends(user.id, months)
