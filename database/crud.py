from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from database.models import (
    BudgetModel, GoalStatus, Role, SavingsGoalModel, TransactionModel, TransactionType,
    UserModel, UserProfileModel
)


# User CRUD functions
def create_user(db: Session, username: str, email: str, password_hash: str, role: Role = Role.USER):
    """Crée un nouvel utilisateur"""
    db_user = UserModel(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def get_user_by_id(db: Session, user_id: int):
    """Récupère un utilisateur par son ID"""
    return db.query(UserModel).filter(UserModel.id == user_id).first()

def get_user_by_username(db: Session, username: str):
    """Récupère un utilisateur par son nom d'utilisateur"""
    return db.query(UserModel).filter(UserModel.username == username).first()

def get_user_by_email(db: Session, email: str):
    """Récupère un utilisateur par son email"""
    return db.query(UserModel).filter(UserModel.email == email).first()

def exists_by_username(db: Session, username: str) -> bool:
    return db.query(UserModel.id).filter(UserModel.username == username).first() is not None

def exists_by_email(db: Session, email: str) -> bool:
    return db.query(UserModel.id).filter(UserModel.email == email).first() is not None

def get_all_users(db: Session):
    """Récupère tous les utilisateurs"""
    return db.query(UserModel).order_by(UserModel.id).all()

def update_user_financials(
    db: Session,
    user_id: int,
    monthly_income: Optional[float] = None,
    current_savings: Optional[float] = None,
    target_expenses: Optional[float] = None
):
    """Met à jour les informations financières d'un utilisateur"""
    user = get_user_by_id(db, user_id)
    if not user:
        return None
    if monthly_income is not None:
        user.monthly_income = monthly_income
    if current_savings is not None:
        user.current_savings = current_savings
    if target_expenses is not None:
        user.target_expenses = target_expenses
    db.commit()
    db.refresh(user)
    return user


# Transaction CRUD functions
def create_transaction(db: Session, user_id: int, values: Dict):
    """Crée une nouvelle transaction"""
    db_transaction = TransactionModel(user_id=user_id, **values)
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)
    return db_transaction

def get_transaction_for_user(db: Session, transaction_id: int, user_id: int):
    """Récupère une transaction par son ID, uniquement si elle appartient à l'utilisateur"""
    return db.query(TransactionModel).filter(
        TransactionModel.id == transaction_id,
        TransactionModel.user_id == user_id
    ).first()

def update_transaction(db: Session, transaction: TransactionModel, values: Dict):
    """Met à jour une transaction"""
    for field, value in values.items():
        setattr(transaction, field, value)
    db.commit()
    db.refresh(transaction)
    return transaction

def delete_transaction(db: Session, transaction: TransactionModel):
    """Supprime une transaction"""
    db.delete(transaction)
    db.commit()
    return True

def _user_transactions(db: Session, user_id: int):
    return db.query(TransactionModel).filter(TransactionModel.user_id == user_id)

def _ordered(query):
    return query.order_by(TransactionModel.transaction_date.desc(), TransactionModel.id.desc())

def _in_period(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date is not None:
        query = query.filter(TransactionModel.transaction_date >= start_date)
    if end_date is not None:
        query = query.filter(TransactionModel.transaction_date <= end_date)
    return query

def get_transactions_by_user(db: Session, user_id: int):
    """Récupère toutes les transactions d'un utilisateur, les plus récentes d'abord"""
    return _ordered(_user_transactions(db, user_id)).all()

def get_transactions_by_type(db: Session, user_id: int, transaction_type: TransactionType):
    return _ordered(_user_transactions(db, user_id).filter(TransactionModel.type == transaction_type)).all()

def get_transactions_by_category(db: Session, user_id: int, category: str):
    return _ordered(_user_transactions(db, user_id).filter(TransactionModel.category == category)).all()

def get_transactions_in_period(db: Session, user_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None):
    """Récupère les transactions d'un utilisateur entre deux dates (bornes incluses, optionnelles)"""
    return _ordered(_in_period(_user_transactions(db, user_id), start_date, end_date)).all()

def get_recent_transactions(db: Session, user_id: int, limit: int = 10):
    return _ordered(_user_transactions(db, user_id)).limit(limit).all()

def count_transactions(db: Session, user_id: int, transaction_type: Optional[TransactionType] = None) -> int:
    query = _user_transactions(db, user_id)
    if transaction_type is not None:
        query = query.filter(TransactionModel.type == transaction_type)
    return query.count()

def sum_amount(
    db: Session,
    user_id: int,
    transaction_type: TransactionType,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None
) -> float:
    """Somme des montants pour un type de transaction (0 si aucune transaction)"""
    query = db.query(func.coalesce(func.sum(TransactionModel.amount), 0.0)).filter(
        TransactionModel.user_id == user_id,
        TransactionModel.type == transaction_type
    )
    if category is not None:
        query = query.filter(TransactionModel.category == category)
    query = _in_period(query, start_date, end_date)
    return float(query.scalar() or 0.0)

def get_breakdown_by_category(
    db: Session,
    user_id: int,
    transaction_type: TransactionType,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Dict]:
    """Total et nombre de transactions par catégorie, du plus gros total au plus petit"""
    total = func.sum(TransactionModel.amount)
    query = db.query(
        TransactionModel.category,
        func.coalesce(total, 0.0),
        func.count(TransactionModel.id)
    ).filter(
        TransactionModel.user_id == user_id,
        TransactionModel.type == transaction_type
    )
    query = _in_period(query, start_date, end_date)
    rows = query.group_by(TransactionModel.category).order_by(total.desc()).all()
    return [
        {'category': category, 'total_amount': float(amount), 'transaction_count': int(count)}
        for category, amount, count in rows
    ]

def get_monthly_totals(db: Session, user_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict]:
    """Totaux par (année, mois, type) pour un utilisateur"""
    year_col = extract("year", TransactionModel.transaction_date)
    month_col = extract("month", TransactionModel.transaction_date)
    query = db.query(
        year_col, month_col, TransactionModel.type, func.coalesce(func.sum(TransactionModel.amount), 0.0)
    ).filter(TransactionModel.user_id == user_id)
    query = _in_period(query, start_date, end_date)
    rows = query.group_by(year_col, month_col, TransactionModel.type).all()
    return [
        {'year': int(year), 'month': int(month), 'type': TransactionType(t_type), 'total': float(amount)}
        for year, month, t_type, amount in rows
    ]


# Budget CRUD functions
def upsert_budget(db: Session, user_id: int, category: str, month: int, year: int, budget_amount: float):
    """Crée ou met à jour un budget pour une catégorie"""
    existing = get_budget(db, user_id, category, month, year)

    if existing:
        existing.budget_amount = budget_amount
        db.commit()
        db.refresh(existing)
        return existing
    else:
        db_budget = BudgetModel(
            user_id=user_id,
            category=category,
            budget_amount=budget_amount,
            month=month,
            year=year
        )
        db.add(db_budget)
        db.commit()
        db.refresh(db_budget)
        return db_budget

def get_budget(db: Session, user_id: int, category: str, month: int, year: int):
    """Récupère un budget spécifique"""
    return db.query(BudgetModel).filter(
        BudgetModel.user_id == user_id,
        BudgetModel.category == category,
        BudgetModel.month == month,
        BudgetModel.year == year
    ).first()

def get_budget_for_user(db: Session, budget_id: int, user_id: int):
    return db.query(BudgetModel).filter(BudgetModel.id == budget_id, BudgetModel.user_id == user_id).first()

def get_budgets(db: Session, user_id: int, month: Optional[int] = None, year: Optional[int] = None):
    """Récupère les budgets d'un utilisateur, optionnellement filtrés par mois/année"""
    query = db.query(BudgetModel).filter(BudgetModel.user_id == user_id)
    if month is not None:
        query = query.filter(BudgetModel.month == month)
    if year is not None:
        query = query.filter(BudgetModel.year == year)
    return query.order_by(BudgetModel.year.desc(), BudgetModel.month.desc(), BudgetModel.category.asc()).all()

def update_budget(db: Session, budget: BudgetModel, values: Dict):
    """Met à jour un budget"""
    for field, value in values.items():
        setattr(budget, field, value)
    db.commit()
    db.refresh(budget)
    return budget

def delete_budget(db: Session, budget: BudgetModel):
    """Supprime un budget"""
    db.delete(budget)
    db.commit()
    return True


# Savings goal CRUD functions
def get_savings_goal_for_user(db: Session, goal_id: int, user_id: int):
    return db.query(SavingsGoalModel).filter(
        SavingsGoalModel.id == goal_id,
        SavingsGoalModel.user_id == user_id
    ).first()

def get_savings_goals(db: Session, user_id: int, status: Optional[GoalStatus] = None):
    """Récupère les objectifs d'épargne, les plus récents d'abord"""
    query = db.query(SavingsGoalModel).filter(SavingsGoalModel.user_id == user_id)
    if status is not None:
        query = query.filter(SavingsGoalModel.status == status)
    return query.order_by(SavingsGoalModel.created_at.desc(), SavingsGoalModel.id.desc()).all()

def save_savings_goal(db: Session, goal: SavingsGoalModel):
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal

def delete_savings_goal(db: Session, goal: SavingsGoalModel):
    db.delete(goal)
    db.commit()
    return True


# User profile CRUD functions
def get_profile_by_user_id(db: Session, user_id: int):
    return db.query(UserProfileModel).filter(UserProfileModel.user_id == user_id).first()

def save_profile(db: Session, profile: UserProfileModel):
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile

def delete_profile(db: Session, user_id: int) -> bool:
    """Supprime le profil d'un utilisateur (True si un profil existait)"""
    count = db.query(UserProfileModel).filter(UserProfileModel.user_id == user_id).delete()
    db.commit()
    return count > 0
