import enum
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, Float, ForeignKey, Integer, String, UniqueConstraint
)
from sqlalchemy.orm import relationship

from database.database import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class TransactionType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class GoalStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(80), unique=True, index=True, nullable=False)
    email = Column(String(120), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.USER)
    monthly_income = Column(Float, nullable=False, default=0.0)
    current_savings = Column(Float, nullable=False, default=0.0)
    target_expenses = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    transactions = relationship("TransactionModel", back_populates="user", cascade="all, delete-orphan")
    budgets = relationship("BudgetModel", back_populates="user", cascade="all, delete-orphan")
    savings_goals = relationship("SavingsGoalModel", back_populates="user", cascade="all, delete-orphan")
    profile = relationship("UserProfileModel", back_populates="user", uselist=False, cascade="all, delete-orphan")


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(120), nullable=False)
    category = Column(String(80), index=True, nullable=False)
    type = Column(Enum(TransactionType), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    description = Column(String(255))
    transaction_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("UserModel", back_populates="transactions")


class BudgetModel(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "category", "month", "year", name="uq_budgets_user_category_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(80), index=True, nullable=False)
    budget_amount = Column(Float, nullable=False)
    month = Column(Integer, nullable=False)  # 1-12
    year = Column(Integer, nullable=False)  # ex: 2025
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("UserModel", back_populates="budgets")


class SavingsGoalModel(Base):
    __tablename__ = "savings_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    description = Column(String(255))
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    target_date = Column(Date)
    status = Column(Enum(GoalStatus), nullable=False, default=GoalStatus.IN_PROGRESS)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("UserModel", back_populates="savings_goals")

    @property
    def remaining_amount(self) -> float:
        return round(max(self.target_amount - self.current_amount, 0.0), 2)

    @property
    def progress_percentage(self) -> float:
        if not self.target_amount:
            return 0.0
        return round(min(self.current_amount / self.target_amount * 100, 100.0), 2)


class UserProfileModel(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    preferred_currency = Column(String(3), nullable=False, default="INR")
    timezone = Column(String(64), nullable=False, default="Asia/Kolkata")
    date_format = Column(String(20), nullable=False, default="DD/MM/YYYY")
    number_format = Column(String(10), nullable=False, default="IN")
    language = Column(String(10), nullable=False, default="en")
    theme = Column(String(10), nullable=False, default="light")

    # Préférences de notification
    email_notifications = Column(Boolean, nullable=False, default=True)
    sms_notifications = Column(Boolean, nullable=False, default=False)
    push_notifications = Column(Boolean, nullable=False, default=True)
    whatsapp_notifications = Column(Boolean, nullable=False, default=False)
    budget_alerts = Column(Boolean, nullable=False, default=True)
    bill_reminders = Column(Boolean, nullable=False, default=True)
    investment_alerts = Column(Boolean, nullable=False, default=False)
    weekly_summary = Column(Boolean, nullable=False, default=True)
    monthly_report = Column(Boolean, nullable=False, default=True)

    user = relationship("UserModel", back_populates="profile")
