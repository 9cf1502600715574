import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, Date, Numeric, Boolean, ForeignKey, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ContentStatus(str, Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    account_name = Column(String, nullable=False)
    account_type = Column(String, default="checking")
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    currency = Column(String(3), default="USD")
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Account(name='{self.account_name}', balance={self.balance})>"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    to_account_id = Column(String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    transaction_type = Column(String, nullable=False)  # 'income', 'expense', 'transfer'
    source = Column(String(200), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index('idx_user_date', 'user_id', 'date'),
    )

    def __repr__(self):
        return f"<Transaction(type='{self.transaction_type}', amount={self.amount})>"


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    __table_args__ = (
        Index('idx_user_created', 'user_id', 'created_at'),
    )


class FinancialGoal(Base):
    __tablename__ = "financial_goals"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    target_amount = Column(Numeric(14, 2), nullable=False)
    current_amount = Column(Numeric(14, 2), nullable=False, default=0)
    start_date = Column(Date, nullable=False)
    target_date = Column(Date, nullable=False)
    status = Column(String, default=GoalStatus.ACTIVE.value)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<FinancialGoal(name='{self.name}', status='{self.status}')>"


class GoalContribution(Base):
    __tablename__ = "goal_contributions"

    id = Column(String(36), primary_key=True, default=_uuid)
    goal_id = Column(String(36), ForeignKey("financial_goals.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    contribution_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)


class LearningContent(Base):
    __tablename__ = "learning_content"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    url = Column(String, nullable=True)
    is_featured = Column(Boolean, default=False)
    status = Column(String, default=ContentStatus.DRAFT.value, index=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
