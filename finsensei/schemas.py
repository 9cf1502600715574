"""
Request and response models for the FinSensei API
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from finsensei.models import TransactionType, ChatRole, GoalStatus, ContentStatus

MAX_AMOUNT = Decimal("999999999.99")
MAX_SOURCE_LENGTH = 200


def _check_amount(value: Decimal) -> Decimal:
    if value <= 0:
        raise ValueError("Amount must be greater than zero")
    if value > MAX_AMOUNT:
        raise ValueError("Amount is too large")
    return value


def _check_source(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("Transaction description is required")
    if len(value) > MAX_SOURCE_LENGTH:
        raise ValueError(f"Description is too long (max {MAX_SOURCE_LENGTH} characters)")
    return value.strip()


def _check_not_future(value: dt.date) -> dt.date:
    if value > dt.date.today():
        raise ValueError("Transaction date cannot be in the future")
    return value


# Chat

class ChatTurn(BaseModel):
    role: ChatRole
    content: str


class ChatContext(BaseModel):
    accounts: List[Dict[str, Any]] = []
    recentTransactions: List[Dict[str, Any]] = []
    currency: str = "USD"


class ChatRequest(BaseModel):
    message: str
    context: ChatContext
    history: List[ChatTurn] = []
    userId: Optional[str] = None


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    role: ChatRole
    content: str
    created_at: dt.datetime


class AdviceOut(BaseModel):
    content: str
    timestamp: dt.datetime


class MetricsOut(BaseModel):
    totalIncome: float
    totalExpenses: float
    netBalance: float
    currency: str
    formatted: Dict[str, str]


# Accounts

class AccountCreate(BaseModel):
    account_name: str = Field(min_length=1, max_length=100)
    balance: Decimal = Decimal("0")
    account_type: str = "checking"
    currency: str = Field(default="USD", min_length=3, max_length=3)


class AccountUpdate(BaseModel):
    account_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    balance: Optional[Decimal] = None
    account_type: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    account_name: str
    account_type: Optional[str]
    balance: float
    currency: Optional[str]
    created_at: dt.datetime
    updated_at: dt.datetime


# Transactions

class TransactionCreate(BaseModel):
    account_id: str = Field(min_length=1)
    to_account_id: Optional[str] = None
    transaction_type: TransactionType
    source: str
    amount: Decimal
    date: dt.date

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        return _check_amount(v)

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        return _check_source(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_not_future(v)

    @model_validator(mode="after")
    def validate_transfer(self):
        if self.transaction_type == TransactionType.TRANSFER:
            if not self.to_account_id:
                raise ValueError("Destination account is required for transfers")
            if self.to_account_id == self.account_id:
                raise ValueError("Cannot transfer to the same account")
        return self


class TransactionUpdate(BaseModel):
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    source: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        return v if v is None else _check_amount(v)

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if v is None:
            return v
        return _check_source(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return v if v is None else _check_not_future(v)

    @model_validator(mode="after")
    def validate_transfer(self):
        if self.to_account_id and self.to_account_id == self.account_id:
            raise ValueError("Cannot transfer to the same account")
        return self


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    account_id: str
    to_account_id: Optional[str]
    transaction_type: TransactionType
    source: str
    amount: float
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime


# Goals

class GoalCreate(BaseModel):
    account_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = ""
    target_amount: Decimal
    start_date: dt.date
    target_date: dt.date

    @field_validator("target_amount")
    @classmethod
    def validate_target(cls, v):
        return _check_amount(v)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.target_date < self.start_date:
            raise ValueError("Target date must be on or after the start date")
        return self


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    account_id: Optional[str]
    name: str
    description: Optional[str]
    target_amount: float
    current_amount: float
    start_date: dt.date
    target_date: dt.date
    status: GoalStatus
    created_at: dt.datetime
    updated_at: dt.datetime


class ContributionCreate(BaseModel):
    amount: Decimal
    contribution_date: dt.date
    notes: Optional[str] = ""

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        return _check_amount(v)


class ContributionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    goal_id: str
    amount: float
    contribution_date: dt.date
    notes: Optional[str]
    created_at: dt.datetime


# Learning content

class LearningContentCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str
    url: Optional[str] = None
    is_featured: bool = False
    status: ContentStatus = ContentStatus.DRAFT
    created_by: Optional[str] = None


class LearningContentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    url: Optional[str] = None
    is_featured: Optional[bool] = None
    status: Optional[ContentStatus] = None


class LearningContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    url: Optional[str]
    is_featured: bool
    status: ContentStatus
    created_by: Optional[str]
    created_at: dt.datetime
    updated_at: dt.datetime
