"""
Accounts, transactions, goals, metrics and learning content endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finsensei.database import get_db
from finsensei.schemas import (
    AccountCreate, AccountUpdate, AccountOut,
    TransactionCreate, TransactionUpdate, TransactionOut,
    GoalCreate, GoalOut, ContributionCreate, ContributionOut,
    LearningContentCreate, LearningContentUpdate, LearningContentOut,
    MetricsOut
)
from finsensei.services import accounts as account_service
from finsensei.services import goals as goal_service
from finsensei.services import learning as learning_service
from finsensei.services import transactions as transaction_service
from finsensei.services.aggregation import compute_snapshot
from finsensei.utils import get_logger, format_currency

logger = get_logger(__name__)

finance_router = APIRouter(prefix="/api/users/{user_id}", tags=["finance"])
learning_router = APIRouter(prefix="/api/learning", tags=["learning"])


def _owned_account(db: Session, user_id: str, account_id: str):
    account = account_service.get_account(db, account_id)
    if not account or account.user_id != user_id:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


def _owned_goal(db: Session, user_id: str, goal_id: str):
    goal = goal_service.get_goal(db, goal_id)
    if not goal or goal.user_id != user_id:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


# Accounts

@finance_router.get("/accounts", response_model=List[AccountOut])
def list_accounts(user_id: str, db: Session = Depends(get_db)):
    return account_service.get_accounts(db, user_id)


@finance_router.post("/accounts", response_model=AccountOut, status_code=201)
def add_account(user_id: str, payload: AccountCreate, db: Session = Depends(get_db)):
    account = account_service.create_account(
        db, user_id, payload.account_name, payload.balance,
        account_type=payload.account_type, currency=payload.currency
    )
    if not account:
        raise HTTPException(status_code=400, detail="Failed to create account")
    return account


@finance_router.put("/accounts/{account_id}", response_model=AccountOut)
def edit_account(user_id: str, account_id: str, payload: AccountUpdate, db: Session = Depends(get_db)):
    _owned_account(db, user_id, account_id)
    account = account_service.update_account(db, account_id, payload.model_dump(exclude_unset=True))
    if not account:
        raise HTTPException(status_code=400, detail="Failed to update account")
    return account


@finance_router.delete("/accounts/{account_id}")
def remove_account(user_id: str, account_id: str, db: Session = Depends(get_db)):
    _owned_account(db, user_id, account_id)
    if not account_service.delete_account(db, account_id):
        raise HTTPException(status_code=400, detail="Failed to delete account")
    return {"status": "success", "message": "Account deleted"}


# Transactions

@finance_router.get("/transactions", response_model=List[TransactionOut])
def list_transactions(user_id: str, db: Session = Depends(get_db)):
    return transaction_service.get_transactions(db, user_id)


@finance_router.post("/transactions", response_model=TransactionOut, status_code=201)
def add_transaction(user_id: str, payload: TransactionCreate, db: Session = Depends(get_db)):
    transaction = transaction_service.create_transaction(db, user_id, payload.model_dump())
    if not transaction:
        raise HTTPException(status_code=400, detail="Failed to create transaction")
    return transaction


@finance_router.put("/transactions/{transaction_id}", response_model=TransactionOut)
def edit_transaction(user_id: str, transaction_id: str, payload: TransactionUpdate, db: Session = Depends(get_db)):
    transaction = transaction_service.update_transaction(
        db, transaction_id, user_id, payload.model_dump(exclude_unset=True)
    )
    if not transaction:
        raise HTTPException(status_code=400, detail="Failed to update transaction")
    return transaction


@finance_router.delete("/transactions/{transaction_id}")
def remove_transaction(user_id: str, transaction_id: str, db: Session = Depends(get_db)):
    if not transaction_service.delete_transaction(db, transaction_id, user_id):
        raise HTTPException(status_code=400, detail="Failed to delete transaction")
    return {"status": "success", "message": "Transaction deleted"}


# Metrics

@finance_router.get("/metrics", response_model=MetricsOut)
def read_metrics(user_id: str, db: Session = Depends(get_db)):
    """Totals shown on the dashboard metric cards"""
    accounts = account_service.get_accounts(db, user_id)
    transactions = transaction_service.get_transactions(db, user_id)
    currency = accounts[0].currency if accounts else None
    snapshot = compute_snapshot(accounts, transactions, currency=currency)

    return {
        **snapshot.to_dict(),
        "formatted": {
            "totalIncome": format_currency(snapshot.total_income, snapshot.currency),
            "totalExpenses": format_currency(snapshot.total_expenses, snapshot.currency),
            "netBalance": format_currency(snapshot.net_balance, snapshot.currency),
        }
    }


# Goals

@finance_router.get("/goals", response_model=List[GoalOut])
def list_goals(user_id: str, db: Session = Depends(get_db)):
    return goal_service.get_goals(db, user_id)


@finance_router.post("/goals", response_model=GoalOut, status_code=201)
def add_goal(user_id: str, payload: GoalCreate, db: Session = Depends(get_db)):
    if payload.account_id:
        _owned_account(db, user_id, payload.account_id)
    goal = goal_service.create_goal(
        db, user_id, payload.account_id, payload.name, payload.description,
        payload.target_amount, payload.start_date, payload.target_date
    )
    if not goal:
        raise HTTPException(status_code=400, detail="Failed to create goal")
    return goal


@finance_router.put("/goals/{goal_id}", response_model=GoalOut)
def edit_goal(user_id: str, goal_id: str, payload: GoalCreate, db: Session = Depends(get_db)):
    _owned_goal(db, user_id, goal_id)
    goal = goal_service.update_goal(
        db, goal_id, payload.account_id, payload.name, payload.description,
        payload.target_amount, payload.start_date, payload.target_date
    )
    if not goal:
        raise HTTPException(status_code=400, detail="Failed to update goal")
    return goal


@finance_router.delete("/goals/{goal_id}")
def remove_goal(user_id: str, goal_id: str, db: Session = Depends(get_db)):
    _owned_goal(db, user_id, goal_id)
    if not goal_service.delete_goal(db, goal_id):
        raise HTTPException(status_code=400, detail="Failed to delete goal")
    return {"status": "success", "message": "Goal deleted"}


@finance_router.get("/goals/{goal_id}/contributions", response_model=List[ContributionOut])
def list_contributions(user_id: str, goal_id: str, db: Session = Depends(get_db)):
    _owned_goal(db, user_id, goal_id)
    return goal_service.get_contributions(db, goal_id)


@finance_router.post("/goals/{goal_id}/contributions", response_model=ContributionOut, status_code=201)
def add_contribution(user_id: str, goal_id: str, payload: ContributionCreate, db: Session = Depends(get_db)):
    _owned_goal(db, user_id, goal_id)
    contribution = goal_service.add_contribution(
        db, goal_id, payload.amount, payload.contribution_date, payload.notes
    )
    if not contribution:
        raise HTTPException(status_code=400, detail="Failed to add contribution")
    return contribution


# Learning content

@learning_router.get("", response_model=List[LearningContentOut])
def list_learning_content(featured: bool = False, db: Session = Depends(get_db)):
    if featured:
        return learning_service.get_featured_content(db)
    return learning_service.get_active_content(db)


@learning_router.post("", response_model=LearningContentOut, status_code=201)
def add_learning_content(payload: LearningContentCreate, db: Session = Depends(get_db)):
    item = learning_service.create_content(db, payload.model_dump())
    if not item:
        raise HTTPException(status_code=400, detail="Failed to create learning content")
    return item


@learning_router.put("/{content_id}", response_model=LearningContentOut)
def edit_learning_content(content_id: str, payload: LearningContentUpdate, db: Session = Depends(get_db)):
    item = learning_service.update_content(db, content_id, payload.model_dump(exclude_unset=True))
    if not item:
        raise HTTPException(status_code=404, detail="Learning content not found")
    return item


@learning_router.delete("/{content_id}")
def remove_learning_content(content_id: str, db: Session = Depends(get_db)):
    if not learning_service.delete_content(db, content_id):
        raise HTTPException(status_code=404, detail="Learning content not found")
    return {"status": "success", "message": "Learning content deleted"}
