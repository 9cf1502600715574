"""
Transaction persistence with account balance effects.

Income credits the account, expenses debit it, transfers move money from the
source account to the destination. Each write commits the transaction row and
the balance changes together, or nothing at all.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsensei.models import Account, Transaction, TransactionType
from finsensei.utils import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = {"account_id", "to_account_id", "transaction_type", "source", "amount", "date"}

# Raised by malformed input rather than by the database
BAD_INPUT_ERRORS = (InvalidOperation, KeyError, TypeError, ValueError)


def _load_accounts(db: Session, account_id: Optional[str], to_account_id: Optional[str]):
    account = db.get(Account, account_id) if account_id else None
    destination = db.get(Account, to_account_id) if to_account_id else None
    return account, destination


def _ownership_error(user_id: str, account: Optional[Account], destination: Optional[Account]) -> Optional[str]:
    if account is None or account.user_id != user_id:
        return "account not found"
    if destination is not None:
        if destination.user_id != user_id:
            return "destination account not found"
        if destination.id == account.id:
            return "destination account must differ from the source account"
    return None


def _apply_effect(txn_type: str, amount: Decimal, account: Account, destination: Optional[Account]) -> Optional[str]:
    """Apply a transaction to balances; returns an error message instead of applying when invalid"""
    if txn_type == TransactionType.INCOME.value:
        account.balance = Decimal(account.balance) + amount
    elif txn_type == TransactionType.EXPENSE.value:
        if Decimal(account.balance) < amount:
            return "Insufficient balance"
        account.balance = Decimal(account.balance) - amount
    elif txn_type == TransactionType.TRANSFER.value:
        if destination is None:
            return "Destination account is required for transfer"
        if Decimal(account.balance) < amount:
            return "Insufficient balance for transfer"
        account.balance = Decimal(account.balance) - amount
        destination.balance = Decimal(destination.balance) + amount
    else:
        return f"Unknown transaction type: {txn_type}"
    return None


def _revert_effect(txn_type: str, amount: Decimal, account: Account, destination: Optional[Account]):
    if txn_type == TransactionType.INCOME.value:
        account.balance = Decimal(account.balance) - amount
    elif txn_type == TransactionType.EXPENSE.value:
        account.balance = Decimal(account.balance) + amount
    elif txn_type == TransactionType.TRANSFER.value:
        account.balance = Decimal(account.balance) + amount
        if destination is not None:
            destination.balance = Decimal(destination.balance) - amount


def _type_value(value: Any) -> str:
    return value.value if isinstance(value, TransactionType) else value


def get_transactions(db: Session, user_id: str) -> List[Transaction]:
    try:
        return db.query(Transaction)\
            .filter(Transaction.user_id == user_id)\
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching transactions: {e}")
        return []


def create_transaction(db: Session, user_id: str, data: Dict[str, Any]) -> Optional[Transaction]:
    try:
        txn_type = _type_value(data["transaction_type"])
        amount = Decimal(str(data["amount"]))
        to_account_id = data.get("to_account_id") if txn_type == TransactionType.TRANSFER.value else None

        account, destination = _load_accounts(db, data["account_id"], to_account_id)
        error = _ownership_error(user_id, account, destination) \
            or _apply_effect(txn_type, amount, account, destination)
        if error:
            db.rollback()
            logger.error(f"Error creating transaction: {error}")
            return None

        transaction = Transaction(
            user_id=user_id,
            account_id=account.id,
            to_account_id=to_account_id,
            transaction_type=txn_type,
            source=data["source"],
            amount=amount,
            date=data["date"]
        )
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating transaction: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error creating transaction: invalid input: {e!r}")
        return None


def update_transaction(
    db: Session,
    transaction_id: str,
    user_id: str,
    updates: Dict[str, Any]
) -> Optional[Transaction]:
    """Replace a transaction's fields, moving its balance effect to the new values"""
    try:
        transaction = db.query(Transaction)\
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)\
            .first()
        if not transaction:
            logger.warning(f"Transaction {transaction_id} not found for update")
            return None

        account, destination = _load_accounts(db, transaction.account_id, transaction.to_account_id)
        if account is not None:
            _revert_effect(transaction.transaction_type, Decimal(transaction.amount), account, destination)

        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS or (value is None and key != "to_account_id"):
                continue
            if key == "transaction_type":
                value = _type_value(value)
            elif key == "amount":
                value = Decimal(str(value))
            setattr(transaction, key, value)

        if transaction.transaction_type != TransactionType.TRANSFER.value:
            transaction.to_account_id = None

        account, destination = _load_accounts(db, transaction.account_id, transaction.to_account_id)
        error = _ownership_error(user_id, account, destination) \
            or _apply_effect(transaction.transaction_type, Decimal(transaction.amount), account, destination)
        if error:
            db.rollback()
            logger.error(f"Error updating transaction: {error}")
            return None

        db.commit()
        db.refresh(transaction)
        return transaction
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating transaction: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error updating transaction: invalid input: {e!r}")
        return None


def delete_transaction(db: Session, transaction_id: str, user_id: str) -> bool:
    try:
        transaction = db.query(Transaction)\
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)\
            .first()
        if not transaction:
            logger.warning(f"Transaction {transaction_id} not found for delete")
            return False

        account, destination = _load_accounts(db, transaction.account_id, transaction.to_account_id)
        if account is not None:
            _revert_effect(transaction.transaction_type, Decimal(transaction.amount), account, destination)

        db.delete(transaction)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting transaction: {e}")
        return False
