from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsensei.models import Account
from finsensei.utils import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = {"account_name", "account_type", "balance", "currency"}

# Raised by malformed input rather than by the database
BAD_INPUT_ERRORS = (AttributeError, InvalidOperation, TypeError, ValueError)


def check_connection(db: Session) -> Dict[str, Any]:
    """Run a trivial query against the accounts table"""
    try:
        count = db.execute(select(func.count()).select_from(Account)).scalar()
        logger.debug(f"Database connection test: {count} accounts")
        return {"success": True, "error": None}
    except SQLAlchemyError as e:
        logger.error(f"Database connection error: {e}")
        return {"success": False, "error": str(e)}


def get_accounts(db: Session, user_id: str) -> List[Account]:
    try:
        return db.query(Account)\
            .filter(Account.user_id == user_id)\
            .order_by(Account.created_at.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching accounts: {e}")
        return []


def get_account(db: Session, account_id: str) -> Optional[Account]:
    try:
        return db.query(Account).filter(Account.id == account_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching account {account_id}: {e}")
        return None


def create_account(
    db: Session,
    user_id: str,
    account_name: str,
    balance: Decimal,
    account_type: str = "checking",
    currency: str = "USD"
) -> Optional[Account]:
    logger.info(f"Creating account '{account_name}' for user {user_id}")
    try:
        account = Account(
            user_id=user_id,
            account_name=account_name,
            balance=Decimal(str(balance)),
            account_type=account_type,
            currency=currency.upper()
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating account: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error creating account: invalid input: {e!r}")
        return None


def update_account(db: Session, account_id: str, updates: Dict[str, Any]) -> Optional[Account]:
    try:
        account = db.query(Account).filter(Account.id == account_id).first()
        if not account:
            logger.warning(f"Account {account_id} not found for update")
            return None

        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS or value is None:
                continue
            if key == "balance":
                value = Decimal(str(value))
            setattr(account, key, value)

        db.commit()
        db.refresh(account)
        return account
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating account: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error updating account: invalid input: {e!r}")
        return None


def delete_account(db: Session, account_id: str) -> bool:
    try:
        deleted = db.query(Account).filter(Account.id == account_id).delete()
        db.commit()
        return deleted > 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting account: {e}")
        return False
