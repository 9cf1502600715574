from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsensei.models import FinancialGoal, GoalContribution, GoalStatus
from finsensei.utils import get_logger

logger = get_logger(__name__)

# Raised by malformed input rather than by the database
BAD_INPUT_ERRORS = (InvalidOperation, TypeError, ValueError)


def create_goal(
    db: Session,
    user_id: str,
    account_id: Optional[str],
    name: str,
    description: Optional[str],
    target_amount: Decimal,
    start_date: date,
    target_date: date
) -> Optional[FinancialGoal]:
    try:
        goal = FinancialGoal(
            user_id=user_id,
            account_id=account_id,
            name=name,
            description=description,
            target_amount=Decimal(str(target_amount)),
            current_amount=Decimal("0"),
            start_date=start_date,
            target_date=target_date,
            status=GoalStatus.ACTIVE.value
        )
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating goal: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error creating goal: invalid input: {e!r}")
        return None


def get_goals(db: Session, user_id: str) -> List[FinancialGoal]:
    try:
        return db.query(FinancialGoal)\
            .filter(FinancialGoal.user_id == user_id)\
            .order_by(FinancialGoal.created_at.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching goals: {e}")
        return []


def get_goal(db: Session, goal_id: str) -> Optional[FinancialGoal]:
    try:
        return db.get(FinancialGoal, goal_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching goal {goal_id}: {e}")
        return None


def update_goal(
    db: Session,
    goal_id: str,
    account_id: Optional[str],
    name: str,
    description: Optional[str],
    target_amount: Decimal,
    start_date: date,
    target_date: date
) -> Optional[FinancialGoal]:
    try:
        goal = db.get(FinancialGoal, goal_id)
        if not goal:
            logger.warning(f"Goal {goal_id} not found for update")
            return None

        goal.account_id = account_id
        goal.name = name
        goal.description = description
        goal.target_amount = Decimal(str(target_amount))
        goal.start_date = start_date
        goal.target_date = target_date
        if goal.status == GoalStatus.ACTIVE.value and Decimal(goal.current_amount) >= goal.target_amount:
            goal.status = GoalStatus.COMPLETED.value

        db.commit()
        db.refresh(goal)
        return goal
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating goal: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error updating goal: invalid input: {e!r}")
        return None


def delete_goal(db: Session, goal_id: str) -> bool:
    try:
        db.query(GoalContribution).filter(GoalContribution.goal_id == goal_id).delete()
        deleted = db.query(FinancialGoal).filter(FinancialGoal.id == goal_id).delete()
        db.commit()
        return deleted > 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting goal: {e}")
        return False


def add_contribution(
    db: Session,
    goal_id: str,
    amount: Decimal,
    contribution_date: date,
    notes: Optional[str] = ""
) -> Optional[GoalContribution]:
    """Record a contribution and move the goal's current amount forward.

    The goal flips to completed once the current amount reaches the target.
    """
    if not goal_id:
        logger.error("Error adding contribution: goal id is required")
        return None
    if not contribution_date:
        logger.error("Error adding contribution: contribution date is required")
        return None

    try:
        amount = Decimal(str(amount))
        if amount <= 0:
            logger.error("Error adding contribution: amount must be greater than 0")
            return None

        goal = db.get(FinancialGoal, goal_id)
        if not goal:
            logger.error(f"Error adding contribution: goal {goal_id} not found")
            return None

        contribution = GoalContribution(
            goal_id=goal_id,
            amount=amount,
            contribution_date=contribution_date,
            notes=notes or ""
        )
        db.add(contribution)

        goal.current_amount = Decimal(goal.current_amount) + amount
        if goal.status == GoalStatus.ACTIVE.value and goal.current_amount >= Decimal(goal.target_amount):
            goal.status = GoalStatus.COMPLETED.value
            logger.info(f"Goal '{goal.name}' reached its target")

        db.commit()
        db.refresh(contribution)
        return contribution
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error adding contribution: {e}")
        return None
    except BAD_INPUT_ERRORS as e:
        db.rollback()
        logger.error(f"Error adding contribution: invalid input: {e!r}")
        return None


def get_contributions(db: Session, goal_id: str) -> List[GoalContribution]:
    try:
        return db.query(GoalContribution)\
            .filter(GoalContribution.goal_id == goal_id)\
            .order_by(GoalContribution.contribution_date.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching contributions: {e}")
        return []
