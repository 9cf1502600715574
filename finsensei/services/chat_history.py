from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsensei.models import ChatMessage, ChatRole
from finsensei.utils import get_logger

logger = get_logger(__name__)


def save_chat_message(db: Session, user_id: str, role: ChatRole, content: str) -> Optional[ChatMessage]:
    try:
        message = ChatMessage(
            user_id=user_id,
            role=ChatRole(role).value,
            content=content
        )
        db.add(message)
        db.commit()
        db.refresh(message)
        return message
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving chat message: {e}")
        return None


def get_chat_history(db: Session, user_id: str, limit: int = 50) -> List[ChatMessage]:
    """Oldest-first conversation for a user, capped at `limit` rows"""
    try:
        return db.query(ChatMessage)\
            .filter(ChatMessage.user_id == user_id)\
            .order_by(ChatMessage.created_at.asc())\
            .limit(limit)\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching chat history: {e}")
        return []


def clear_chat_history(db: Session, user_id: str) -> bool:
    try:
        deleted = db.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete()
        db.commit()
        logger.info(f"Cleared {deleted} chat messages for user {user_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error clearing chat history: {e}")
        return False
