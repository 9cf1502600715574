from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsensei.models import LearningContent, ContentStatus
from finsensei.utils import get_logger

logger = get_logger(__name__)

CONTENT_FIELDS = {"title", "description", "url", "is_featured", "status", "created_by"}


def _clean(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in values.items():
        if key not in CONTENT_FIELDS:
            continue
        if isinstance(value, ContentStatus):
            value = value.value
        cleaned[key] = value
    return cleaned


def get_active_content(db: Session) -> List[LearningContent]:
    try:
        return db.query(LearningContent)\
            .filter(LearningContent.status == ContentStatus.ACTIVE.value)\
            .order_by(LearningContent.created_at.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching learning content: {e}")
        return []


def get_featured_content(db: Session) -> List[LearningContent]:
    try:
        return db.query(LearningContent)\
            .filter(
                LearningContent.status == ContentStatus.ACTIVE.value,
                LearningContent.is_featured.is_(True)
            )\
            .order_by(LearningContent.created_at.desc())\
            .all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching featured content: {e}")
        return []


def create_content(db: Session, content: Dict[str, Any]) -> Optional[LearningContent]:
    try:
        item = LearningContent(**_clean(content))
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating learning content: {e}")
        return None


def update_content(db: Session, content_id: str, content: Dict[str, Any]) -> Optional[LearningContent]:
    try:
        item = db.get(LearningContent, content_id)
        if not item:
            logger.warning(f"Learning content {content_id} not found for update")
            return None

        for key, value in _clean(content).items():
            if value is not None:
                setattr(item, key, value)

        db.commit()
        db.refresh(item)
        return item
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating learning content: {e}")
        return None


def delete_content(db: Session, content_id: str) -> bool:
    try:
        deleted = db.query(LearningContent).filter(LearningContent.id == content_id).delete()
        db.commit()
        return deleted > 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting learning content: {e}")
        return False
