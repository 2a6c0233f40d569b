"""
Notification sink for reward events (level-up, badge earned).

The sink only records the notification inside the caller's transaction;
delivery is handled elsewhere.
"""
import logging
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from kudipal.domain.rewards import NotificationType
from kudipal.infrastructure.db.models import NotificationModel

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, user_id: int, type: NotificationType, title: str, message: str) -> None:
        ...


class DbNotificationSink:
    """Writes notifications to the `notifications` table (flush only, no commit)."""

    def __init__(self, db: Session):
        self.db = db

    def notify(self, user_id: int, type: NotificationType, title: str, message: str) -> None:
        self.db.add(NotificationModel(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            is_read=False,
        ))
        self.db.flush()
        logger.info("Notification %s queued for user_id=%s", type.value, user_id)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: int, limit: int = 20, offset: int = 0) -> dict:
        """Return {notifications, total, unread} newest first."""
        rows = (
            self.db.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = (
            self.db.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .scalar() or 0
        )
        unread = (
            self.db.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .scalar() or 0
        )
        return {
            "notifications": [
                {
                    "id": n.id,
                    "type": n.type,
                    "title": n.title,
                    "message": n.message,
                    "is_read": n.is_read,
                    "created_at": n.created_at.isoformat() if n.created_at else None,
                }
                for n in rows
            ],
            "total": total,
            "unread": unread,
        }

    def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification as read; returns how many changed."""
        count = (
            self.db.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .update({NotificationModel.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return count
