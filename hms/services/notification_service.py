from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional

from ..models.notification import Notification

class NotificationType:
    APPOINTMENT_BOOKED = "appointment_booked"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    LAB_TEST_BOOKED = "lab_test_booked"
    LAB_TEST_CANCELLED = "lab_test_cancelled"

class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        type: str,
        title: str,
        message: Optional[str] = None,
        related_id: Optional[int] = None
    ) -> Notification:
        """Queue an admin notification; committed with the caller's transaction."""
        notification = Notification(
            type=type,
            title=title,
            message=message,
            related_id=related_id,
            read=False
        )
        self.db.add(notification)
        return notification

    def list_notifications(self, unread_only: bool = False, skip: int = 0, limit: int = 50) -> List[Notification]:
        query = self.db.query(Notification)
        if unread_only:
            query = query.filter(Notification.read == False)  # noqa: E712
        return query.order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).offset(skip).limit(limit).all()

    def unread_count(self) -> int:
        return self.db.query(Notification).filter(Notification.read == False).count()  # noqa: E712

    def mark_read(self, notification_id: int) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id
        ).first()

        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        notification.read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self) -> int:
        updated = self.db.query(Notification).filter(
            Notification.read == False  # noqa: E712
        ).update({"read": True})
        self.db.commit()
        return updated
