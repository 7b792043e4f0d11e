from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.notification_service import NotificationService
from ...schemas.notification import NotificationResponse, UnreadCount

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    dependencies=[Depends(get_admin_user)]
)

@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Admin notifications, newest first."""
    notifications = NotificationService(db).list_notifications(unread_only, skip, limit)
    return [NotificationResponse.model_validate(n) for n in notifications]

@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(db: Session = Depends(get_db)):
    return UnreadCount(unread=NotificationService(db).unread_count())

@router.post("/read-all")
async def mark_all_read(db: Session = Depends(get_db)):
    updated = NotificationService(db).mark_all_read()
    return {"message": f"{updated} notifications marked as read"}

@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: int, db: Session = Depends(get_db)):
    return NotificationResponse.model_validate(NotificationService(db).mark_read(notification_id))
