from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: Optional[str] = None
    related_id: Optional[int] = None
    read: bool
    created_at: Optional[datetime] = None


class UnreadCount(BaseModel):
    unread: int
