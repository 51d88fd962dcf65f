from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from models.notification import NotificationType


class NotificationRead(BaseModel):
    id: int
    matching_id: Optional[int] = None
    notification_type: NotificationType
    content: str
    created_at: datetime

    class Config:
        from_attributes = True
