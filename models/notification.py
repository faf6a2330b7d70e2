# models/notification.py

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import BroadcastTarget, NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: Optional[str] = NotificationType.info.value
    priority: Optional[str] = None
    related_entity: Optional[Dict[str, Any]] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "NotificationRead":
        data = dict(row or {})
        data["is_read"] = bool(data.get("is_read"))
        return cls.model_validate(data)


class AnnouncementCreate(BaseModel):
    """
    Broadcast message. ``target_role`` decides the audience; the single_*
    targets take ``target_id``.
    """
    title: str
    body: str
    type: NotificationType = NotificationType.info
    priority: NotificationPriority = NotificationPriority.medium
    target_role: BroadcastTarget = BroadcastTarget.all
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class AnnouncementRead(BaseModel):
    id: str
    title: str
    body: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    target_role: Optional[str] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "AnnouncementRead":
        data = dict(row or {})
        data["tags"] = data.get("tags") or []
        return cls.model_validate(data)
