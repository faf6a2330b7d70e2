# models/activity_log.py

from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ActivityLogRead(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    action_type: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None
    is_deleted: bool = False

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "ActivityLogRead":
        data = dict(row or {})
        data["metadata"] = data.get("metadata") or {}
        data["is_deleted"] = bool(data.get("is_deleted"))
        return cls.model_validate(data)
