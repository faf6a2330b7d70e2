# models/request.py

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import RequestType, RequestStatus, RequestPriority


class TimelineEvent(BaseModel):
    status: str
    remark: str = ""
    timestamp: str
    updatedBy: str
    role: str = "system"


class RequestCreate(BaseModel):
    type: RequestType = RequestType.other
    subject: str
    description: str = ""
    priority: RequestPriority = RequestPriority.medium
    related_entity_id: Optional[str] = None
    related_entity_name: Optional[str] = None
    related_entity_type: Optional[str] = None


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    remark: Optional[str] = None
    admin_response: Optional[str] = None
    internal_notes: Optional[str] = None


class RequestRead(BaseModel):
    id: str
    ticket_id: Optional[int] = None
    type: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    email: Optional[str] = None
    user_role: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_name: Optional[str] = None
    related_entity_type: Optional[str] = None
    status: str = RequestStatus.pending.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    admin_response: Optional[str] = None
    internal_notes: Optional[str] = None
    timeline: List[TimelineEvent] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "RequestRead":
        data = dict(row or {})
        data["timeline"] = data.get("timeline") or []
        return cls.model_validate(data)
