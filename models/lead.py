# models/lead.py

from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel

from models.enums import LeadStatus, LeadSource, LicenseType


class LeadBase(BaseModel):
    rider_name: str
    mobile_number: str
    city: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    driving_license: Optional[LicenseType] = None
    ev_type_interested: Optional[str] = None
    client_interested: Optional[str] = None
    expected_allotment_date: Optional[str] = None
    current_ev_using: Optional[str] = None
    source: Optional[LeadSource] = None
    remarks: Optional[str] = None


class LeadCreate(LeadBase):
    pass


class LeadRead(LeadBase):
    id: str
    lead_id: Optional[int] = None
    rider_name: Optional[str] = None
    mobile_number: Optional[str] = None
    driving_license: Optional[str] = None
    source: Optional[str] = None
    status: str = LeadStatus.new.value
    category: Optional[str] = None
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    score: Optional[float] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "LeadRead":
        return cls.model_validate(row or {})


class LeadStatusChange(BaseModel):
    status: LeadStatus
