# models/rider.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, field_validator

from models.enums import RiderStatus


class RiderBase(BaseModel):
    triev_id: Optional[str] = None
    rider_name: str
    mobile_number: str
    chassis_number: Optional[str] = None
    client_name: Optional[str] = None
    client_id: Optional[str] = None
    wallet_amount: float = 0
    allotment_date: Optional[str] = None
    remarks: Optional[str] = None
    comments: Optional[str] = None
    status: RiderStatus = RiderStatus.active
    team_leader_id: Optional[str] = None


class RiderCreate(RiderBase):
    pass


class RiderUpdate(BaseModel):
    """Partial update; status and wallet have dedicated endpoints."""
    triev_id: Optional[str] = None
    rider_name: Optional[str] = None
    mobile_number: Optional[str] = None
    chassis_number: Optional[str] = None
    client_name: Optional[str] = None
    client_id: Optional[str] = None
    allotment_date: Optional[str] = None
    remarks: Optional[str] = None
    comments: Optional[str] = None
    team_leader_id: Optional[str] = None


class RiderRead(RiderBase):
    id: str
    rider_name: Optional[str] = None
    mobile_number: Optional[str] = None
    status: str = RiderStatus.active.value
    team_leader_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @field_validator("wallet_amount", mode="before")
    @classmethod
    def coerce_wallet(cls, v):
        if v is None or v == "":
            return 0
        return v

    @classmethod
    def from_row(cls, row: dict) -> "RiderRead":
        return cls.model_validate(row or {})


class RiderStatusChange(BaseModel):
    status: RiderStatus


class BulkStatusChange(BaseModel):
    rider_ids: list[str]
    status: RiderStatus


class BulkAssign(BaseModel):
    rider_ids: list[str]
    team_leader_id: str


class RiderIds(BaseModel):
    rider_ids: list[str]
