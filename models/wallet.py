# models/wallet.py

from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import WalletTransactionType


class WalletAdjustment(BaseModel):
    amount: float = Field(..., gt=0)
    description: Optional[str] = None


class WalletTransactionRead(BaseModel):
    id: str
    rider_id: Optional[str] = None
    team_leader_id: Optional[str] = None
    amount: float = 0
    type: WalletTransactionType
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    performed_by: Optional[str] = None
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "WalletTransactionRead":
        data = dict(row or {})
        data["metadata"] = data.get("metadata") or {}
        return cls.model_validate(data)
