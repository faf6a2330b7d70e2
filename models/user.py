# models/user.py

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from models.enums import UserRole, UserStatus


# ===============================================================
# USERS TABLE (profile rows keyed by the Supabase auth id)
# ===============================================================

class UserBase(BaseModel):
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    reporting_manager: Optional[str] = None
    job_location: Optional[str] = None
    remarks: Optional[str] = None


class UserRead(UserBase):
    """
    Returned to API consumers. ``permissions`` is the stored (possibly
    partial) tree; use core.permissions.effective_permissions to resolve it.
    """
    id: str
    user_id: Optional[str] = None
    role: str = UserRole.teamLeader.value
    status: str = UserStatus.active.value
    suspended_until: Optional[datetime] = None
    permissions: Dict[str, Any] = Field(default_factory=dict)
    profile_pic_url: Optional[str] = None
    force_password_change: Optional[bool] = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_row(cls, row: dict) -> "UserRead":
        from core.permissions import parse_permissions

        data = dict(row or {})
        data["permissions"] = parse_permissions(data.get("permissions"))
        data["role"] = data.get("role") or UserRole.teamLeader.value
        data["status"] = data.get("status") or UserStatus.active.value
        return cls.model_validate(data)


class UserCreate(UserBase):
    """Admin creates a staff account (auth user + profile row)."""
    email: EmailStr
    password: str
    full_name: str
    role: UserRole = UserRole.teamLeader
    user_id: Optional[str] = None


class UserUpdate(BaseModel):
    """Partial update of a profile row (admin only)."""
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    username: Optional[str] = None
    reporting_manager: Optional[str] = None
    job_location: Optional[str] = None
    remarks: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class ProfileUpdate(BaseModel):
    """Self-service edits; bank details are gated separately."""
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None


class SuspendRequest(BaseModel):
    """``duration_minutes`` <= 0 suspends indefinitely."""
    duration_minutes: int = -1
    reason: Optional[str] = None


class PermissionToggle(BaseModel):
    """Either a single ``path`` or a list of ``paths``, all set to ``value``."""
    path: Optional[str] = None
    paths: Optional[List[str]] = None
    value: bool
