# -------------------------
# Enums
# -------------------------
from .enums import (
    UserRole,
    UserStatus,
    AccessOutcome,
    RiderStatus,
    LeadStatus,
    LeadCategory,
    RequestType,
    RequestStatus,
    RequestPriority,
    NotificationType,
    BroadcastTarget,
    ActionType,
    TargetType,
    WalletTransactionType,
    ExportFormat,
)

# -------------------------
# User Models
# -------------------------
from .user import (
    UserBase,
    UserCreate,
    UserRead,
    UserUpdate,
    ProfileUpdate,
    SuspendRequest,
    PermissionToggle,
)

# -------------------------
# Auth Models
# -------------------------
from .auth import LoginRequest, TokenResponse, PasswordResetRequest, PasswordChange

# -------------------------
# Entity Models
# -------------------------
from .rider import RiderCreate, RiderRead, RiderUpdate, RiderStatusChange, BulkStatusChange, BulkAssign
from .lead import LeadCreate, LeadRead, LeadStatusChange
from .request import RequestCreate, RequestRead, RequestStatusUpdate, TimelineEvent
from .notification import NotificationRead, AnnouncementCreate, AnnouncementRead
from .activity_log import ActivityLogRead
from .wallet import WalletAdjustment, WalletTransactionRead

__all__ = [
    # enums
    "UserRole",
    "UserStatus",
    "AccessOutcome",
    "RiderStatus",
    "LeadStatus",
    "LeadCategory",
    "RequestType",
    "RequestStatus",
    "RequestPriority",
    "NotificationType",
    "BroadcastTarget",
    "ActionType",
    "TargetType",
    "WalletTransactionType",
    "ExportFormat",

    # users
    "UserBase",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "ProfileUpdate",
    "SuspendRequest",
    "PermissionToggle",

    # auth
    "LoginRequest",
    "TokenResponse",
    "PasswordResetRequest",
    "PasswordChange",

    # riders / leads
    "RiderCreate",
    "RiderRead",
    "RiderUpdate",
    "RiderStatusChange",
    "BulkStatusChange",
    "BulkAssign",
    "LeadCreate",
    "LeadRead",
    "LeadStatusChange",

    # requests
    "RequestCreate",
    "RequestRead",
    "RequestStatusUpdate",
    "TimelineEvent",

    # notifications
    "NotificationRead",
    "AnnouncementCreate",
    "AnnouncementRead",

    # activity / wallet
    "ActivityLogRead",
    "WalletAdjustment",
    "WalletTransactionRead",
]
