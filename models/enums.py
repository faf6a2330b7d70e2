from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# USERS
# -----------------------------------------------------
class UserRole(BaseStrEnum):
    admin = "admin"
    teamLeader = "teamLeader"


class UserStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    deleted = "deleted"


# -----------------------------------------------------
# ROUTE GUARD OUTCOME
# -----------------------------------------------------
class AccessOutcome(BaseStrEnum):
    """Result of evaluating a session against a console area."""

    loading = "loading"
    redirect_login = "redirect_login"
    profile_missing = "profile_missing"
    unauthorized = "unauthorized"
    suspended = "suspended"
    inactive = "inactive"
    deleted = "deleted"
    allowed = "allowed"


# -----------------------------------------------------
# RIDERS
# -----------------------------------------------------
class RiderStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    deleted = "deleted"


class ClientName(BaseStrEnum):
    zomato = "Zomato"
    zepto = "Zepto"
    blinkit = "Blinkit"
    uber = "Uber"
    porter = "Porter"
    rapido = "Rapido"
    swiggy = "Swiggy"
    flk = "FLK"
    other = "Other"


# -----------------------------------------------------
# LEADS
# -----------------------------------------------------
class LeadStatus(BaseStrEnum):
    new = "New"
    convert = "Convert"
    not_convert = "Not Convert"


class LeadCategory(BaseStrEnum):
    """Assigned on creation by comparing the mobile number against existing rows."""

    genuine = "Genuine"
    match = "Match"
    duplicate = "Duplicate"


class LeadSource(BaseStrEnum):
    online = "Online"
    walking = "Walking"
    field_sourcing = "Field Sourcing"
    calling = "Calling"
    referral = "Referral"
    other = "Other"


class LicenseType(BaseStrEnum):
    permanent = "Permanent"
    learning = "Learning"
    no = "No"


# -----------------------------------------------------
# REQUESTS (TICKETS)
# -----------------------------------------------------
class RequestType(BaseStrEnum):
    password_reset = "password_reset"
    rider_update = "rider_update"
    wallet_issue = "wallet_issue"
    permission_request = "permission_request"
    data_correction = "data_correction"
    other = "other"


class RequestStatus(BaseStrEnum):
    pending = "pending"
    in_progress = "in_progress"
    waiting_for_info = "waiting_for_info"
    resolved = "resolved"
    rejected = "rejected"
    deleted = "deleted"
    purged = "purged"


class RequestPriority(BaseStrEnum):
    low = "low"
    medium = "medium"
    high = "high"


OPEN_REQUEST_STATUSES = [
    RequestStatus.pending.value,
    RequestStatus.in_progress.value,
    RequestStatus.waiting_for_info.value,
]

HIDDEN_REQUEST_STATUSES = [
    RequestStatus.deleted.value,
    RequestStatus.purged.value,
]


# -----------------------------------------------------
# NOTIFICATIONS
# -----------------------------------------------------
class NotificationType(BaseStrEnum):
    system = "system"
    riderAlert = "riderAlert"
    walletAlert = "walletAlert"
    permissionChange = "permissionChange"
    issue = "issue"
    feature = "feature"
    wallet = "wallet"
    allotment = "allotment"
    recharge = "recharge"
    reminder = "reminder"
    leadAlert = "leadAlert"
    info = "info"
    warning = "warning"
    success = "success"
    alert = "alert"


class NotificationPriority(BaseStrEnum):
    low = "low"
    medium = "medium"
    high = "high"


class BroadcastTarget(BaseStrEnum):
    all = "all"
    rider = "rider"
    teamLeader = "teamLeader"
    single_user = "single_user"
    single_rider = "single_rider"


# -----------------------------------------------------
# ACTIVITY LOG
# -----------------------------------------------------
class ActionType(BaseStrEnum):
    riderAdded = "riderAdded"
    riderEdited = "riderEdited"
    statusChanged = "statusChanged"
    riderDeleted = "riderDeleted"
    userCreated = "userCreated"
    userEdited = "userEdited"
    userDeleted = "userDeleted"
    userRestored = "userRestored"
    bulkUserDeleted = "bulkUserDeleted"
    requestCreated = "requestCreated"
    permissionChanged = "permissionChanged"
    walletUpdated = "walletUpdated"
    reportGenerated = "reportGenerated"
    bulkImport = "bulkImport"
    login = "login"
    logout = "logout"
    call_rider = "call_rider"
    whatsapp_rider = "whatsapp_rider"
    sent_reminder = "sent_reminder"
    payment_reminder = "payment_reminder"
    leadCreated = "leadCreated"
    leadStatusChange = "leadStatusChange"
    sent_recovery_warning = "sent_recovery_warning"
    wallet_transaction = "wallet_transaction"


class TargetType(BaseStrEnum):
    rider = "rider"
    user = "user"
    report = "report"
    system = "system"
    lead = "lead"
    request = "request"


# -----------------------------------------------------
# WALLET / IMPORT
# -----------------------------------------------------
class WalletTransactionType(BaseStrEnum):
    credit = "credit"
    debit = "debit"


class ImportType(BaseStrEnum):
    rider = "rider"
    wallet = "wallet"


class ImportStatus(BaseStrEnum):
    success = "success"
    partial = "partial"
    failed = "failed"


class ExportFormat(BaseStrEnum):
    csv = "csv"
    xlsx = "xlsx"
    pdf = "pdf"
