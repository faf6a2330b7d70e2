# routers/auth.py

from fastapi import APIRouter, HTTPException, Depends, Request

from core.supabase_client import get_supabase_client
from core.rate_limiter import rate_limit, get_rate_limit_identifier
from core.permission_helpers import check_permission
from core.validation import digits_only, format_phone_number, validate_password_strength
from core.utils import sanitize, utc_now_iso
from core.logging_config import logger
from dependencies.auth import get_current_user, get_active_user, CurrentUser
from models.auth import LoginRequest, TokenResponse, PasswordResetRequest, PasswordChange
from models.user import ProfileUpdate
from services.tickets import create_ticket


router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)


BANK_FIELDS = ("bank_name", "account_number", "ifsc_code")


# ============================================================
# LOGIN (SUPABASE AUTH)
# ============================================================
@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate user",
    dependencies=[Depends(rate_limit("login", max_requests=10, window_seconds=300))],
)
def login(payload: LoginRequest):

    email = payload.email.strip().lower()

    client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")

    try:
        response = client.auth.sign_in_with_password(
            {"email": email, "password": payload.password}
        )
    except Exception as e:
        # don't expose details to the caller
        logger.warning(f"Login attempt failed for {email}: {type(e).__name__}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not response.session or not response.session.access_token:
        raise HTTPException(401, "Invalid email or password")

    return TokenResponse(
        access_token=response.session.access_token,
        refresh_token=getattr(response.session, "refresh_token", None),
        expires_in=getattr(response.session, "expires_in", None),
    )


# ============================================================
# CURRENT USER
# ============================================================
@router.get("/me", response_model=CurrentUser, summary="Current authenticated user")
def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user


@router.patch("/me", summary="Update current user profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_active_user),
):
    """
    Self-service edits. Personal fields need ``profile.editPersonalDetails``,
    bank fields need ``profile.editBankDetails``.
    """
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return {"updated": False}

    if any(k in changes for k in BANK_FIELDS):
        check_permission(current_user, "profile.editBankDetails")
    if any(k not in BANK_FIELDS for k in changes):
        check_permission(current_user, "profile.editPersonalDetails")

    if changes.get("mobile"):
        changes["mobile"] = format_phone_number(changes["mobile"])

    client = get_supabase_client()

    try:
        changes["updated_at"] = utc_now_iso()
        result = (
            client.table("users")
            .update(sanitize(changes))
            .eq("id", current_user.id)
            .execute()
        )
        if not result.data:
            raise HTTPException(404, "Profile not found")

        logger.info(f"User {current_user.id} updated their profile")
        return {"updated": True, "profile": result.data[0]}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update user profile: {e}")
        raise HTTPException(500, f"Failed to update profile: {str(e)}")


@router.post("/change-password", summary="Change own password")
def change_password(
    payload: PasswordChange,
    current_user: CurrentUser = Depends(get_active_user),
):
    check_permission(current_user, "profile.changePassword")

    ok, message = validate_password_strength(payload.new_password)
    if not ok:
        raise HTTPException(400, message)

    client = get_supabase_client()

    try:
        client.auth.admin.update_user_by_id(current_user.id, {"password": payload.new_password})
        client.table("users").update({
            "force_password_change": False,
            "updated_at": utc_now_iso(),
        }).eq("id", current_user.id).execute()
    except Exception as e:
        logger.error(f"Password change failed for {current_user.id}: {e}")
        raise HTTPException(500, "Failed to change password")

    logger.info(f"🔑 Password changed for {current_user.email}")
    return {"success": True}


# ============================================================
# FORGOT PASSWORD → password_reset ticket
# ============================================================
@router.post(
    "/password-reset-request",
    summary="Raise a password reset request for an administrator",
    dependencies=[Depends(rate_limit("password_reset", max_requests=5, window_seconds=900))],
    responses={
        404: {"description": "No account with that mobile number"},
        400: {"description": "A reset request is already pending"},
        429: {"description": "Rate limit exceeded"},
    },
)
def request_password_reset(payload: PasswordResetRequest, request: Request):
    """
    Looks the account up by mobile number and opens a ``password_reset``
    ticket for the admins. Only one pending reset per user.
    """
    mobile = digits_only(payload.mobile)[-10:]
    if len(mobile) != 10:
        raise HTTPException(400, "Enter a valid 10-digit mobile number")

    logger.info(f"Password reset attempt: mobile=***{mobile[-4:]}, from={get_rate_limit_identifier(request, 'password_reset')}")

    client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Service temporarily unavailable")

    try:
        users = (
            client.table("users")
            .select("*")
            .in_("mobile", [mobile, f"+91{mobile}"])
            .limit(1)
            .execute()
        ).data
        if not users:
            raise HTTPException(404, "No account found with this mobile number")
        user = users[0]

        pending = (
            client.table("requests")
            .select("id")
            .eq("user_id", user["id"])
            .eq("type", "password_reset")
            .eq("status", "pending")
            .limit(1)
            .execute()
        ).data
        if pending:
            raise HTTPException(400, "A password reset request is already pending")

        requester = CurrentUser(
            id=user["id"],
            email=user.get("email"),
            role=user.get("role") or "teamLeader",
            full_name=user.get("full_name"),
        )
        ticket = create_ticket(requester, {
            "type": "password_reset",
            "subject": "Password Reset Request",
            "description": payload.note or f"Password reset requested for {user.get('full_name') or mobile}",
            "priority": "high",
        })

        return {"success": True, "ticket_id": ticket.get("ticket_id")}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password reset request failed: {e}")
        raise HTTPException(500, "Failed to submit password reset request")
