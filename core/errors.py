# core/errors.py

from fastapi import HTTPException

from core.logging_config import logger


# PostgREST surfaces Postgres SQLSTATE codes on APIError.code
PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_CHECK_VIOLATION = "23514"
PG_NOT_NULL_VIOLATION = "23502"

# Unique constraints on riders / leads → message shown in the console
CONSTRAINT_MESSAGES = {
    "riders_mobile_number_key": "A rider with this mobile number already exists",
    "riders_triev_id_key": "A rider with this Triev ID already exists",
    "riders_chassis_number_key": "A rider with this chassis number already exists",
    "leads_lead_id_key": "Lead ID already taken, please retry",
    "users_user_id_key": "User ID already taken, please retry",
}


def extract_supabase_error(error: Exception) -> str:
    """
    Readable text from a supabase-py error. APIError (PostgREST) and
    AuthApiError (GoTrue) both carry ``.message``; anything else falls back
    to its first arg.
    """
    message = getattr(error, "message", None)
    if message:
        return str(message)

    if getattr(error, "args", None):
        return str(error.args[0])

    return str(error) or "Unknown Supabase error"


def _error_code(error: Exception) -> str:
    code = getattr(error, "code", None)
    return str(code) if code else ""


def handle_supabase_error(error: Exception, operation: str = "Database operation", status_code: int = 500) -> HTTPException:
    """
    Map a failed write to an HTTPException (returned, not raised):
      • unique violation      → 400 (named constraint message when known)
      • foreign key violation → 400
      • check / not-null      → 422
      • missing row           → 404
      • anything else         → ``status_code``
    """
    detail = extract_supabase_error(error)
    code = _error_code(error)
    logger.error(f"{operation}: [{code or '-'}] {detail}")

    lowered = detail.lower()

    if code == PG_UNIQUE_VIOLATION or "duplicate key" in lowered:
        for constraint, message in CONSTRAINT_MESSAGES.items():
            if constraint in detail:
                return HTTPException(status_code=400, detail=message)
        return HTTPException(status_code=400, detail=f"{operation}: Record already exists")

    if code == PG_FOREIGN_KEY_VIOLATION or "foreign key" in lowered:
        return HTTPException(status_code=400, detail=f"{operation}: Invalid reference")

    if code in (PG_CHECK_VIOLATION, PG_NOT_NULL_VIOLATION):
        return HTTPException(status_code=422, detail=f"{operation}: {detail}")

    if "not found" in lowered or "does not exist" in lowered:
        return HTTPException(status_code=404, detail=f"{operation}: Resource not found")

    return HTTPException(status_code=status_code, detail=f"{operation} failed")
