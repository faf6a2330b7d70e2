from typing import Optional

from pydantic import BaseModel, EmailStr


# -----------------------------------------------------
# LOGIN REQUEST (Supabase email/password)
# -----------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# -----------------------------------------------------
# TOKEN RESPONSE (Supabase session JWT)
# -----------------------------------------------------
class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"


# -----------------------------------------------------
# FORGOT PASSWORD (raises a password_reset ticket)
# -----------------------------------------------------
class PasswordResetRequest(BaseModel):
    mobile: str
    note: Optional[str] = None


class PasswordChange(BaseModel):
    new_password: str
