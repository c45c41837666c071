from typing import Optional

from pydantic import BaseModel

from dashboard.models.records import UserProfile

# --- Incoming forms ---
# Fields are plain strings so empty values reach the service checks and
# come back with a form-level message instead of a schema error.

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignupRequest(BaseModel):
    email: str = ""
    password: str = ""
    confirm_password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    password: str = ""
    confirm_password: str = ""


class PasswordChangeRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


# --- Responses ---

class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    email: Optional[str] = None
    profile: Optional[UserProfile] = None


class SignupResult(BaseModel):
    success: bool = True
    requires_email_confirmation: bool = True
    message: str
    profile_id: str
    email: str
    business_name: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
