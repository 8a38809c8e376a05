"""
Pydantic schemas for the admin authentication endpoints.

Request and response bodies use camelCase on the wire (confirmPassword,
newPassword, resendAvailableAt, ...) to match the dashboard client.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


OtpContext = Literal["login", "reset"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases, populated by either name."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)


class SignupRequest(CamelModel):
    """
    New administrator registration.

    Attributes:
        email: Login email
        password: At least 8 characters
        confirm_password: Must equal password (checked by the auth manager)
        name: Display name, at least 2 characters
    """
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=8)
    name: str = Field(min_length=2)


class VerifyOtpRequest(CamelModel):
    """
    OTP verification.

    new_password is only meaningful for context "reset": when present the
    password is replaced in the same call.
    """
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")
    context: OtpContext
    new_password: Optional[str] = Field(default=None, min_length=8)


class ResendOtpRequest(CamelModel):
    email: EmailStr
    context: OtpContext


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """
    Password replacement after a verified reset code.

    reset_token is required with bearer tokens; with server sessions the
    grant travels in the session cookie instead.
    """
    reset_token: Optional[str] = None
    new_password: str = Field(min_length=8)


class AdminProfile(CamelModel):
    email: str
    name: str


class SessionResponse(CamelModel):
    """Authenticated response. token is omitted with server sessions."""
    success: bool = True
    token: Optional[str] = None
    admin: AdminProfile


class OtpSentResponse(CamelModel):
    success: bool = True
    message: str
    otp_required: bool = True
    resend_available_at: datetime


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ResetVerifiedResponse(CamelModel):
    """Reset code accepted. reset_token is only present with bearer tokens."""
    success: bool = True
    message: str = "OTP verified"
    reset_token: Optional[str] = None


class ProfileResponse(CamelModel):
    success: bool = True
    admin: AdminProfile
