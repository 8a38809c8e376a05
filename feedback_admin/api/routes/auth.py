"""
Authentication endpoints for the admin dashboard.

Login is password first, then (when REQUIRE_OTP is on) an emailed six digit
code. Responses are identical in both session strategies except that bearer
mode returns the token in the body while session mode sets httpOnly cookies.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from feedback_admin.api.dependencies import AuthManager, CurrentAdmin, Credentials, Issuer
from feedback_admin.models.admin import Admin
from feedback_admin.schemas.auth import (
    AdminProfile,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    OtpSentResponse,
    ProfileResponse,
    ResendOtpRequest,
    ResetPasswordRequest,
    ResetVerifiedResponse,
    SessionResponse,
    SignupRequest,
    VerifyOtpRequest,
)
from feedback_admin.services.interfaces.session_issuer import ISessionIssuer, IssuedSession


router = APIRouter()


def _profile(admin: Admin) -> AdminProfile:
    return AdminProfile(email=admin.email, name=admin.display_name)


def _json(body: BaseModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _session_response(issuer: ISessionIssuer, admin: Admin, issued: IssuedSession) -> JSONResponse:
    response = _json(SessionResponse(token=issued.bearer_token, admin=_profile(admin)))
    issuer.write(response, issued)
    return response


@router.post("/login", response_model=None)
async def login(
    body: LoginRequest,
    manager: AuthManager,
    issuer: Issuer,
    credentials: Credentials,
) -> JSONResponse:
    """
    Verify email and password.

    Returns a session directly when OTP is disabled, otherwise sends a login
    code and returns when the next resend becomes available.

    Example:
        POST /api/auth/login
        {"email": "a@x.com", "password": "Secret123!"}

        Response (OTP enabled):
        {"success": true, "message": "OTP sent", "otpRequired": true,
         "resendAvailableAt": "2025-11-24T10:31:00"}
    """
    result = await manager.login(body.email, body.password, credentials)

    if result.otp_required:
        return _json(OtpSentResponse(
            message="OTP sent",
            resend_available_at=result.resend_available_at,
        ))

    return _session_response(issuer, result.admin, result.session)


@router.post("/signup", response_model=None)
async def signup(
    body: SignupRequest,
    manager: AuthManager,
    issuer: Issuer,
    credentials: Credentials,
) -> JSONResponse:
    """Register a new administrator and sign them in."""
    result = await manager.signup(
        body.email,
        body.password,
        body.confirm_password,
        body.name,
        credentials,
    )
    return _session_response(issuer, result.admin, result.session)


@router.post("/verify-otp", response_model=None)
async def verify_otp(
    body: VerifyOtpRequest,
    manager: AuthManager,
    issuer: Issuer,
    credentials: Credentials,
) -> JSONResponse:
    """
    Verify a login or reset code.

    - login: returns a session
    - reset with newPassword: replaces the password
    - reset without newPassword: returns a single-use reset grant
      (resetToken in bearer mode, session cookie in session mode)
    """
    result = await manager.verify_otp(
        body.email,
        body.otp,
        body.context,
        credentials,
        new_password=body.new_password,
    )

    if result.session is not None:
        return _session_response(issuer, result.admin, result.session)

    if result.password_updated:
        return _json(MessageResponse(message="Password updated"))

    response = _json(ResetVerifiedResponse(reset_token=result.reset_grant.reset_token))
    issuer.write_reset(response, result.reset_grant)
    return response


@router.post("/resend-otp", response_model=None)
async def resend_otp(body: ResendOtpRequest, manager: AuthManager) -> JSONResponse:
    """Send a new code once the resend window has elapsed (429 before that)."""
    resend_available_at = await manager.resend_otp(body.email, body.context)
    return _json(OtpSentResponse(message="OTP resent", resend_available_at=resend_available_at))


@router.post("/forgot", response_model=None)
async def forgot_password(body: ForgotPasswordRequest, manager: AuthManager) -> JSONResponse:
    """Send a password reset code."""
    resend_available_at = await manager.forgot_password(body.email)
    return _json(OtpSentResponse(
        message="OTP sent for password reset",
        resend_available_at=resend_available_at,
    ))


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    manager: AuthManager,
    credentials: Credentials,
) -> MessageResponse:
    """Replace the password using the grant from a verified reset code."""
    await manager.reset_password(body.new_password, credentials, reset_token=body.reset_token)
    return MessageResponse(message="Password updated")


@router.post("/logout", response_model=None)
async def logout(manager: AuthManager, issuer: Issuer, credentials: Credentials) -> JSONResponse:
    """End the current session. Always succeeds."""
    await manager.logout(credentials)
    response = _json(MessageResponse(message="Logged out successfully"))
    issuer.clear(response)
    return response


@router.get("/me", response_model=ProfileResponse)
async def me(admin: CurrentAdmin) -> ProfileResponse:
    """Profile of the authenticated administrator."""
    return ProfileResponse(admin=_profile(admin))
