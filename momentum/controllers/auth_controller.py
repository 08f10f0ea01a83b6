"""
Auth controller: register, login, logout, token refresh, password
reset and email verification.

Everything here is PUBLIC except logout and /me, which require a valid
access token.  Controllers only translate HTTP <-> service calls; all
rules live in ``SessionAuthority``.
"""

import uuid

from fastapi import APIRouter, Depends, status

from momentum.core.dependencies import get_session_authority
from momentum.core.security import get_current_user_id
from momentum.schemas import (
    AccessTokenOut,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    PasswordStrengthOut,
    PasswordStrengthRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairOut,
    UserOut,
    VerifyEmailRequest,
)
from momentum.services.auth_service import AuthResult, SessionAuthority
from momentum.services.password_policy import check_password_strength

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserOut.model_validate(result.user),
        tokens=TokenPairOut(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        ),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Create an account and receive the first access + refresh pair."""
    result = await authority.register(body.name, body.email, body.password)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Authenticate with email + password → receive JWT pair."""
    result = await authority.login(body.email, body.password)
    return _auth_response(result)


@router.post("/refresh", response_model=AccessTokenOut)
async def refresh_token(
    body: RefreshTokenRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Exchange a tracked refresh token for a new access token."""
    result = await authority.refresh(body.refresh_token)
    return AccessTokenOut(access_token=result.access_token, refresh_token=result.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest | None = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Revoke the given refresh token, or every session when none is sent."""
    await authority.logout(user_id, body.refresh_token if body else None)
    return MessageResponse(detail="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    return await authority.get_current_user(user_id)


@router.post("/password-strength", response_model=PasswordStrengthOut)
async def password_strength(body: PasswordStrengthRequest):
    return check_password_strength(body.password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    message = await authority.request_password_reset(body.email)
    return MessageResponse(detail=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    await authority.reset_password(body.token, body.new_password)
    return MessageResponse(detail="Password updated. Please log in again.")


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    body: VerifyEmailRequest,
    authority: SessionAuthority = Depends(get_session_authority),
):
    await authority.verify_email(body.token)
    return MessageResponse(detail="Email verified")
