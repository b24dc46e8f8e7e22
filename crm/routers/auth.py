"""
Authentication router — register, login, refresh, logout and profile.

Endpoints:
  POST /auth/register — Create an account (public)
  POST /auth/login    — Exchange email/password for a token pair (public)
  POST /auth/refresh  — Rotate a refresh token into a new pair (public)
  POST /auth/logout   — Invalidate the current refresh token (bearer)
  GET  /auth/me       — Current user's profile (bearer)

Security audit notes:
  - Plaintext passwords and tokens exist only in memory during request
    processing; only their Argon2 hashes reach the database or the logs.
  - No request body logging middleware is installed.
"""

from fastapi import APIRouter, Depends, status

from crm.dependencies import get_current_user, get_session_manager
from crm.models.user import User
from crm.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPairResponse,
    UserProfile,
    UserSummary,
)
from crm.schemas.user import UserResponse
from crm.services.auth_service import SessionManager

router = APIRouter()


@router.post(
    "/register",
    response_model=UserProfile,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Register a new CRM user with the default USER role.

    - **email**: Valid email, not already registered (case-insensitive)
    - **password**: At least 8 characters with lowercase, uppercase, digit
      and one of `!@#$%^&*`
    - **firstName** / **lastName**: 1-50 characters
    """
    return await manager.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and get a token pair",
)
async def login(
    request: LoginRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Authenticate with email and password.

    Five consecutive failures lock the account for 15 minutes. Include the
    access token in subsequent requests:

        Authorization: Bearer <accessToken>
    """
    result = await manager.login(email=request.email, password=request.password)
    return LoginResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.expires_in,
        user=UserSummary.model_validate(result.user),
    )


@router.post(
    "/refresh",
    response_model=TokenPairResponse,
    summary="Refresh access token",
)
async def refresh(
    request: RefreshTokenRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Exchange a refresh token for a new token pair.

    Each refresh token works once: the presented token is invalidated and
    replaced by the one in the response.
    """
    tokens = await manager.refresh_tokens(request.refresh_token)
    return TokenPairResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout user",
)
async def logout(
    user: User = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Invalidate the user's refresh token. Calling it again is harmless."""
    await manager.logout(user.id)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return user
