"""
Momentum - Authentication API
=============================

Accounts and sessions: sign-up, sign-in with a daily login streak,
single-use refresh tokens, sign-out and the profile of the caller.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import structlog
from fastapi import APIRouter, HTTPException, status
from passlib.hash import bcrypt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.api.deps import (
    CurrentUser,
    DbSession,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from momentum.core.config import settings
from momentum.core.models import RefreshToken, User
from momentum.core.schemas import (
    MessageResponse,
    RefreshTokenRequest,
    StreakResponse,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)
from momentum.core.streaks import record_login

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ==========================================================================
# Helpers
# ==========================================================================

def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.verify(password, password_hash)


def hash_token(token: str) -> str:
    """Refresh tokens are stored as their SHA-256 digest."""
    return hashlib.sha256(token.encode()).hexdigest()


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def email_taken(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


async def find_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
    """Emails are stored lower-cased."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


def issue_tokens(user: User, db: AsyncSession) -> TokenResponse:
    """Fresh access/refresh pair; the refresh record is added to the session."""
    refresh = create_refresh_token(user.id)
    db.add(RefreshToken(
        id=uuid4(),
        user_id=user.id,
        token_hash=hash_token(refresh),
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        revoked=False,
    ))
    return TokenResponse(
        access_token=create_access_token(user.id),
        refresh_token=refresh,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def is_expired(expires_at: datetime) -> bool:
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < datetime.now(timezone.utc)


# ==========================================================================
# Sign-up / Sign-in
# ==========================================================================

@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    responses={
        201: {"description": "Account created"},
        409: {"description": "Email already registered"},
        422: {"description": "Invalid email or weak password"},
    },
)
async def register(
    data: UserCreate,
    db: DbSession,
) -> UserResponse:
    """Passwords need 8+ characters with upper, lower and a digit."""
    if await find_user_by_email(data.email, db) is not None:
        raise email_taken("Email already registered")

    user = User(
        id=uuid4(),
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        name=data.name,
        is_active=True,
        streak_count=0,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=str(user.id))
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Sign in",
    responses={
        200: {"description": "Token pair"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    data: UserLogin,
    db: DbSession,
) -> TokenResponse:
    """
    Sign in and advance the login streak.

    Unknown email, wrong password and a deactivated account are
    indistinguishable to the caller.
    """
    user = await find_user_by_email(data.email, db)
    if (
        user is None
        or not verify_password(data.password, user.password_hash)
        or not user.is_active
    ):
        raise unauthorized("Invalid credentials")

    tokens = issue_tokens(user, db)
    record_login(user)
    await db.commit()

    logger.info("user_logged_in", user_id=str(user.id), streak=user.streak_count)
    return tokens


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Sign out everywhere",
    responses={
        200: {"description": "Refresh tokens revoked"},
        401: {"description": "Not authenticated"},
    },
)
async def logout(
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Access tokens are stateless and run out on their own."""
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == current_user.id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
    )
    await db.commit()

    logger.info("user_logged_out", user_id=str(current_user.id))
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Rotate tokens",
    responses={
        200: {"description": "New token pair"},
        401: {"description": "Invalid, reused or expired refresh token"},
    },
)
async def refresh_token(
    data: RefreshTokenRequest,
    db: DbSession,
) -> TokenResponse:
    """Refresh tokens are single use; the presented one is revoked."""
    rejected = unauthorized("Invalid or expired refresh token")

    try:
        payload = decode_token(data.refresh_token)
        user_id = UUID(payload.get("sub") or "")
    except (HTTPException, ValueError):
        raise rejected
    if payload.get("type") != "refresh":
        raise rejected

    stored = (
        await db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(data.refresh_token))
        )
    ).scalar_one_or_none()
    if stored is None or stored.revoked or is_expired(stored.expires_at):
        raise rejected

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise rejected

    stored.revoked = True
    tokens = issue_tokens(user, db)
    await db.commit()

    return tokens


# ==========================================================================
# Profile
# ==========================================================================

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    responses={401: {"description": "Not authenticated"}},
)
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update profile",
    responses={
        401: {"description": "Not authenticated"},
        409: {"description": "Email already in use"},
    },
)
async def update_me(
    data: UserUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> UserResponse:
    if data.email and data.email.lower() != current_user.email:
        if await find_user_by_email(data.email, db) is not None:
            raise email_taken("Email already in use")
        current_user.email = data.email.lower()

    if data.name:
        current_user.name = data.name

    await db.commit()
    await db.refresh(current_user)

    return UserResponse.model_validate(current_user)


@router.get(
    "/streak",
    response_model=StreakResponse,
    summary="Login streak",
    responses={401: {"description": "Not authenticated"}},
)
async def get_streak(current_user: CurrentUser) -> StreakResponse:
    return StreakResponse.model_validate(current_user)
