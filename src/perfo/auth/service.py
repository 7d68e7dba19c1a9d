"""
Authentication business logic.

Handles account creation, login with lockout, refresh-token rotation and the
email verification / password reset token flows.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from perfo.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from perfo.clock import as_utc, utcnow
from perfo.config import get_settings
from perfo.db.models import (
    EmailVerificationToken,
    PasswordResetToken,
    RefreshToken,
    User,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username_normalized == username.strip().lower()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    username: str,
    full_name: str | None = None,
) -> User:
    """
    Create an account with the ``user`` role.

    Emails listed in ``bootstrap_admin_emails`` are created as admins so a
    fresh deployment has someone able to approve requests.

    Raises:
        PasswordStrengthError: weak password.
        ValueError: email or username already taken.
    """
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ValueError(msg)
    if await get_user_by_username(db, username) is not None:
        msg = "Username already taken"
        raise ValueError(msg)

    settings = get_settings()
    normalized_email = email.lower().strip()
    admins = {e.lower().strip() for e in settings.bootstrap_admin_emails}
    now = utcnow()

    user = User(
        email=normalized_email,
        password_hash=hash_password(password),
        username=username.strip(),
        username_normalized=username.strip().lower(),
        full_name=full_name,
        role="admin" if normalized_email in admins else "user",
        points=0,
        email_verified=False,
        created_at=now,
        last_login=now,
        login_count=1,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, role=user.role)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(
    db: AsyncSession,
    redis: Redis,
    email: str,
    password: str,
) -> User:
    """
    Check credentials and update login metadata.

    Raises:
        ValueError: unknown email or wrong password (same message for both).
        PermissionError: account locked out or blocked.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "Invalid email or password"
        raise ValueError(msg)

    if await check_account_lockout(redis, user.id):
        msg = "Account temporarily locked. Try again later."
        raise PermissionError(msg)

    if user.is_blocked:
        msg = "Account is blocked"
        raise PermissionError(msg)

    if not verify_password(password, user.password_hash or ""):
        attempts = await increment_failed_login(redis, user.id)
        logger.info("login_failed", user_id=user.id, attempts=attempts)
        msg = "Invalid email or password"
        raise ValueError(msg)

    await clear_failed_login(redis, user.id)

    user.last_login = utcnow()
    user.login_count = (user.login_count or 0) + 1
    if user.password_hash and check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Account lockout
# ---------------------------------------------------------------------------


def _lockout_key(user_id: int) -> str:
    return f"perfo:login_attempts:{user_id}"


async def check_account_lockout(redis: Redis, user_id: int) -> bool:
    settings = get_settings()
    count = await redis.get(_lockout_key(user_id))
    if count is None:
        return False
    return int(count) >= settings.account_lockout_threshold


async def increment_failed_login(redis: Redis, user_id: int) -> int:
    """Bump the failure counter; the first failure starts the lockout window."""
    settings = get_settings()
    key = _lockout_key(user_id)
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, settings.account_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis, user_id: int) -> None:
    await redis.delete(_lockout_key(user_id))


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: int,
    token_id: str,
    token_hash: str,
    expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    token = RefreshToken(
        id=token_id,
        user_id=user_id,
        token_hash=token_hash,
        issued_at=utcnow(),
        expires_at=expires_at,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(token)
    await db.flush()
    return token


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    result = await db.execute(select(RefreshToken).where(RefreshToken.id == token_id))
    return result.scalar_one_or_none()


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    new_token_id: str,
    new_token_hash: str,
    new_expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RefreshToken:
    """Revoke ``old_token`` and store its successor."""
    old_token.is_revoked = True
    old_token.revoked_at = utcnow()
    old_token.replaced_by = new_token_id
    return await store_refresh_token(
        db,
        user_id=old_token.user_id,
        token_id=new_token_id,
        token_hash=new_token_hash,
        expires_at=new_expires_at,
        ip_address=ip_address,
        user_agent=user_agent,
    )


async def revoke_refresh_token(db: AsyncSession, token_id: str) -> bool:
    """Revoke one refresh token. Returns False if it does not exist."""
    token = await get_refresh_token(db, token_id)
    if token is None:
        return False
    token.is_revoked = True
    token.revoked_at = utcnow()
    await db.flush()
    return True


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    """Revoke every live refresh token of a user. Returns how many were revoked."""
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .where(RefreshToken.is_revoked == False)  # noqa: E712
        .values(is_revoked=True, revoked_at=utcnow())
    )
    await db.flush()
    return result.rowcount  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Email verification tokens
# ---------------------------------------------------------------------------


async def create_verification_token(db: AsyncSession, user_id: int) -> str:
    """
    Issue a fresh verification token, invalidating older unused ones.

    Only the SHA-256 of the token is stored; the raw value goes in the email.
    """
    settings = get_settings()
    raw_token = secrets.token_urlsafe(48)
    now = utcnow()

    await db.execute(
        update(EmailVerificationToken)
        .where(EmailVerificationToken.user_id == user_id)
        .where(EmailVerificationToken.used_at == None)  # noqa: E711
        .values(used_at=now)
    )
    db.add(
        EmailVerificationToken(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            created_at=now,
            expires_at=now + timedelta(hours=settings.email_verification_token_ttl_hours),
        )
    )
    await db.flush()
    return raw_token


async def verify_email_token(db: AsyncSession, raw_token: str) -> int:
    """
    Consume a verification token and mark the owner's email verified.

    Raises:
        ValueError: unknown, used or expired token.
    """
    result = await db.execute(
        select(EmailVerificationToken).where(EmailVerificationToken.token_hash == hash_token(raw_token))
    )
    token = result.scalar_one_or_none()

    if token is None:
        msg = "Invalid or expired verification token"
        raise ValueError(msg)
    if token.used_at is not None:
        msg = "Token has already been used"
        raise ValueError(msg)
    if as_utc(token.expires_at) < utcnow():
        msg = "Verification token has expired"
        raise ValueError(msg)

    token.used_at = utcnow()
    await db.execute(update(User).where(User.id == token.user_id).values(email_verified=True))
    await db.flush()
    logger.info("email_verified", user_id=token.user_id)
    return token.user_id


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


async def create_reset_token(db: AsyncSession, user_id: int, ip_address: str | None = None) -> str:
    settings = get_settings()
    raw_token = secrets.token_urlsafe(48)
    now = utcnow()

    await db.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.user_id == user_id)
        .where(PasswordResetToken.used_at == None)  # noqa: E711
        .values(used_at=now)
    )
    db.add(
        PasswordResetToken(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            created_at=now,
            expires_at=now + timedelta(minutes=settings.password_reset_token_ttl_minutes),
            ip_address=ip_address,
        )
    )
    await db.flush()
    return raw_token


async def verify_reset_token(db: AsyncSession, raw_token: str) -> int:
    """
    Consume a password reset token and return its user id.

    Raises:
        ValueError: unknown, used or expired token.
    """
    result = await db.execute(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(raw_token))
    )
    token = result.scalar_one_or_none()

    if token is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)
    if token.used_at is not None:
        msg = "Token has already been used"
        raise ValueError(msg)
    if as_utc(token.expires_at) < utcnow():
        msg = "Reset token has expired"
        raise ValueError(msg)

    token.used_at = utcnow()
    await db.flush()
    return token.user_id


async def set_password(db: AsyncSession, user: User, new_password: str) -> None:
    """Validate, hash and store a new password, then end all sessions."""
    validate_password_strength(new_password)
    user.password_hash = hash_password(new_password)
    revoked = await revoke_all_tokens(db, user.id)
    logger.info("password_changed", user_id=user.id, sessions_revoked=revoked)
