"""Authentication router: /api/v1/auth/*."""

from __future__ import annotations

import uuid
from datetime import timedelta

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_user
from perfo.auth.jwt import create_access_token, create_refresh_token, verify_token
from perfo.auth.password import PasswordStrengthError, verify_password
from perfo.auth.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from perfo.auth.service import (
    authenticate_user,
    create_reset_token,
    create_verification_token,
    get_refresh_token,
    get_user_by_email,
    get_user_by_id,
    hash_token,
    register_user,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    set_password,
    store_refresh_token,
    verify_email_token,
    verify_reset_token,
)
from perfo.clock import as_utc, utcnow
from perfo.config import get_settings
from perfo.database import get_session
from perfo.db.models import User
from perfo.email.service import get_email_service
from perfo.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

RESEND_COOLDOWN_SECONDS = 300


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def _issue_tokens(db: AsyncSession, user: User, request: Request) -> TokenResponse:
    """Mint an access/refresh pair and persist the refresh token's hash."""
    settings = get_settings()
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.role)
    refresh_token = create_refresh_token(user.id, token_id=token_id)

    await store_refresh_token(
        db,
        user_id=user.id,
        token_id=token_id,
        token_hash=hash_token(refresh_token),
        expires_at=utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


def _verify_url(raw_token: str) -> str:
    return f"{get_settings().frontend_base_url}/auth/verify-email?token={raw_token}"


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    try:
        user = await register_user(
            db,
            email=body.email,
            password=body.password,
            username=body.username,
            full_name=body.full_name,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    try:
        raw_token = await create_verification_token(db, user.id)
        await get_email_service().send_template(
            to=user.email,
            template_name="welcome",
            context={"username": user.username, "verify_url": _verify_url(raw_token)},
        )
    except Exception:
        # A broken mail relay must not block sign-up; the user can resend later.
        logger.exception("verification_email_failed", user_id=user.id)

    return await _issue_tokens(db, user, request)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> TokenResponse:
    try:
        user = await authenticate_user(db, redis, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PermissionError as e:
        status = 429 if "temporarily locked" in str(e).lower() else 403
        raise HTTPException(status_code=status, detail=str(e)) from e

    logger.info("user_logged_in", user_id=user.id)
    return await _issue_tokens(db, user, request)


# ---------------------------------------------------------------------------
# Email verification & password flows
# ---------------------------------------------------------------------------


@router.post("/verify-email")
async def verify_email_endpoint(
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    try:
        await verify_email_token(db, body.token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"status": "email_verified"}


@router.post("/resend-verification")
async def resend_verification(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> dict[str, str]:
    """Send a new verification link; one request per five minutes."""
    if user.email_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")

    cooldown_key = f"perfo:resend_cooldown:{user.id}"
    if await redis.get(cooldown_key):
        raise HTTPException(status_code=429, detail="Please wait before requesting another verification email")
    await redis.set(cooldown_key, "1", ex=RESEND_COOLDOWN_SECONDS)

    raw_token = await create_verification_token(db, user.id)
    await db.commit()
    await get_email_service().send_template(
        to=user.email,
        template_name="verify_email",
        context={"verify_url": _verify_url(raw_token)},
    )
    return {"status": "verification_email_sent"}


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Always answers 200 so the endpoint cannot be used to probe for accounts."""
    user = await get_user_by_email(db, body.email)
    if user is not None:
        try:
            raw_token = await create_reset_token(db, user.id, ip_address=_client_ip(request))
            await db.commit()
            settings = get_settings()
            await get_email_service().send_template(
                to=user.email,
                template_name="password_reset",
                context={
                    "reset_url": f"{settings.frontend_base_url}/auth/reset-password?token={raw_token}",
                    "expires_minutes": settings.password_reset_token_ttl_minutes,
                },
            )
        except Exception:
            logger.exception("password_reset_email_failed", user_id=user.id)

    return {"status": "If that email exists, a reset link has been sent."}


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    try:
        user_id = await verify_reset_token(db, body.token)
        user = await get_user_by_id(db, user_id)
        if user is None:
            msg = "User not found"
            raise ValueError(msg)
        await set_password(db, user, body.new_password)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e

    await db.commit()
    return {"status": "password_reset_complete"}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    if not verify_password(body.current_password, user.password_hash or ""):
        raise HTTPException(status_code=401, detail="Current password is incorrect")
    try:
        await set_password(db, user, body.new_password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    try:
        await get_email_service().send_template(
            to=user.email,
            template_name="password_changed",
            context={"username": user.username},
        )
    except Exception:
        logger.exception("password_changed_email_failed", user_id=user.id)

    return {"status": "password_changed"}


# ---------------------------------------------------------------------------
# Token management
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate a refresh token. Presenting a revoked one revokes the whole family."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    jti = payload.get("jti")
    old_token = await get_refresh_token(db, jti) if jti else None
    if old_token is None or old_token.token_hash != hash_token(body.refresh_token):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if old_token.is_revoked:
        await revoke_all_tokens(db, old_token.user_id)
        await db.commit()
        logger.warning("refresh_token_reuse", user_id=old_token.user_id)
        raise HTTPException(status_code=401, detail="Refresh token has been revoked")
    if as_utc(old_token.expires_at) < utcnow():
        raise HTTPException(status_code=401, detail="Refresh token has expired")

    user = await get_user_by_id(db, old_token.user_id)
    if user is None or user.is_blocked:
        raise HTTPException(status_code=401, detail="User not found")

    settings = get_settings()
    new_token_id = str(uuid.uuid4())
    new_refresh = create_refresh_token(user.id, token_id=new_token_id)
    await rotate_refresh_token(
        db,
        old_token=old_token,
        new_token_id=new_token_id,
        new_token_hash=hash_token(new_refresh),
        new_expires_at=utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days),
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()

    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        refresh_token=new_refresh,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout")
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Revoke one refresh token. Invalid tokens are accepted silently."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError:
        return {"status": "logged_out"}

    jti = payload.get("jti")
    if jti and await revoke_refresh_token(db, jti):
        await db.commit()
    return {"status": "logged_out"}


@router.post("/logout-all")
async def logout_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    count = await revoke_all_tokens(db, user.id)
    await db.commit()
    return {"status": "all_sessions_revoked", "revoked_count": count}
