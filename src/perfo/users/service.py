"""
User profile, administration and the points balance.

The balance is only changed by ``adjust_points``: one conditional UPDATE that
refuses to take the balance below zero, plus a ``points_history`` row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from perfo.auth.service import get_user_by_id, get_user_by_username
from perfo.clock import utcnow
from perfo.db.models import PointsHistory, User
from perfo.errors import InsufficientPointsError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ROLES = frozenset({"admin", "user"})


async def require_user(db: AsyncSession, user_id: int) -> User:
    """Like get_user_by_id but raises LookupError instead of returning None."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "User not found"
        raise LookupError(msg)
    return user


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


async def adjust_points(
    db: AsyncSession,
    user_id: int,
    delta: int,
    *,
    kind: str,
    reason: str | None = None,
    task_id: int | None = None,
) -> int:
    """
    Atomically add ``delta`` (may be negative) to a user's balance.

    Returns the new balance.

    Raises:
        LookupError: no such user.
        InsufficientPointsError: the balance would drop below zero.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.points + delta >= 0)
        .values(points=User.points + delta)
        .execution_options(synchronize_session=False)
    )
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        msg = "User not found"
        raise LookupError(msg)
    if result.rowcount == 0:
        msg = f"Insufficient points: balance {user.points}, change {delta}"
        raise InsufficientPointsError(msg)

    new_total = user.points
    db.add(
        PointsHistory(
            user_id=user_id,
            points=delta,
            new_total=new_total,
            type=kind,
            reason=reason,
            task_id=task_id,
            created_at=utcnow(),
        )
    )
    await db.flush()

    logger.info("points_adjusted", user_id=user_id, delta=delta, new_total=new_total, kind=kind)
    return new_total


async def get_points_history(db: AsyncSession, user_id: int, limit: int = 50) -> list[PointsHistory]:
    result = await db.execute(
        select(PointsHistory)
        .where(PointsHistory.user_id == user_id)
        .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def update_profile(
    db: AsyncSession,
    user: User,
    *,
    username: str | None = None,
    full_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """
    Apply the non-None fields.

    Raises:
        ValueError: username taken by someone else.
    """
    if username is not None and username.strip().lower() != user.username_normalized:
        existing = await get_user_by_username(db, username)
        if existing is not None and existing.id != user.id:
            msg = "Username already taken"
            raise ValueError(msg)
        user.username = username.strip()
        user.username_normalized = username.strip().lower()
    if full_name is not None:
        user.full_name = full_name
    if avatar_url is not None:
        user.avatar_url = avatar_url
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at, User.id))
    return list(result.scalars().all())


async def set_role(db: AsyncSession, actor: User, user_id: int, role: str) -> User:
    """
    Change a user's role.

    Raises:
        ValueError: unknown role, or an admin demoting themself.
        LookupError: no such user.
    """
    if role not in ROLES:
        msg = f"Unknown role: {role}"
        raise ValueError(msg)
    if actor.id == user_id and role != "admin":
        msg = "Admins cannot remove their own admin role"
        raise ValueError(msg)
    user = await require_user(db, user_id)
    user.role = role
    await db.flush()
    logger.info("user_role_changed", user_id=user_id, role=role, by=actor.id)
    return user


async def set_blocked(db: AsyncSession, actor: User, user_id: int, blocked: bool) -> User:
    """
    Block or unblock a user.

    Raises:
        ValueError: an admin blocking themself.
        LookupError: no such user.
    """
    if actor.id == user_id and blocked:
        msg = "Admins cannot block themselves"
        raise ValueError(msg)
    user = await require_user(db, user_id)
    user.is_blocked = blocked
    await db.flush()
    logger.info("user_block_changed", user_id=user_id, blocked=blocked, by=actor.id)
    return user


async def grant_points(db: AsyncSession, actor: User, user_id: int, points: int, reason: str) -> int:
    """Admin gift (or, with a negative amount, correction) of points."""
    if points == 0:
        msg = "Points must be non-zero"
        raise ValueError(msg)
    new_total = await adjust_points(db, user_id, points, kind="admin_grant", reason=reason)
    logger.info("points_granted", user_id=user_id, points=points, by=actor.id)
    return new_total


async def get_leaderboard(db: AsyncSession, limit: int = 50) -> list[User]:
    """Regular, non-blocked users by points, highest first."""
    result = await db.execute(
        select(User)
        .where(User.role == "user", User.is_blocked == False)  # noqa: E712
        .order_by(User.points.desc(), User.username_normalized)
        .limit(limit)
    )
    return list(result.scalars().all())
