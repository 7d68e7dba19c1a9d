"""
Reward catalogue and redemption.

Redemption spends points and keys in the caller's transaction: the balance
and inventory are checked first (so a plain shortfall is a validation error
with no side effects), then each deduction is a conditional UPDATE. If a
concurrent request spent the same points or keys in between, the
conditional UPDATE matches no row and the whole redemption fails with
``ConflictError``; the router rolls the transaction back.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from perfo.clock import utcnow
from perfo.config import get_settings
from perfo.db.models import Redemption, Reward, RewardKeyRequirement, User
from perfo.errors import ConflictError, InsufficientKeysError, InsufficientPointsError
from perfo.keys.gate import has_required_keys, missing_keys
from perfo.keys.service import consume_requirements, get_inventory
from perfo.users.service import adjust_points

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MIN_APPROVAL_KEY_LENGTH = 3

_FIELD_MAP = {"point_cost": "points_cost", "approval_key_required": "requires_approval"}


def _requirements(reward: Reward) -> list[tuple[str, int]]:
    return [(r.key_type, r.quantity) for r in reward.key_requirements]


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


async def list_rewards(db: AsyncSession) -> list[Reward]:
    result = await db.execute(select(Reward).order_by(Reward.points_cost, Reward.id))
    return list(result.scalars().all())


async def get_reward(db: AsyncSession, reward_id: int) -> Reward:
    """Raises LookupError if the reward does not exist."""
    reward = await db.get(Reward, reward_id)
    if reward is None:
        msg = "Reward not found"
        raise LookupError(msg)
    return reward


async def create_reward(
    db: AsyncSession,
    creator: User,
    fields: dict[str, Any],
    key_requirements: Iterable[tuple[str, int]] = (),
) -> Reward:
    reward = Reward(
        **{_FIELD_MAP.get(k, k): v for k, v in fields.items()},
        created_by=creator.id,
        created_at=utcnow(),
    )
    reward.key_requirements = [RewardKeyRequirement(key_type=kt, quantity=q) for kt, q in key_requirements]
    db.add(reward)
    await db.flush()
    logger.info("reward_created", reward_id=reward.id, by=creator.id)
    return reward


async def update_reward(db: AsyncSession, reward_id: int, changes: dict[str, Any]) -> Reward:
    reward = await get_reward(db, reward_id)
    for key, value in changes.items():
        setattr(reward, _FIELD_MAP.get(key, key), value)
    await db.flush()
    return reward


async def delete_reward(db: AsyncSession, reward_id: int) -> None:
    reward = await get_reward(db, reward_id)
    await db.delete(reward)
    await db.flush()
    logger.info("reward_deleted", reward_id=reward_id)


async def set_key_requirements(
    db: AsyncSession, reward_id: int, key_requirements: Iterable[tuple[str, int]]
) -> Reward:
    reward = await get_reward(db, reward_id)
    reward.key_requirements = [RewardKeyRequirement(key_type=kt, quantity=q) for kt, q in key_requirements]
    await db.flush()
    return reward


def can_redeem(reward: Reward, balance: int, inventory: dict[str, int]) -> bool:
    """Display hint only; redemption re-checks under the conditional updates."""
    return balance >= reward.points_cost and has_required_keys(inventory, _requirements(reward))


# ---------------------------------------------------------------------------
# Redemption
# ---------------------------------------------------------------------------


def check_approval_key(reward: Reward, approval_key: str | None) -> None:
    """
    Gate rewards flagged ``requires_approval``.

    Raises:
        ValueError: no key, or one shorter than three characters.
        PermissionError: a deployment key is configured and this one differs.
    """
    if not reward.requires_approval:
        return
    key = (approval_key or "").strip()
    if len(key) < MIN_APPROVAL_KEY_LENGTH:
        msg = "This reward requires a valid approval key"
        raise ValueError(msg)
    expected = get_settings().reward_approval_key
    if expected and not secrets.compare_digest(key.encode(), expected.encode()):
        msg = "Invalid approval key"
        raise PermissionError(msg)


async def redeem_reward(
    db: AsyncSession,
    user: User,
    reward_id: int,
    approval_key: str | None = None,
) -> tuple[Redemption, int]:
    """
    Spend points (and required keys) on a reward.

    Returns the redemption and the user's new balance.

    Raises:
        LookupError: unknown reward.
        ValueError: missing approval key.
        PermissionError: wrong approval key.
        InsufficientPointsError / InsufficientKeysError: balance too low.
        ConflictError: a concurrent spend won the race.
    """
    reward = await get_reward(db, reward_id)
    check_approval_key(reward, approval_key)

    balance = (await db.execute(select(User.points).where(User.id == user.id))).scalar_one()
    if balance < reward.points_cost:
        msg = f"Not enough points to redeem this reward: have {balance}, need {reward.points_cost}"
        raise InsufficientPointsError(msg)

    requirements = _requirements(reward)
    missing = missing_keys(await get_inventory(db, user.id), requirements)
    if missing:
        raise InsufficientKeysError(missing)

    reason = f"Redeemed reward: {reward.title}"
    try:
        new_balance = await adjust_points(db, user.id, -reward.points_cost, kind="reward_redemption", reason=reason)
    except InsufficientPointsError as e:
        msg = "Balance changed during redemption; refresh and try again"
        raise ConflictError(msg) from e
    await consume_requirements(db, user.id, requirements, reason=reason)

    redemption = Redemption(
        user_id=user.id,
        reward_id=reward.id,
        reward_title=reward.title,
        points_cost=reward.points_cost,
        created_at=utcnow(),
    )
    db.add(redemption)
    await db.flush()
    logger.info("reward_redeemed", user_id=user.id, reward_id=reward.id, cost=reward.points_cost, balance=new_balance)
    return redemption, new_balance


async def get_redemptions(db: AsyncSession, user_id: int) -> list[Redemption]:
    result = await db.execute(
        select(Redemption)
        .where(Redemption.user_id == user_id)
        .order_by(Redemption.created_at.desc(), Redemption.id.desc())
    )
    return list(result.scalars().all())


async def count_redemptions(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(Redemption.id)).where(Redemption.user_id == user_id))
    return result.scalar_one()
