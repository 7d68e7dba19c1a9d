"""
Key inventory mutations.

Quantities only ever change through single conditional UPDATE statements
(``quantity = quantity + n``), never read-modify-write, so concurrent grants
and deductions cannot lose updates. Every change is mirrored in
``keys_history``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from perfo.clock import utcnow
from perfo.db.dialect import upsert_insert
from perfo.db.models import KeysHistory, UserKey
from perfo.errors import ConflictError, InsufficientKeysError
from perfo.keys.gate import missing_keys
from perfo.keys.key_types import KeyType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_inventory(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Quantity held per key type, zero-filled for every known type."""
    inventory = {kt.value: 0 for kt in KeyType}
    result = await db.execute(select(UserKey.key_type, UserKey.quantity).where(UserKey.user_id == user_id))
    for key_type, quantity in result.all():
        inventory[key_type] = quantity
    return inventory


async def _current_quantity(db: AsyncSession, user_id: int, key_type: str) -> int:
    result = await db.execute(
        select(UserKey.quantity).where(UserKey.user_id == user_id, UserKey.key_type == key_type)
    )
    return result.scalar_one_or_none() or 0


async def _record(
    db: AsyncSession, user_id: int, key_type: str, quantity: int, new_total: int, kind: str, reason: str | None
) -> None:
    db.add(
        KeysHistory(
            user_id=user_id,
            key_type=key_type,
            quantity=quantity,
            new_total=new_total,
            type=kind,
            reason=reason,
            created_at=utcnow(),
        )
    )


async def grant_keys(
    db: AsyncSession,
    user_id: int,
    key_type: str,
    quantity: int,
    *,
    kind: str = "admin_grant",
    reason: str | None = None,
) -> int:
    """
    Add ``quantity`` keys of ``key_type`` to a user. Returns the new total.

    The inventory row is created on first grant with a single upsert, so two
    concurrent first grants both land.
    """
    if quantity <= 0:
        msg = "Quantity must be positive"
        raise ValueError(msg)
    key_type = KeyType(key_type).value

    insert = upsert_insert(db)
    stmt = insert(UserKey).values(user_id=user_id, key_type=key_type, quantity=quantity)
    await db.execute(
        stmt.on_conflict_do_update(
            index_elements=[UserKey.user_id, UserKey.key_type],
            set_={"quantity": UserKey.quantity + quantity},
        )
    )

    new_total = await _current_quantity(db, user_id, key_type)
    await _record(db, user_id, key_type, quantity, new_total, kind, reason)
    await db.flush()
    logger.info("keys_granted", user_id=user_id, key_type=key_type, quantity=quantity, new_total=new_total, kind=kind)
    return new_total


async def deduct_keys(
    db: AsyncSession,
    user_id: int,
    key_type: str,
    quantity: int,
    *,
    kind: str = "reward_redemption",
    reason: str | None = None,
) -> int:
    """
    Remove keys, refusing to go below zero. Returns the new total.

    Raises:
        ConflictError: the row no longer holds ``quantity`` keys (another
            request spent them after the caller's check).
    """
    result = await db.execute(
        update(UserKey)
        .where(
            UserKey.user_id == user_id,
            UserKey.key_type == key_type,
            UserKey.quantity >= quantity,
        )
        .values(quantity=UserKey.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = f"Not enough {key_type} keys any more; refresh and try again"
        raise ConflictError(msg)

    new_total = await _current_quantity(db, user_id, key_type)
    await _record(db, user_id, key_type, -quantity, new_total, kind, reason)
    await db.flush()
    return new_total


async def consume_requirements(
    db: AsyncSession,
    user_id: int,
    requirements: Iterable[tuple[str, int]],
    *,
    reason: str | None = None,
) -> None:
    """
    Check then deduct a whole requirement list.

    Raises:
        InsufficientKeysError: the user's inventory doesn't cover the list.
        ConflictError: the inventory changed between check and deduction.
    """
    requirements = list(requirements)
    if not requirements:
        return
    missing = missing_keys(await get_inventory(db, user_id), requirements)
    if missing:
        raise InsufficientKeysError(missing)
    for key_type, quantity in requirements:
        await deduct_keys(db, user_id, key_type, quantity, reason=reason)


async def get_keys_history(db: AsyncSession, user_id: int, limit: int = 50) -> list[KeysHistory]:
    result = await db.execute(
        select(KeysHistory)
        .where(KeysHistory.user_id == user_id)
        .order_by(KeysHistory.created_at.desc(), KeysHistory.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
