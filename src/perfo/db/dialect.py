"""Dialect-aware statement helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects import postgresql, sqlite

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS: dict[str, Any] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(db: AsyncSession) -> Any:  # noqa: ANN401
    """Return the ``insert`` construct supporting ``on_conflict_do_*`` for the session's backend."""
    name = db.bind.dialect.name
    try:
        return _INSERTS[name]
    except KeyError:
        msg = f"Upserts are not supported on {name}"
        raise RuntimeError(msg) from None
