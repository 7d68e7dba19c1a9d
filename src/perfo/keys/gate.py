"""Key requirement checks over an already-fetched inventory."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def missing_keys(inventory: Mapping[str, int], requirements: Iterable[tuple[str, int]]) -> dict[str, int]:
    """
    Shortfall per key type.

    ``requirements`` is a sequence of ``(key_type, quantity)`` pairs; repeated
    key types add up. Types absent from ``inventory`` count as zero held.
    """
    needed: dict[str, int] = {}
    for key_type, quantity in requirements:
        needed[key_type] = needed.get(key_type, 0) + quantity

    shortfall = {}
    for key_type, quantity in needed.items():
        held = inventory.get(key_type, 0)
        if held < quantity:
            shortfall[key_type] = quantity - held
    return shortfall


def has_required_keys(inventory: Mapping[str, int], requirements: Iterable[tuple[str, int]]) -> bool:
    """True iff every requirement is covered; an empty requirement list always passes."""
    return not missing_keys(inventory, requirements)
