"""The fixed set of key types and how clients should display them."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class KeyType(str, Enum):
    COPPER = "copper"
    SILVER = "silver"
    GOLDEN = "golden"
    DIAMOND = "diamond"
    RUBY = "ruby"


class KeyDisplay(NamedTuple):
    name: str
    color: str
    emoji: str


KEY_DISPLAY: dict[KeyType, KeyDisplay] = {
    KeyType.COPPER: KeyDisplay("Copper", "text-orange-600", "\U0001F511"),
    KeyType.SILVER: KeyDisplay("Silver", "text-gray-400", "\U0001F5DD\uFE0F"),
    KeyType.GOLDEN: KeyDisplay("Golden", "text-yellow-500", "\U0001F510"),
    KeyType.DIAMOND: KeyDisplay("Diamond", "text-cyan-400", "\U0001F48E"),
    KeyType.RUBY: KeyDisplay("Ruby", "text-red-500", "\u2764\uFE0F"),
}
