"""Domain exceptions raised by the service layer.

Services raise plain ``ValueError`` / ``LookupError`` / ``PermissionError``
(or these subclasses); routers translate them into HTTP status codes.
"""

from __future__ import annotations


class InsufficientPointsError(ValueError):
    """Balance is lower than the amount being spent or deducted."""


class InsufficientKeysError(ValueError):
    """User holds fewer keys of some type than an action requires."""

    def __init__(self, missing: dict[str, int]) -> None:
        self.missing = missing
        parts = ", ".join(f"{qty} {key_type}" for key_type, qty in missing.items())
        super().__init__(f"Insufficient keys: missing {parts}")


class PrayerNotOpenError(ValueError):
    """Prayer window has not started yet."""


class ConflictError(Exception):
    """A conditional write lost a race or hit an already-decided record."""
