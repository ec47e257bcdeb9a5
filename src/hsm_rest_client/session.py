from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class UserTier(IntEnum):
    """
    Privilege tier the server assigns at authentication.

    Tiers are ordered. USER_OBJECT is the baseline: its sessions are bound to a
    single server-side key, so keyed operations may omit the key label. Every
    higher tier must name the key explicitly.
    """

    USER_OBJECT = 0
    USER_SLOT = 1
    ADMIN = 2

    @property
    def requires_key_label(self) -> bool:
        return self > BASELINE_TIER


BASELINE_TIER = UserTier.USER_OBJECT


@dataclass(frozen=True)
class HsmSession:
    """Server-issued session context, fixed for the lifetime of a client."""

    session_id: str
    tier: UserTier

    def __repr__(self) -> str:
        return f"HsmSession(session_id='***', tier={self.tier.name})"
