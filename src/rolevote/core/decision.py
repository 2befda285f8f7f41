from __future__ import annotations

from enum import Enum
from typing import Any


class Vote(str, Enum):
    """Outcome cast by a single voter.

    Voters may return a ``Vote`` directly or the looser forms accepted by
    :meth:`Vote.coerce`: ``True``/``False`` for a definite vote and anything
    else (usually ``None``) to abstain.
    """

    ALLOW = "allow"
    DENY = "deny"
    ABSTAIN = "abstain"

    @classmethod
    def coerce(cls, value: Any) -> "Vote":
        # only real booleans count; 1/0 and truthy strings abstain
        if type(value) is bool:
            return cls.ALLOW if value else cls.DENY
        if isinstance(value, cls):
            return value
        return cls.ABSTAIN

    @property
    def definite(self) -> bool:
        return self is not Vote.ABSTAIN


__all__ = ["Vote"]
