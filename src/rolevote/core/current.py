from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine import Access

CURRENT_ACCESS: ContextVar["Access | None"] = ContextVar("rolevote_current_access", default=None)


def current_access() -> "Access | None":
    """Return the :class:`Access` bound by the setup middleware for this request, if any."""
    return CURRENT_ACCESS.get()


__all__ = ["CURRENT_ACCESS", "current_access"]
