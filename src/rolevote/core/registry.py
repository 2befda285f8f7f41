from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, List, Optional, Sequence

from .errors import InvalidActionNameError, InvalidVoterError
from .ports import Voter

logger = logging.getLogger("rolevote.registry")


def ensure_voter(fn: Any) -> None:
    """Raise :class:`InvalidVoterError` unless *fn* can be called as ``fn(context, action)``."""
    if not callable(fn):
        raise InvalidVoterError("Expected fn to be a callable voter taking (context, action)")
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # builtins and some C callables carry no signature metadata
        return
    try:
        sig.bind(None, None)
    except TypeError as e:
        raise InvalidVoterError(
            f"Expected fn to accept (context, action); got signature {sig}"
        ) from e


def ensure_action_name(action: Any) -> None:
    if not isinstance(action, str):
        raise InvalidActionNameError("Expected action to be of type string")
    if action.startswith("/"):
        raise InvalidActionNameError("action can't start with `/`")


class VoterRegistry:
    """Ordered voters plus a name -> voter table for named actions.

    Order matters: the first voter to cast a definite vote decides. A named
    action occupies a single slot in the ordered list (a dispatcher inserted on
    its first registration); later registrations for the same name only swap the
    table entry the dispatcher reads at evaluation time.

    Registration is expected to happen during application setup. Registering
    while decisions are being evaluated concurrently is not synchronized.
    """

    def __init__(self) -> None:
        self._voters: List[Voter] = []
        self._named: Dict[str, Voter] = {}

    # -- registration ---------------------------------------------------------

    def register_global(self, fn: Voter) -> None:
        ensure_voter(fn)
        self._voters.append(fn)

    def register_named(self, action: str, fn: Voter) -> None:
        ensure_action_name(action)
        ensure_voter(fn)

        existed = action in self._named
        # create or override
        self._named[action] = fn
        if existed:
            logger.debug("rolevote: voter for action %r overridden", action)
            return

        self._voters.append(self._dispatcher(action))

    def _dispatcher(self, action: str) -> Voter:
        named = self._named

        def dispatch(context: Any, act: str) -> Any:
            if act != action:
                return None
            # resolved per call so overrides apply to this slot
            return named[action](context, act)

        dispatch.__name__ = f"dispatch[{action}]"
        dispatch.__qualname__ = dispatch.__name__
        return dispatch

    # -- lookup ---------------------------------------------------------------

    def voters(self) -> Sequence[Voter]:
        """Live view of the ordered voter list."""
        return self._voters

    def named(self, action: str) -> Optional[Voter]:
        return self._named.get(action)

    def __len__(self) -> int:
        return len(self._voters)

    def __contains__(self, action: object) -> bool:
        return action in self._named


__all__ = ["VoterRegistry", "ensure_voter", "ensure_action_name"]
