from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, MutableMapping, Optional, Tuple

from .decision import Vote
from .errors import InvalidArgumentCountError
from .failure import default_failure_handler
from .helpers import maybe_await, run_sync
from .ports import Continuation, FailureHandler, MetricsSink, Voter
from .registry import VoterRegistry

logger = logging.getLogger("rolevote.engine")

Tester = Callable[[str], Awaitable[bool]]
GuardFunction = Callable[[Any, Continuation], Awaitable[Any]]


@dataclass(frozen=True)
class Access:
    """Testers bound to one request context, plus the optional user/locals mirroring.

    ``user_bindings()`` and ``locals_update()`` describe what a pipeline adapter
    should merge onto the current user object and the template locals bag; the
    Access value itself never mutates either.
    """

    context: Any
    can: Tester
    user_property: str = "user"
    user: Any = None
    template_locals: Optional[MutableMapping[str, Any]] = None

    @property
    def is_(self) -> Tester:
        return self.can

    def user_bindings(self) -> Dict[str, Tester]:
        if self.user is None:
            return {}
        return {"can": self.can, "is_": self.can}

    def locals_update(self) -> Dict[str, Any]:
        bag = self.template_locals
        if self.user is None or bag is None or self.user_property in bag:
            return {}
        return {self.user_property: self.user}


class Roles:
    """Voter-based authorization for request pipelines.

    Voters are polled in registration order; the first one returning a definite
    vote (``True``/``False`` or ``Vote.ALLOW``/``Vote.DENY``) decides. When every
    voter abstains, access is denied.

    Example::

        roles = Roles()

        @roles.voter("access private page")
        def moderators(request, action):
            if request.state.user.role == "moderator":
                return True

        roles.use(lambda request, action: action == "access home page")

        app = Starlette(routes=[Route("/", require(roles, "access home page")(home))])
    """

    def __init__(
        self,
        *,
        failure_handler: FailureHandler | None = None,
        user_property: str = "user",
        metrics: MetricsSink | None = None,
    ) -> None:
        self.registry = VoterRegistry()
        self.failure_handler: FailureHandler = failure_handler or default_failure_handler
        self.user_property = user_property or "user"
        self.metrics = metrics

    # -- registration ---------------------------------------------------------

    def use(self, *args: Any) -> None:
        """Register a voter.

        ``use(fn)`` adds a global voter that sees every action;
        ``use(action, fn)`` adds (or replaces) the voter for one named action.
        """
        if len(args) == 1:
            self.registry.register_global(args[0])
        elif len(args) == 2:
            self.registry.register_named(args[0], args[1])
        else:
            raise InvalidArgumentCountError(len(args))

    def voter(self, action: str | None = None) -> Callable[[Voter], Voter]:
        """Decorator form of :meth:`use`."""

        def _register(fn: Voter) -> Voter:
            if action is None:
                self.use(fn)
            else:
                self.use(action, fn)
            return fn

        return _register

    # -- evaluation -----------------------------------------------------------

    async def test(self, context: Any, action: str) -> bool:
        """Resolve whether *context* may perform *action*.

        Exceptions raised by voters propagate unchanged.
        """
        started = time.perf_counter()
        allowed, decided_by = await self._resolve(context, action)
        elapsed = time.perf_counter() - started

        if decided_by is None:
            logger.debug("rolevote: no voter decided %r; denying", action)
        else:
            logger.debug(
                "rolevote: %r %s by voter #%d",
                action,
                "allowed" if allowed else "denied",
                decided_by,
            )
        await self._emit_metrics(allowed, elapsed)
        return allowed

    evaluate = test

    async def _resolve(self, context: Any, action: str) -> Tuple[bool, Optional[int]]:
        # the list is live: voters appended mid-evaluation are still polled
        for index, fn in enumerate(self.registry.voters()):
            vote = Vote.coerce(await maybe_await(fn(context, action)))
            if vote.definite:
                return vote is Vote.ALLOW, index
        return False, None

    def test_sync(self, context: Any, action: str) -> bool:
        """Blocking variant of :meth:`test` for synchronous code."""
        return run_sync(lambda: self.test(context, action))

    # -- guards & testers -----------------------------------------------------

    def can(self, action: str) -> GuardFunction:
        """Build a guard ``async (context, call_next)`` for *action*.

        Allowed requests continue through ``call_next(context)``; denied ones go
        to the failure handler, whose result is returned instead.
        """
        roles = self

        async def guard(context: Any, call_next: Continuation) -> Any:
            if await roles.test(context, action):
                return await maybe_await(call_next(context))
            return await maybe_await(roles.failure_handler(context, action))

        guard.__name__ = f"can[{action}]"
        guard.__qualname__ = guard.__name__
        return guard

    is_ = can

    def tester(self, context: Any) -> Tester:
        """Ad-hoc check bound to *context*; never invokes the failure handler."""

        def check(action: str) -> Awaitable[bool]:
            return self.test(context, action)

        return check

    def bind(
        self,
        context: Any,
        *,
        user: Any = None,
        template_locals: Optional[MutableMapping[str, Any]] = None,
        user_property: str | None = None,
    ) -> Access:
        return Access(
            context=context,
            can=self.tester(context),
            user_property=user_property or self.user_property,
            user=user,
            template_locals=template_locals,
        )

    # -- observability --------------------------------------------------------

    async def _emit_metrics(self, allowed: bool, elapsed: float) -> None:
        if self.metrics is None:
            return
        labels = {"decision": "allow" if allowed else "deny"}
        try:
            await maybe_await(self.metrics.inc("rolevote_decisions_total", labels))
            observe = getattr(self.metrics, "observe", None)
            if observe is not None:
                await maybe_await(observe("rolevote_decision_seconds", elapsed, labels))
        except Exception:
            # never fail a decision because of metrics
            logger.debug("rolevote: metrics sink failed", exc_info=True)


__all__ = ["Roles", "Access", "GuardFunction", "Tester"]
