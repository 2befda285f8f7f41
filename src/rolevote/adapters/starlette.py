from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, List, MutableMapping, Optional

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.current import CURRENT_ACCESS
from ..core.engine import Access, Roles

logger = logging.getLogger("rolevote.adapters.starlette")


def _lookup_user(scope: Scope, state: MutableMapping[str, Any], user_property: str) -> Any:
    # request.state first, then the scope (where AuthenticationMiddleware puts "user")
    user = state.get(user_property)
    if user is None:
        user = scope.get(user_property)
    return user


def _attach_to_user(access: Access) -> None:
    bindings = access.user_bindings()
    if not bindings:
        return
    user = access.user
    if isinstance(user, MutableMapping):
        # keys are not bound by keyword rules, so the plain "is" alias is usable here
        user.update(bindings)
        user["is"] = access.can
        return
    try:
        for name, fn in bindings.items():
            setattr(user, name, fn)
    except (AttributeError, TypeError):
        logger.debug(
            "rolevote: cannot attach testers to %s user object", type(user).__name__, exc_info=True
        )


class _ReplayableReceive:
    """Shares one ASGI ``receive`` between several readers.

    Every ``http.request`` message pulled from the server is kept, and each
    reader replays the kept messages before waiting on the server. Voters that
    read the body through the middleware's request and the endpoint that reads
    it afterwards (or before) therefore both see the full body. Kept messages
    live as long as the request.
    """

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._messages: List[Message] = []

    def reader(self) -> Receive:
        cursor = 0

        async def receive() -> Message:
            nonlocal cursor
            if cursor < len(self._messages):
                message = self._messages[cursor]
                cursor += 1
                return message
            message = await self._receive()
            if message.get("type") == "http.request":
                self._messages.append(message)
                cursor = len(self._messages)
            return message

        return receive


class RolesMiddleware:
    """ASGI middleware exposing ad-hoc permission checks on every HTTP request.

    After it runs, handlers can ``await request.state.user_can("action")``
    (``user_is`` is an alias). When a current user is present under
    ``user_property`` it also gains ``can``/``is_`` testers (plus an ``"is"``
    key for mapping users), and is mirrored into ``request.state.locals`` for
    template layers when that mapping exists.
    """

    def __init__(self, app: ASGIApp, *, roles: Roles, user_property: str | None = None) -> None:
        self.app = app
        self.roles = roles
        self.user_property = user_property or roles.user_property

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        locals_bag = state.get("locals")
        if not isinstance(locals_bag, MutableMapping):
            locals_bag = None

        # voters and the endpoint hold different Request objects over one scope
        shared = _ReplayableReceive(receive)
        access = self.roles.bind(
            Request(scope, shared.reader()),
            user=_lookup_user(scope, state, self.user_property),
            template_locals=locals_bag,
            user_property=self.user_property,
        )

        state["user_can"] = state["user_is"] = access.can
        _attach_to_user(access)
        if locals_bag is not None:
            locals_bag.update(access.locals_update())

        token = CURRENT_ACCESS.set(access)
        try:
            await self.app(scope, shared.reader(), send)
        finally:
            CURRENT_ACCESS.reset(token)


def _as_response(result: Any, roles: Roles) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        # failure handlers that only log or record still reject the request
        return Response(status_code=403)
    if isinstance(result, str):
        return PlainTextResponse(result, status_code=403)
    handler = roles.failure_handler
    name = getattr(handler, "__qualname__", None) or type(handler).__name__
    raise TypeError(
        f"failure handler {name} returned {type(result).__name__}; "
        "expected a starlette Response, a str or None"
    )


def require(roles: Roles, action: str) -> Callable[[Callable[..., Any]], Callable[[Request], Awaitable[Any]]]:
    """Decorate a Starlette endpoint so it only runs when *action* is allowed.

    Sync endpoints run in the threadpool, as Starlette would run them.
    """
    guard = roles.can(action)

    def decorator(handler: Callable[..., Any]) -> Callable[[Request], Awaitable[Any]]:
        is_async = inspect.iscoroutinefunction(handler)

        @functools.wraps(handler)
        async def endpoint(request: Request) -> Any:
            reached = False

            async def call_next(req: Request) -> Any:
                nonlocal reached
                reached = True
                if is_async:
                    return await handler(req)
                return await run_in_threadpool(handler, req)

            result = await guard(request, call_next)
            return result if reached else _as_response(result, roles)

        return endpoint

    return decorator


def guard_middleware(roles: Roles, action: str) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Return a ``BaseHTTPMiddleware`` dispatch function guarding every route.

    Usage: ``Middleware(BaseHTTPMiddleware, dispatch=guard_middleware(roles, "api"))``.
    """
    guard = roles.can(action)

    async def dispatch(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        result: Optional[Any] = await guard(request, call_next)
        return _as_response(result, roles)

    return dispatch


__all__ = ["RolesMiddleware", "require", "guard_middleware"]
