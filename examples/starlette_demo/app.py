from __future__ import annotations

import logging

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from rolevote import Roles
from rolevote.adapters.starlette import RolesMiddleware, require

logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

roles = Roles()

# anonymous users can only reach the home page; returning False here would
# stop any later voter from being asked
roles.use(lambda request, action: True if action == "access home page" else None)


@roles.voter("access private page")
def moderators(request: Request, action: str):
    if request.query_params.get("role") == "moderator":
        return True


@require(roles, "access home page")
async def home(request: Request):
    return PlainTextResponse("home")


@require(roles, "access private page")
async def private(request: Request):
    return PlainTextResponse("private")


async def whoami(request: Request):
    admin = await request.state.user_can("access admin page")
    return PlainTextResponse("admin" if admin else "someone")


app = Starlette(
    routes=[Route("/", home), Route("/private", private), Route("/whoami", whoami)],
    middleware=[Middleware(RolesMiddleware, roles=roles)],
)

# Run: uvicorn examples.starlette_demo.app:app --reload
