import asyncio
from urllib.parse import parse_qs

import pytest

pytest.importorskip("httpx", reason="Starlette TestClient needs httpx")

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from rolevote import Roles
from rolevote.adapters.starlette import RolesMiddleware, require

DENIED = "Access Denied - You don't have permission to: {}"


class FakeUserMiddleware:
    """Puts an anonymous-ish user and a template locals bag on requests carrying ?role=."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            query = parse_qs(scope.get("query_string", b"").decode())
            if query.get("role"):
                state = scope.setdefault("state", {})
                state["user"] = {}
                state["locals"] = {}
        await self.app(scope, receive, send)


def _role(request, name="role"):
    return request.query_params.get(name)


def build_app():
    roles = Roles()

    @roles.voter("every one")
    async def every_one(request, action):
        return True

    @roles.voter("user or admin")
    async def user_or_admin(request, action):
        await asyncio.sleep(0.001)
        return _role(request) in ("user", "admin")

    @roles.voter("employee")
    def employee(request, action):
        fut = asyncio.get_running_loop().create_future()
        asyncio.get_running_loop().call_later(0.01, fut.set_result, _role(request) == "employee")
        return fut

    roles.use("update", lambda request, action: _role(request) == "user")
    roles.use("user", lambda request, action: _role(request) == "user")
    roles.use("friend", lambda request, action: _role(request) == "shaoshuai0102")
    # override previous friend
    roles.use("friend", lambda request, action: _role(request) == "bar")

    # default
    def by_role(request, action):
        if _role(request) == action:
            return True

    async def by_role2(request, action):
        await asyncio.sleep(0.002)
        if _role(request, "role2") == action:
            return True

    roles.use(by_role)
    roles.use(by_role2)

    @roles.voter("edit")
    async def edit(request, action):
        return (await request.body()).startswith(b"token=ok")

    @require(roles, "every one")
    async def home(request):
        return PlainTextResponse("page for every one can visit")

    @require(roles, "admin")
    async def admin(request):
        return PlainTextResponse("page only for admin can visit")

    @require(roles, "employee")
    async def employee_page(request):
        return PlainTextResponse("page for employee can visit")

    @require(roles, "user")
    def user_page(request):
        return PlainTextResponse("page only for user")

    @require(roles, "update")
    async def profile_update(request):
        return PlainTextResponse("page for user update")

    @require(roles, "user or admin")
    async def profile(request):
        return PlainTextResponse("page can visit by user or admin, current is " + _role(request))

    @require(roles, "friend")
    async def friend(request):
        return PlainTextResponse("The best friend of foo is " + _role(request))

    async def any_page(request: Request):
        if not await request.state.user_can("admin"):
            raise HTTPException(status_code=403)
        return PlainTextResponse("hello admin")

    async def edit_checked_first(request: Request):
        allowed = await request.state.user_can("edit")
        body = await request.body()
        return JSONResponse({"allowed": allowed, "body": body.decode()})

    async def edit_read_first(request: Request):
        body = await request.body()
        allowed = await request.state.user_is("edit")
        return JSONResponse({"allowed": allowed, "body": body.decode()})

    async def me(request: Request):
        user = request.state.user
        return JSONResponse(
            {
                "can_admin": await user["can"]("admin"),
                "is_admin": await user["is_"]("admin"),
                "is_alias": user["is"] is user["can"],
                "mirrored": request.state.locals.get("user") is user,
                "aliases": request.state.user_is is request.state.user_can,
            }
        )

    routes = [
        Route("/", home),
        Route("/admin", admin),
        Route("/admin/employee", employee_page),
        Route("/user", user_page),
        Route("/profile/{id}", profile_update, methods=["POST"]),
        Route("/profile/{id}", profile, methods=["GET"]),
        Route("/friend", friend),
        Route("/any", any_page),
        Route("/me", me),
        Route("/edit/checked-first", edit_checked_first, methods=["POST"]),
        Route("/edit/read-first", edit_read_first, methods=["POST"]),
    ]
    return Starlette(
        routes=routes,
        middleware=[Middleware(FakeUserMiddleware), Middleware(RolesMiddleware, roles=roles)],
    )


@pytest.fixture(scope="module")
def client():
    with TestClient(build_app()) as c:
        yield c


def test_every_one_can_visit_home(client):
    for params in ({}, {"role": "anyone"}, {"role2": "x"}):
        r = client.get("/", params=params)
        assert r.status_code == 200
        assert r.text == "page for every one can visit"


def test_admin_page_through_default_voter(client):
    r = client.get("/admin", params={"role": "admin"})
    assert r.status_code == 200
    assert r.text == "page only for admin can visit"


def test_admin_page_through_second_default_voter(client):
    r = client.get("/admin", params={"role2": "admin"})
    assert r.status_code == 200


def test_admin_page_denied_with_json(client):
    r = client.get("/admin", params={"role": "user"})
    assert r.status_code == 403
    assert r.json() == {"message": DENIED.format("admin")}


def test_denied_with_plain_text_for_html_clients(client):
    r = client.get("/admin", headers={"accept": "text/html"})
    assert r.status_code == 403
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text == DENIED.format("admin")


def test_employee_voter_resolves_future(client):
    assert client.get("/admin/employee", params={"role": "employee"}).status_code == 200
    assert client.get("/admin/employee", params={"role": "user"}).status_code == 403


def test_sync_endpoint_behind_is_guard(client):
    r = client.get("/user", params={"role": "user"})
    assert r.status_code == 200
    assert r.text == "page only for user"
    assert client.get("/user", params={"role": "admin"}).status_code == 403


def test_update_profile(client):
    assert client.post("/profile/1", params={"role": "user"}).status_code == 200
    r = client.post("/profile/1", params={"role": "admin"})
    assert r.status_code == 403
    assert r.json() == {"message": DENIED.format("update")}


def test_user_or_admin(client):
    for role in ("user", "admin"):
        r = client.get("/profile/1", params={"role": role})
        assert r.status_code == 200
        assert r.text == "page can visit by user or admin, current is " + role

    r = client.get("/profile/1", params={"role": "guest"})
    assert r.status_code == 403
    assert r.json() == {"message": DENIED.format("user or admin")}


def test_friend_override(client):
    r = client.get("/friend", params={"role": "bar"})
    assert r.status_code == 200
    assert r.text == "The best friend of foo is bar"
    assert client.get("/friend", params={"role": "shaoshuai0102"}).status_code == 403


def test_ad_hoc_check_inside_handler(client):
    assert client.get("/any", params={"role": "admin"}).text == "hello admin"
    assert client.get("/any", params={"role": "user"}).status_code == 403
    assert client.get("/any").status_code == 403


def test_user_and_locals_get_testers(client):
    r = client.get("/me", params={"role": "admin"})
    assert r.status_code == 200
    assert r.json() == {
        "can_admin": True,
        "is_admin": True,
        "is_alias": True,
        "mirrored": True,
        "aliases": True,
    }

    r = client.get("/me", params={"role": "user"})
    assert r.json()["can_admin"] is False


def test_voter_reading_body_before_the_handler(client):
    r = client.post("/edit/checked-first", content=b"token=ok&title=draft")
    assert r.status_code == 200
    assert r.json() == {"allowed": True, "body": "token=ok&title=draft"}

    r = client.post("/edit/checked-first", content=b"token=bad")
    assert r.json() == {"allowed": False, "body": "token=bad"}


def test_voter_reading_body_after_the_handler(client):
    r = client.post("/edit/read-first", content=b"token=ok")
    assert r.status_code == 200
    assert r.json() == {"allowed": True, "body": "token=ok"}
