import json
import uuid
from datetime import datetime, timezone
from typing import Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from simpledough import config
from simpledough.auth import AuthClient
from simpledough.models import LineItem, Order, ProductRef, UserProfile
from simpledough.services import build_services


class FakeRemote:
    """Stands in for the remote orders table."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rows: List[dict] = []

    def insert(self, record: dict) -> dict:
        if self.fail:
            raise RuntimeError("connection refused")
        row = {**record, "id": f"r{len(self.rows) + 1}"}
        self.rows.append(row)
        return row

    def ping(self) -> bool:
        return True


class FakeRoles:
    def __init__(self, admins=()):
        self.admins = set(admins)

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins


class FakeAuthServer:
    """
    Minimal in-memory version of the /auth/v1 endpoints, served through
    httpx.MockTransport.
    """

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}

    def add_user(self, email: str, password: str, **meta) -> dict:
        user = {"id": str(uuid.uuid4()), "email": email, "user_metadata": meta}
        self.users[user["id"]] = user
        self.passwords[email] = password
        return user

    def _by_token(self, request: httpx.Request):
        auth = request.headers.get("Authorization", "")
        return self.users.get(self.tokens.get(auth.removeprefix("Bearer ")))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else {}
        if path == "/auth/v1/signup" and request.method == "POST":
            if body["email"] in self.passwords:
                return httpx.Response(422, json={"msg": "User already registered"})
            return httpx.Response(200, json=self.add_user(body["email"], body["password"], **body.get("data", {})))
        if path == "/auth/v1/token" and request.method == "POST":
            if self.passwords.get(body["email"]) != body["password"]:
                return httpx.Response(400, json={"error_description": "Invalid login credentials"})
            user = next(u for u in self.users.values() if u["email"] == body["email"])
            token = uuid.uuid4().hex
            self.tokens[token] = user["id"]
            return httpx.Response(200, json={"access_token": token, "user": user})
        user = self._by_token(request)
        if user is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        if path == "/auth/v1/user" and request.method == "GET":
            return httpx.Response(200, json=user)
        if path == "/auth/v1/user" and request.method == "PUT":
            user["user_metadata"].update(body.get("data", {}))
            return httpx.Response(200, json=user)
        if path == "/auth/v1/logout" and request.method == "POST":
            self.tokens = {t: uid for t, uid in self.tokens.items() if uid != user["id"]}
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "not found"})


def make_order(order_id: str, user_id: str = "u1", total: float = 150,
               created_at: datetime = None, status: str = "pending",
               items=None, phone: str = "") -> Order:
    if items is None:
        items = [LineItem(product=ProductRef(id="glazed", name="Glazed", price=50), quantity=3, total_price=150)]
    return Order(
        id=order_id,
        user_id=user_id,
        items=items,
        total=total,
        status=status,
        created_at=created_at or datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
        phone=phone,
    )


def seed_orders(services, orders) -> None:
    services.store.write(config.ORDERS_SLOT, [o.model_dump(mode="json") for o in orders])


@pytest.fixture()
def auth_server() -> FakeAuthServer:
    return FakeAuthServer()


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def roles() -> FakeRoles:
    return FakeRoles()


@pytest.fixture()
def services(tmp_path, remote, roles, auth_server):
    auth = AuthClient(base_url="http://auth.test", api_key="anon",
                      transport=httpx.MockTransport(auth_server.handler))
    return build_services(data_dir=tmp_path, remote=remote, auth=auth, roles=roles, tz=timezone.utc)


@pytest.fixture()
def admin() -> UserProfile:
    return UserProfile(id="admin-1", email="owner@simpledough.test", name="Owner", role="admin")


@pytest.fixture()
def customer() -> UserProfile:
    return UserProfile(id="u1", email="ana@example.com", name="Ana", phone="09171234567")


@pytest.fixture()
def api(services):
    """
    TestClient wired to the per-test services. Tests choose the signed-in
    user by setting `api.user`.
    """
    from simpledough.app import app, current_user, get_services

    client = TestClient(app)
    client.user = None

    def _user():
        if client.user is None:
            from fastapi import HTTPException
            raise HTTPException(401, "missing bearer token")
        return client.user

    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[current_user] = _user
    yield client
    app.dependency_overrides.clear()
