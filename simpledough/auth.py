"""
Sessions and profiles.

Identity lives in a hosted GoTrue-style auth API; admin membership lives in
the `user_roles` relation. Auth failures are hard failures: nothing here
degrades to a local-only account.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from . import config
from .errors import AuthError, NotAuthenticated
from .models import Order, OrderIn, PersistResult, SessionOut, UserProfile
from .repository import OrderRepository
from .storage import LocalStore

logger = logging.getLogger(__name__)


class AuthClient:
    """Thin client for the auth REST endpoints under /auth/v1."""

    def __init__(self, base_url: str = config.SUPABASE_URL, api_key: str = config.SUPABASE_ANON_KEY,
                 timeout: float = config.AUTH_TIMEOUT, transport: Optional[httpx.BaseTransport] = None):
        self.http = httpx.Client(
            base_url=base_url.rstrip("/") + "/auth/v1",
            headers={"apikey": api_key},
            timeout=timeout,
            transport=transport,
        )

    def _call(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            r = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise AuthError(f"auth service unreachable: {e}") from e
        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                body = {}
            msg = body.get("msg") or body.get("error_description") or body.get("message") or r.text
            raise AuthError(msg or f"auth request failed ({r.status_code})")
        if not r.content:
            return {}
        return r.json()

    def sign_up(self, email: str, password: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/signup", json={"email": email, "password": password, "data": data})

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return self._call("POST", "/token", params={"grant_type": "password"},
                          json={"email": email, "password": password})

    def get_user(self, token: str) -> Dict[str, Any]:
        return self._call("GET", "/user", token=token)

    def update_user(self, token: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("PUT", "/user", token=token, json={"data": data})

    def sign_out(self, token: str) -> None:
        self._call("POST", "/logout", token=token)


def _user_from(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    # signup answers with the user itself or with a session wrapping it
    if not payload:
        return None
    if "user" in payload:
        return payload["user"]
    return payload if payload.get("id") else None


def build_profile(user: Dict[str, Any], is_admin: bool = False, **fallbacks) -> UserProfile:
    meta = user.get("user_metadata") or {}
    email = user.get("email") or ""
    return UserProfile(
        id=str(user["id"]),
        email=email,
        name=meta.get("name") or fallbacks.get("name") or email,
        role="admin" if is_admin else (meta.get("role") or "customer"),
        phone=meta.get("phone") or fallbacks.get("phone") or "",
        address=meta.get("address") or fallbacks.get("address") or "",
    )


class SessionManager:
    def __init__(self, auth: AuthClient, roles, repository: OrderRepository, store: LocalStore,
                 cart_slot: str = config.CART_SLOT):
        self.auth = auth
        self.roles = roles
        self.repository = repository
        self.store = store
        self.cart_slot = cart_slot

    def _profile(self, user: Dict[str, Any], **fallbacks) -> UserProfile:
        return build_profile(user, self.roles.is_admin(str(user["id"])), **fallbacks)

    def register(self, name: str, email: str, password: str, phone: str = "", address: str = "") -> Optional[UserProfile]:
        payload = self.auth.sign_up(email, password, {
            "name": name, "phone": phone, "address": address, "role": "customer",
        })
        user = _user_from(payload)
        if user is None:
            # confirmation pending, no user object yet
            return None
        return build_profile(user, name=name, phone=phone, address=address)

    def login(self, email: str, password: str) -> SessionOut:
        payload = self.auth.sign_in(email, password)
        user = _user_from(payload)
        token = payload.get("access_token")
        if user is None or not token:
            raise AuthError("Login failed")
        return SessionOut(access_token=token, user=self._profile(user))

    def restore(self, token: str) -> UserProfile:
        user = _user_from(self.auth.get_user(token))
        if user is None:
            raise AuthError("session expired")
        return self._profile(user)

    def logout(self, token: str, profile: UserProfile) -> None:
        try:
            self.auth.sign_out(token)
        finally:
            self.clear_cart(profile)

    def update_profile(self, token: str, updates: Dict[str, Any]) -> UserProfile:
        user = _user_from(self.auth.update_user(token, updates))
        if user is None:
            raise AuthError("profile update failed")
        return self._profile(user)

    def verify_current_password(self, profile: UserProfile, password: str) -> bool:
        try:
            payload = self.auth.sign_in(profile.email, password)
        except AuthError:
            return False
        return _user_from(payload) is not None

    def order_history(self, profile: UserProfile) -> List[Order]:
        return self.repository.for_user(profile.id)

    # carts are kept per user

    def _cart_slot(self, profile: UserProfile) -> str:
        return f"{self.cart_slot}-{profile.id}"

    def get_cart(self, profile: UserProfile):
        return self.store.read(self._cart_slot(profile), default=[])

    def save_cart(self, profile: UserProfile, cart):
        self.store.write(self._cart_slot(profile), cart)
        return cart

    def clear_cart(self, profile: UserProfile) -> None:
        self.store.remove(self._cart_slot(profile))

    def place_order(self, profile: Optional[UserProfile], order_in: OrderIn) -> PersistResult:
        if profile is None:
            raise NotAuthenticated()
        return self.repository.create(profile, order_in)
