import logging
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Body, Request
from fastapi.responses import JSONResponse, Response

from . import config
from .db import pool
from .errors import AuthError, InsufficientStock, InvalidTransition, OrderNotFound
from .logging_config import setup_json_logging
from .models import (
    DashboardStats, InventoryIn, InventoryRecord, LoginIn, Order, OrderIn, OrderStatus,
    PasswordCheckIn, PersistResult, ProfilePatch, RegisterIn, RevertIn, SessionOut,
    StatusPatch, UserProfile,
)
from .search import filter_orders
from .services import Services, default_services

setup_json_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="SimpleDough API", version="0.1.0")

STATUS_FILTER = "^(all|" + "|".join(s.value for s in OrderStatus) + ")$"


def get_services(request: Request) -> Services:
    return request.app.state.services

@app.on_event("startup")
def startup():
    app.state.services = default_services()
    if config.DATABASE_URL:
        pool.open()
    else:
        logger.warning("DATABASE_URL not set, orders will be stored locally only")

@app.on_event("shutdown")
def shutdown():
    pool.close()

# Auth dependencies

def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(401, "missing bearer token")
    return authorization[7:].strip()

def current_user(token: str = Depends(bearer_token), svc: Services = Depends(get_services)) -> UserProfile:
    try:
        return svc.sessions.restore(token)
    except AuthError as e:
        raise HTTPException(401, str(e))

def require_admin(user: UserProfile = Depends(current_user)) -> UserProfile:
    if not user.is_admin:
        raise HTTPException(403, "admin only")
    return user

# Health

@app.get("/health/store")
def health_store(svc: Services = Depends(get_services)):
    body = {"local_ok": svc.store.healthy(), "db_ok": None}
    if svc.remote is None:
        return body
    try:
        body["db_ok"] = svc.remote.ping()
        return body
    except Exception as e:
        body.update(db_ok=False, error=str(e))
        return JSONResponse(status_code=500, content=body)

# Orders (admin)

@app.get("/orders", response_model=List[Order])
def list_orders(q: str = "", status: str = Query("all", pattern=STATUS_FILTER),
                svc: Services = Depends(get_services), _: UserProfile = Depends(require_admin)):
    return filter_orders(svc.repository.list_orders(), q, status)

@app.get("/orders/{order_id}", response_model=Order)
def get_order(order_id: str, svc: Services = Depends(get_services), _: UserProfile = Depends(require_admin)):
    try:
        return svc.repository.get(order_id)
    except OrderNotFound as e:
        raise HTTPException(404, str(e))

@app.patch("/orders/{order_id}/status", response_model=Order)
def update_order_status(order_id: str, body: StatusPatch, svc: Services = Depends(get_services),
                        _: UserProfile = Depends(require_admin)):
    try:
        return svc.lifecycle.update_status(order_id, body.status, actor="admin")
    except OrderNotFound as e:
        raise HTTPException(404, str(e))
    except InvalidTransition as e:
        raise HTTPException(409, str(e))

# Checkout

@app.post("/orders", response_model=PersistResult, status_code=201)
def place_order(body: OrderIn, svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    try:
        svc.inventory.consume_items(body.items)
    except InsufficientStock as e:
        raise HTTPException(409, str(e))
    return svc.sessions.place_order(user, body)

# Inventory (admin)

@app.get("/inventory", response_model=List[InventoryRecord])
def list_inventory(svc: Services = Depends(get_services), _: UserProfile = Depends(require_admin)):
    return svc.inventory.list_records()

@app.get("/inventory/low-stock", response_model=List[InventoryRecord])
def low_stock(threshold: int = Query(config.LOW_STOCK_THRESHOLD, ge=0),
              svc: Services = Depends(get_services), _: UserProfile = Depends(require_admin)):
    return svc.inventory.low_stock(threshold)

@app.put("/inventory/{product_id}", response_model=InventoryRecord)
def set_inventory(product_id: str, body: InventoryIn, svc: Services = Depends(get_services),
                  _: UserProfile = Depends(require_admin)):
    return svc.inventory.set_record(product_id, body.stock, body.daily_limit)

@app.post("/inventory/{product_id}/revert", response_model=InventoryRecord)
def revert_inventory(product_id: str, body: RevertIn, svc: Services = Depends(get_services),
                     _: UserProfile = Depends(require_admin)):
    return svc.inventory.revert_stock(product_id, body.quantity)

# Dashboard (admin)

@app.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(refresh: bool = False, svc: Services = Depends(get_services),
                    _: UserProfile = Depends(require_admin)):
    if refresh:
        return svc.dashboard.refresh()
    return svc.dashboard.stats

# Auth

@app.post("/auth/register", response_model=Optional[UserProfile], status_code=201)
def register(body: RegisterIn, svc: Services = Depends(get_services)):
    try:
        return svc.sessions.register(body.name, body.email, body.password, body.phone, body.address)
    except AuthError as e:
        raise HTTPException(400, f"register failed: {e}")

@app.post("/auth/login", response_model=SessionOut)
def login(body: LoginIn, svc: Services = Depends(get_services)):
    try:
        return svc.sessions.login(body.email, body.password)
    except AuthError as e:
        raise HTTPException(401, f"login failed: {e}")

@app.post("/auth/logout", status_code=204)
def logout(token: str = Depends(bearer_token), svc: Services = Depends(get_services),
           user: UserProfile = Depends(current_user)):
    try:
        svc.sessions.logout(token, user)
    except AuthError as e:
        raise HTTPException(401, f"logout failed: {e}")
    return Response(status_code=204)

# Account

@app.get("/me", response_model=UserProfile)
def me(user: UserProfile = Depends(current_user)):
    return user

@app.patch("/me", response_model=UserProfile)
def update_me(body: ProfilePatch, token: str = Depends(bearer_token), svc: Services = Depends(get_services)):
    try:
        return svc.sessions.update_profile(token, body.model_dump(exclude_none=True))
    except AuthError as e:
        raise HTTPException(400, f"profile update failed: {e}")

@app.post("/me/verify-password")
def verify_password(body: PasswordCheckIn, svc: Services = Depends(get_services),
                    user: UserProfile = Depends(current_user)):
    return {"valid": svc.sessions.verify_current_password(user, body.password)}

@app.get("/me/orders", response_model=List[Order])
def my_orders(svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    return svc.sessions.order_history(user)

@app.post("/me/orders/{order_id}/cancel", response_model=Order)
def cancel_my_order(order_id: str, svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    try:
        order = svc.repository.get(order_id)
        if order.user_id != user.id:
            raise HTTPException(404, f"order {order_id} not found")
        return svc.lifecycle.update_status(order_id, OrderStatus.CANCELLED, actor="customer")
    except HTTPException:
        raise
    except OrderNotFound as e:
        raise HTTPException(404, str(e))
    except InvalidTransition as e:
        raise HTTPException(409, str(e))

# Cart

@app.get("/cart")
def get_cart(svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    return svc.sessions.get_cart(user)

@app.put("/cart")
def put_cart(body: Any = Body(...), svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    return svc.sessions.save_cart(user, body)

@app.delete("/cart", status_code=204)
def clear_cart(svc: Services = Depends(get_services), user: UserProfile = Depends(current_user)):
    svc.sessions.clear_cart(user)
    return Response(status_code=204)
