"""
Order repository.

The local `simple-dough-orders` slot is the owner of every order record.
New orders are also mirrored into the remote `orders` table when it is
reachable; the returned PersistResult says which of the two happened.
Every mutation rewrites the whole collection, newest first, and notifies
subscribers with the new snapshot.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List

from pydantic import ValidationError

from . import config
from .errors import OrderNotFound
from .models import Order, OrderIn, OrderStatus, PersistResult, UserProfile
from .search import sort_newest_first
from .storage import LocalStore

logger = logging.getLogger(__name__)

Listener = Callable[[List[Order]], None]

# fields carried in the remote row's free-form metadata column
_DETAIL_FIELDS = (
    "delivery_method", "payment_method", "notes", "delivery_address",
    "customer_name", "customer_email", "phone",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderRepository:
    def __init__(self, store: LocalStore, remote=None, slot: str = config.ORDERS_SLOT,
                 now: Callable[[], datetime] = _utcnow):
        self.store = store
        self.remote = remote
        self.slot = slot
        self.now = now
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    # reads

    def list_orders(self) -> List[Order]:
        raw = self.store.read(self.slot, default=[])
        if not isinstance(raw, list):
            logger.warning("orders slot is not a list, treating as empty")
            return []
        orders = []
        for entry in raw:
            try:
                orders.append(Order.model_validate(entry))
            except ValidationError as e:
                logger.warning("skipping malformed order entry: %s", e.errors()[:1])
        return sort_newest_first(orders)

    def get(self, order_id: str) -> Order:
        for order in self.list_orders():
            if order.id == order_id:
                return order
        raise OrderNotFound(order_id)

    def for_user(self, user_id: str) -> List[Order]:
        return [o for o in self.list_orders() if o.user_id == user_id]

    # writes

    def _write_all(self, orders: List[Order]) -> List[Order]:
        orders = sort_newest_first(orders)
        self.store.write(self.slot, [o.model_dump(mode="json") for o in orders])
        self._notify(orders)
        return orders

    def replace(self, order: Order) -> Order:
        with self._lock:
            orders = self.list_orders()
            if not any(o.id == order.id for o in orders):
                raise OrderNotFound(order.id)
            self._write_all([order if o.id == order.id else o for o in orders])
        return order

    def _local_id(self, taken) -> str:
        """Millisecond stamp, bumped past any id already in the collection."""
        stamp = int(time.time() * 1000)
        while str(stamp) in taken:
            stamp += 1
        return str(stamp)

    def create(self, profile: UserProfile, order_in: OrderIn) -> PersistResult:
        timestamp = self.now()
        record = {
            "user_id": profile.id,
            "email": profile.email,
            "items": [item.model_dump(mode="json") for item in order_in.items],
            "total": order_in.total,
            "status": OrderStatus.PENDING.value,
            "metadata": {**order_in.metadata, **order_in.model_dump(mode="json", include=set(_DETAIL_FIELDS))},
            "created_at": timestamp.isoformat(),
        }

        row = None
        if self.remote is None:
            logger.warning("remote order store not configured, saving order locally only")
        else:
            try:
                row = self.remote.insert(record)
            except Exception as e:
                logger.warning("Failed to persist order remotely, falling back to local storage: %s", e)

        inserted = row or {}
        with self._lock:
            orders = self.list_orders()
            taken = {o.id for o in orders}
            order = Order(
                id=str(inserted["id"]) if inserted.get("id") else self._local_id(taken),
                user_id=profile.id,
                email=profile.email,
                items=order_in.items,
                total=order_in.total,
                status=OrderStatus.PENDING,
                created_at=inserted.get("created_at") or timestamp,
                metadata=order_in.metadata,
                **order_in.model_dump(include=set(_DETAIL_FIELDS)),
            )
            self._write_all(orders + [order])
        logger.info("order placed", extra={"order_id": order.id, "user_id": profile.id})
        return PersistResult(order=order, durability="remote" if row else "local")

    # subscriptions

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, orders: List[Order]) -> None:
        for listener in list(self._listeners):
            listener(orders)
