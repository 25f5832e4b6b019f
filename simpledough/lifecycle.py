"""
Order status state machine.

    pending -> confirmed -> preparing -> ready -> out_for_delivery -> delivered

Moves go forward only, skipping steps is allowed (pickup orders go from
ready straight to delivered). Any non-terminal status may be cancelled.
Delivered and cancelled are terminal.
"""

import logging

from .errors import InvalidTransition
from .inventory import InventoryStore
from .models import Order, OrderStatus
from .repository import OrderRepository

logger = logging.getLogger(__name__)

FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def _build_transitions():
    table = {status: set() for status in OrderStatus}
    for i, status in enumerate(FLOW):
        if status in TERMINAL:
            continue
        table[status].update(FLOW[i + 1:])
        table[status].add(OrderStatus.CANCELLED)
    return {status: frozenset(targets) for status, targets in table.items()}


TRANSITIONS = _build_transitions()


def is_terminal(status) -> bool:
    return OrderStatus(status) in TERMINAL


def can_transition(current, requested) -> bool:
    return OrderStatus(requested) in TRANSITIONS[OrderStatus(current)]


class OrderLifecycleManager:
    def __init__(self, repository: OrderRepository, inventory: InventoryStore):
        self.repository = repository
        self.inventory = inventory

    def update_status(self, order_id: str, new_status, actor: str = "admin") -> Order:
        """Move an order to `new_status` and persist the whole collection.

        Setting the status an order already has is a no-op. Cancelling
        returns every line item's quantity to stock exactly once.
        Raises OrderNotFound or InvalidTransition.
        """
        new_status = OrderStatus(new_status)
        order = self.repository.get(order_id)

        if order.status == new_status:
            return order
        if not can_transition(order.status, new_status):
            raise InvalidTransition(order.status.value, new_status.value)

        cancelling = new_status == OrderStatus.CANCELLED
        if cancelling:
            self.inventory.revert_items(order.items)

        updated = order.model_copy(update={
            "status": new_status,
            "cancelled_by": actor if cancelling else None,
        })
        self.repository.replace(updated)
        logger.info("status %s -> %s by %s", order.status.value, new_status.value, actor,
                    extra={"order_id": order_id})
        return updated
