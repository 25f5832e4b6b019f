class SimpleDoughError(Exception):
    """Base class for storefront domain errors."""


class OrderNotFound(SimpleDoughError):
    def __init__(self, order_id: str):
        super().__init__(f"order {order_id} not found")
        self.order_id = order_id


class InvalidTransition(SimpleDoughError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"cannot move order from {current} to {requested}")
        self.current = current
        self.requested = requested


class InsufficientStock(SimpleDoughError):
    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"product {product_id}: requested {requested}, only {available} in stock"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class AuthError(SimpleDoughError):
    """The auth service rejected the call or could not be reached."""


class NotAuthenticated(SimpleDoughError):
    def __init__(self, message: str = "You must be logged in to place an order."):
        super().__init__(message)
