from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}


class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


# Orders

class ProductRef(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str = ""
    price: float = 0
    image: Optional[str] = None


class Toppings(BaseModel):
    classic: Optional[str] = None
    premium: Optional[str] = None


class Customizations(BaseModel):
    flavors: List[str] = Field(default_factory=list)
    toppings: Optional[Toppings] = None


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: ProductRef
    quantity: int = Field(gt=0)
    customizations: Customizations = Field(default_factory=Customizations)
    total_price: float = Field(default=0, ge=0)


class Order(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    user_id: str
    items: List[LineItem] = Field(default_factory=list)
    total: float = 0
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    payment_method: Optional[str] = None
    cancelled_by: Optional[str] = None
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    phone: str = ""
    email: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def _local_if_naive(cls, v: datetime) -> datetime:
        # naive timestamps are device-local
        return v if v.tzinfo else v.astimezone()

    @computed_field
    @property
    def status_label(self) -> str:
        if self.status == OrderStatus.CANCELLED and self.cancelled_by == "admin":
            return "Cancelled by SimpleDough"
        return STATUS_LABELS[self.status]


class OrderIn(BaseModel):
    items: List[LineItem] = Field(min_length=1)
    total: float = Field(ge=0)
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    phone: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StatusPatch(BaseModel):
    status: OrderStatus


class PersistResult(BaseModel):
    order: Order
    durability: Literal["remote", "local"]

    @property
    def persisted_remotely(self) -> bool:
        return self.durability == "remote"


# Inventory

class InventoryRecord(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    product_id: str
    stock: int = Field(ge=0)
    daily_limit: int = Field(default=0, ge=0)


class InventoryIn(BaseModel):
    stock: int = Field(ge=0)
    daily_limit: int = Field(default=0, ge=0)


class RevertIn(BaseModel):
    quantity: int = Field(gt=0)


# Dashboard

class DashboardStats(BaseModel):
    today_orders: int = 0
    today_revenue: float = 0
    total_customers: int = 0
    avg_order_value: float = 0


# Accounts

class UserProfile(BaseModel):
    id: str
    email: str
    name: str
    role: str = "customer"
    phone: str = ""
    address: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class RegisterIn(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)
    phone: str = ""
    address: str = ""


class LoginIn(BaseModel):
    email: str
    password: str


class ProfilePatch(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class PasswordCheckIn(BaseModel):
    password: str


class SessionOut(BaseModel):
    access_token: str
    user: UserProfile
