"""
Canteen Core — Document shapes

Pydantic views over the schemaless documents held in the store. Parsing is
tolerant: missing or malformed fields fall back to defaults instead of failing,
since any session can write any shape.
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from canteen.domain.meal_windows import OTHER_CATEGORY


class OrderStatus(str, PyEnum):
    PREBOOKED = "Prebooked"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentStatus(str, PyEnum):
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"


class Role(str, PyEnum):
    EMPLOYEE = "employee"
    VENDOR = "vendor"
    ADMIN = "admin"


ACTIVE_STATUSES = frozenset({OrderStatus.PREBOOKED.value, OrderStatus.PREPARING.value, OrderStatus.READY.value})
TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value})


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None


class Order(_Document):
    item_id: str | None = Field(None, alias="itemId")
    name: str | None = None
    price: float = 0
    user_id: str | None = Field(None, alias="userId")
    status: str | None = None
    payment_status: str = Field(PaymentStatus.PENDING.value, alias="paymentStatus")
    date: str | None = None
    kitchen: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v: Any) -> float:
        try:
            return float(v or 0)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("payment_status", mode="before")
    @classmethod
    def _default_payment(cls, v: Any) -> str:
        return v or PaymentStatus.PENDING.value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _drop_bad_timestamps(cls, v: Any) -> Any:
        return v if isinstance(v, (datetime, str)) else None

    @property
    def status_key(self) -> str:
        return (self.status or "").lower()

    def duration_minutes(self) -> float | None:
        """Minutes between creation and the last mutation, if both are known."""
        if self.created_at is None or self.updated_at is None:
            return None
        try:
            return (self.updated_at - self.created_at).total_seconds() / 60
        except TypeError:  # naive vs aware timestamps from mixed writers
            return None


class MenuItem(_Document):
    name: str = ""
    price: float = 0
    category: str = OTHER_CATEGORY
    available: Any = None
    image: str | None = None
    vendor_id: str | None = Field(None, alias="vendorId")

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v: Any) -> float:
        try:
            return max(float(v or 0), 0.0)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, v: Any) -> str:
        return v or OTHER_CATEGORY

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, v: Any) -> str:
        return v or ""


class UserProfile(_Document):
    # Kept as a plain string so an unrecognised role reaches the role guard
    # (and is refused there) instead of failing to parse.
    role: str = Role.EMPLOYEE.value
    uid: str | None = None
    email: str | None = None
    employee_id: str | None = Field(None, alias="employeeId")
    vendor_id: str | None = Field(None, alias="vendorId")
    name: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, v: Any) -> str:
        if isinstance(v, Role):
            return v.value
        return v or Role.EMPLOYEE.value


def parse_orders(docs: list[dict]) -> list[Order]:
    return [Order.model_validate(d) for d in docs]


def parse_menu(docs: list[dict]) -> list[MenuItem]:
    return [MenuItem.model_validate(d) for d in docs]
