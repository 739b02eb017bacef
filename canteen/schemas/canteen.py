"""
Canteen Service — Pydantic schemas (request / response bodies)
"""
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from canteen.domain import analytics
from canteen.domain.documents import MenuItem, Order
from canteen.domain.orders import PaymentMethod
from canteen.domain.views import CanteenView, StatusChange


# ── Auth ──────────────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class RegisterResponse(BaseModel):
    id: str
    email: str
    email_verified: bool
    # Only filled in DEBUG, where there is no mail transport to deliver it.
    verification_token: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class VerifyEmailRequest(BaseModel):
    token: str


class MeResponse(BaseModel):
    id: str
    email: str | None
    email_verified: bool
    role: str
    user_id: str | None
    employee_id: str | None = None
    vendor_id: str | None = None
    name: str | None = None


# ── Menu ──────────────────────────────────────────────────────────────────────

class MenuItemCreate(BaseModel):
    name: str = Field(..., max_length=120, examples=["Veg Thali"])
    price: float = Field(..., examples=[80])
    category: str | None = Field(None, examples=["Lunch"])
    available: bool | str | None = None
    image: str | None = Field(None, description="Image URL")


class MenuItemUpdate(BaseModel):
    name: str | None = Field(None, max_length=120)
    price: float | None = None
    category: str | None = None
    available: bool | str | None = None
    image: str | None = None


# ── Orders ────────────────────────────────────────────────────────────────────

class BookRequest(BaseModel):
    item_id: str = Field(..., examples=["menu-item-id"])


class StatusChangeRequest(BaseModel):
    status: str = Field(..., examples=["Ready"])


class PayRequest(BaseModel):
    method: PaymentMethod = PaymentMethod.ONLINE


class OrderResponse(BaseModel):
    order: Order
    message: str


class BoardResponse(BaseModel):
    orders: list[Order]
    queue_load: analytics.QueueLoad


# ── Views ─────────────────────────────────────────────────────────────────────

class EmployeeViewResponse(BaseModel):
    view: CanteenView
    my_orders: list[Order]
    user_id: str | None


class StreamEvent(BaseModel):
    view: CanteenView
    my_orders: list[Order]
    status_changes: list[StatusChange]


class VendorViewResponse(BaseModel):
    vendor_id: str | None
    menu: list[MenuItem]
    board: list[Order]
    queue_load: analytics.QueueLoad
    prep_suggestions: list[analytics.PrepSuggestion]


class AdminViewResponse(BaseModel):
    summary: analytics.AdminSummary
    efficiency: analytics.EfficiencyInsight
    sla: analytics.SlaTrend
    heatmap: analytics.DemandHeatmap
    forecast: analytics.Forecast


# ── Analytics ─────────────────────────────────────────────────────────────────

class SimulationRequest(BaseModel):
    duration_minutes: int | None = Field(None, ge=1, le=24 * 60)
    new_orders_per_min: float | None = Field(None, ge=0)
    stations: int | None = Field(None, ge=0)
    avg_prep_minutes: float | None = Field(None, gt=0)
    seed: int | None = None
    run_async: bool = Field(False, description="Queue on the Celery worker instead of running inline")


class SimulationJob(BaseModel):
    task_id: str
    status: str
    result: dict[str, Any] | None = None


# ── Admin ─────────────────────────────────────────────────────────────────────

class VendorCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    vendor_id: str = Field(..., min_length=1, max_length=64)
    location: str | None = None
    contact_name: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    dependencies: dict[str, str]
