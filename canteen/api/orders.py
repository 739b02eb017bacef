"""
Canteen Service — Orders API

Flow for every write:
  1. JWT validated by middleware (request.state.user set)
  2. Profile resolved (and bootstrapped on first sign-in)
  3. Current document loaded from the store, guard re-run
  4. Partial update written; refusal → 403 / 409 with {kind, message}
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from canteen.api.dependencies import (
    get_principal,
    get_window_table,
    local_now,
    require_role,
    translate_errors,
)
from canteen.core.config import get_settings
from canteen.db.document_store import ORDERS, DocumentStore, get_store
from canteen.db.order_ops import cancel_order, change_status, pay_order, place_order
from canteen.domain import analytics
from canteen.domain.admission import BookingMode
from canteen.domain.documents import Order, Role, UserProfile, parse_orders
from canteen.domain.meal_windows import WindowTable
from canteen.domain.profiles import Principal, resolve_user_id
from canteen.schemas.canteen import BoardResponse, BookRequest, OrderResponse, PayRequest, StatusChangeRequest

settings = get_settings()
router = APIRouter(prefix="/orders", tags=["orders"])

employee_only = require_role(Role.EMPLOYEE)
vendor_only = require_role(Role.VENDOR)
payer = require_role(Role.EMPLOYEE, Role.VENDOR)


async def _book(
    mode: BookingMode,
    payload: BookRequest,
    profile: UserProfile,
    principal: Principal,
    store: DocumentStore,
    now: datetime,
    table: WindowTable,
) -> OrderResponse:
    verified = principal.email_verified or not settings.REQUIRE_VERIFIED_EMAIL
    with translate_errors("place order"):
        order = await place_order(
            store, payload.item_id, mode, resolve_user_id(profile, principal), now,
            email_verified=verified, table=table,
        )
    if mode == BookingMode.IMMEDIATE:
        message = f'Order placed for "{order.name}".'
    else:
        message = f'Pre-booked "{order.name}" for the next meal window.'
    return OrderResponse(order=order, message=message)


@router.post("/book", response_model=OrderResponse, status_code=201)
async def book_now(
    payload: BookRequest,
    profile: UserProfile = Depends(employee_only),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
    table: WindowTable = Depends(get_window_table),
):
    """Order an item from the current meal window for immediate preparation."""
    return await _book(BookingMode.IMMEDIATE, payload, profile, principal, store, now, table)


@router.post("/prebook", response_model=OrderResponse, status_code=201)
async def prebook(
    payload: BookRequest,
    profile: UserProfile = Depends(employee_only),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
    table: WindowTable = Depends(get_window_table),
):
    """Reserve an item from the next meal window."""
    return await _book(BookingMode.PREBOOK, payload, profile, principal, store, now, table)


@router.get("/mine", response_model=list[Order])
async def my_orders(
    profile: UserProfile = Depends(employee_only),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    """The caller's orders, newest first."""
    user_id = resolve_user_id(profile, principal)
    with translate_errors("load orders"):
        orders = parse_orders(await store.list(ORDERS, {"userId": user_id}))
    return sorted(orders, key=lambda o: o.created_at.timestamp() if o.created_at else 0, reverse=True)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel(
    order_id: str,
    profile: UserProfile = Depends(employee_only),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    with translate_errors("cancel order"):
        order = await cancel_order(store, order_id, resolve_user_id(profile, principal), now)
    return OrderResponse(order=order, message=f'Cancelled "{order.name}".')


@router.post("/{order_id}/pay", response_model=OrderResponse)
async def pay(
    order_id: str,
    payload: PayRequest,
    profile: UserProfile = Depends(payer),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    """Employees pay their own orders online; the vendor records cash at the counter."""
    with translate_errors("record payment"):
        order = await pay_order(
            store, order_id, profile.role, resolve_user_id(profile, principal), payload.method, now,
        )
    return OrderResponse(order=order, message=f'Payment recorded for "{order.name}".')


@router.post("/{order_id}/status", response_model=OrderResponse)
async def set_status(
    order_id: str,
    payload: StatusChangeRequest,
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    """Move an order through the kitchen (vendor)."""
    with translate_errors("update order status"):
        order = await change_status(store, order_id, payload.status, profile.role, None, now)
    return OrderResponse(order=order, message=f'Order "{order.name}" is now {order.status}.')


@router.get("/board", response_model=BoardResponse)
async def board(
    status: str = Query("Active", description="Active, All, or a single status"),
    search: str = Query("", description="Matches item name or employee id"),
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    """Kitchen display board: today's orders, oldest first."""
    with translate_errors("load orders"):
        todays = parse_orders(await store.list(ORDERS, {"date": now.date().isoformat()}))
    return BoardResponse(
        orders=analytics.board_orders(todays, status, search),
        queue_load=analytics.queue_load(todays),
    )
