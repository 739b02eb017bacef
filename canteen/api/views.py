"""
Canteen Service — Dashboard views (employee / vendor / admin) + employee SSE stream

Each view is recomputed from a fresh snapshot of ``orders`` and ``menu``.
The stream subscribes to both collections and pushes a new view, plus any
status changes to the caller's own orders, whenever either one changes.
"""
import asyncio
import logging
from datetime import datetime
from typing import AsyncGenerator, Callable

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from canteen.api.dependencies import (
    get_principal,
    get_window_table,
    local_now,
    require_role,
    translate_errors,
)
from canteen.core.config import get_settings
from canteen.db.document_store import MENU, ORDERS, USERS, DocumentStore, get_store
from canteen.db.order_ops import vendor_menu
from canteen.domain import analytics
from canteen.domain.documents import Role, UserProfile, parse_menu, parse_orders
from canteen.domain.meal_windows import WindowTable
from canteen.domain.profiles import Principal, resolve_user_id
from canteen.domain.views import ALL_CATEGORIES, CanteenView, derive_view, status_changes, status_index
from canteen.schemas.canteen import (
    AdminViewResponse,
    EmployeeViewResponse,
    StreamEvent,
    VendorViewResponse,
)

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/views", tags=["views"])

KEEPALIVE_SECONDS = 15.0


def _employee_view(
    order_docs: list[dict],
    menu_docs: list[dict],
    now: datetime,
    user_id: str | None,
    category: str,
    table: WindowTable,
) -> tuple[CanteenView, list]:
    orders = parse_orders(order_docs)
    view = derive_view(
        orders, parse_menu(menu_docs), now,
        user_id=user_id,
        category_filter=category,
        table=table,
        tz=settings.local_tz,
        avg_prep_minutes=settings.QUEUE_AVG_PREP_MINUTES,
        stations=settings.QUEUE_PARALLEL_STATIONS,
        sla_minutes=settings.SLA_MINUTES,
    )
    mine = [o for o in orders if user_id and o.user_id == user_id]
    mine.sort(key=lambda o: o.created_at.timestamp() if o.created_at else 0, reverse=True)
    return view, mine


@router.get("/employee", response_model=EmployeeViewResponse)
async def employee_view(
    category: str = Query(ALL_CATEGORIES, description="Menu tab outside meal windows"),
    profile: UserProfile = Depends(require_role(Role.EMPLOYEE)),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
    table: WindowTable = Depends(get_window_table),
):
    user_id = resolve_user_id(profile, principal)
    with translate_errors("load dashboard"):
        order_docs = await store.list(ORDERS)
        menu_docs = await store.list(MENU)
    view, mine = _employee_view(order_docs, menu_docs, now, user_id, category, table)
    return EmployeeViewResponse(view=view, my_orders=mine, user_id=user_id)


# ── Live stream ───────────────────────────────────────────────────────────────

async def _pump(collection: str, store: DocumentStore, queue: asyncio.Queue) -> None:
    try:
        async for snapshot in store.subscribe(collection):
            await queue.put((collection, snapshot))
    except Exception:
        logger.exception("Subscription to %s failed", collection)
        await queue.put((None, None))


async def employee_view_events(
    request: Request,
    store: DocumentStore,
    user_id: str | None,
    category: str,
    table: WindowTable,
    clock: Callable[[], datetime] = local_now,
) -> AsyncGenerator[str, None]:
    """Subscribe to orders + menu and yield one SSE ``view`` event per snapshot."""
    queue: asyncio.Queue = asyncio.Queue()
    pumps = [asyncio.create_task(_pump(c, store, queue)) for c in (ORDERS, MENU)]
    latest: dict[str, list[dict] | None] = {ORDERS: None, MENU: None}
    previous: dict[str, str | None] | None = None

    try:
        yield f"retry: {settings.SSE_RETRY_MILLISECONDS}\n\n"

        while True:
            if await request.is_disconnected():
                break

            try:
                collection, snapshot = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue

            if collection is None:
                yield 'event: error\ndata: {"detail": "Live updates unavailable. Check server logs."}\n\n'
                break

            latest[collection] = snapshot
            if latest[ORDERS] is None or latest[MENU] is None:
                continue

            view, mine = _employee_view(latest[ORDERS], latest[MENU], clock(), user_id, category, table)
            # The first snapshot only seeds the baseline; nothing has "changed" yet.
            changes = status_changes(previous, mine) if previous is not None else []
            previous = status_index(mine)

            event = StreamEvent(view=view, my_orders=mine, status_changes=changes)
            yield f"event: view\ndata: {event.model_dump_json(by_alias=True)}\n\n"
    finally:
        for task in pumps:
            task.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)


@router.get("/employee/stream")
async def employee_view_stream(
    request: Request,
    category: str = Query(ALL_CATEGORIES),
    profile: UserProfile = Depends(require_role(Role.EMPLOYEE)),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    table: WindowTable = Depends(get_window_table),
):
    """
    SSE endpoint. The browser opens an EventSource here and receives a full
    recomputed view every time the orders or the menu change.
    """
    return StreamingResponse(
        employee_view_events(request, store, resolve_user_id(profile, principal), category, table),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
            "Connection": "keep-alive",
        },
    )


# ── Vendor / admin ────────────────────────────────────────────────────────────

@router.get("/vendor", response_model=VendorViewResponse)
async def vendor_view(
    profile: UserProfile = Depends(require_role(Role.VENDOR)),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    today = now.date()
    with translate_errors("load vendor dashboard"):
        orders = parse_orders(await store.list(ORDERS))
        menu = parse_menu(await store.list(MENU))

    todays = [o for o in orders if o.date == today.isoformat()]
    return VendorViewResponse(
        vendor_id=profile.vendor_id,
        menu=vendor_menu(menu, profile.vendor_id),
        board=analytics.board_orders(todays),
        queue_load=analytics.queue_load(todays),
        prep_suggestions=analytics.prep_suggestions(menu, orders, today),
    )


@router.get("/admin", response_model=AdminViewResponse)
async def admin_view(
    profile: UserProfile = Depends(require_role(Role.ADMIN)),
    store: DocumentStore = Depends(get_store),
    now: datetime = Depends(local_now),
):
    today = now.date()
    with translate_errors("load admin dashboard"):
        orders = parse_orders(await store.list(ORDERS))
        users = [UserProfile.model_validate(d) for d in await store.list(USERS)]

    return AdminViewResponse(
        summary=analytics.admin_summary(orders, users, now, today),
        efficiency=analytics.efficiency_insight(
            orders, today, settings.BASELINE_PREP_MINUTES, settings.WASTE_PER_ORDER_KG,
        ),
        sla=analytics.sla_trend(orders, today, settings.SLA_MINUTES),
        heatmap=analytics.demand_heatmap(orders, today, settings.local_tz),
        forecast=analytics.next_lunch_forecast(orders, today, settings.local_tz),
    )
