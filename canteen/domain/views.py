"""
Canteen Core — Snapshot view reducer

``derive_view`` is recomputed from scratch whenever the store pushes a new
snapshot of ``orders`` / ``menu``; nothing here is updated incrementally.
"""
from datetime import datetime, tzinfo

from pydantic import BaseModel

from canteen.domain import analytics
from canteen.domain.admission import AdmissionKind, can_book_now, can_prebook
from canteen.domain.documents import MenuItem, Order, OrderStatus
from canteen.domain.meal_windows import DEFAULT_WINDOWS, MealWindow, WindowTable, next_window, window_at
from canteen.domain.recommendations import recommend

ALL_CATEGORIES = "All"


class MenuEntry(BaseModel):
    item: MenuItem
    can_book_now: bool
    can_prebook: bool
    book_denial: AdmissionKind | None = None
    prebook_denial: AdmissionKind | None = None


class CanteenView(BaseModel):
    now: datetime
    window: MealWindow | None
    next_window: MealWindow | None
    category_filter: str
    menu: list[MenuEntry]
    recommendations: list[MenuItem]
    queue_estimate: analytics.QueueEstimate
    efficiency: analytics.EfficiencyInsight
    sla: analytics.SlaTrend
    heatmap: analytics.DemandHeatmap
    forecast: analytics.Forecast


class StatusChange(BaseModel):
    order_id: str
    name: str | None
    previous: str | None
    current: str | None
    message: str


def effective_category(window: MealWindow | None, category_filter: str = ALL_CATEGORIES) -> str:
    """During a window the menu is locked to it; otherwise the caller's tab applies."""
    return window.value if window is not None else (category_filter or ALL_CATEGORIES)


def derive_view(
    orders: list[Order],
    menu: list[MenuItem],
    now: datetime,
    *,
    user_id: str | None = None,
    category_filter: str = ALL_CATEGORIES,
    table: WindowTable = DEFAULT_WINDOWS,
    tz: tzinfo | None = None,
    avg_prep_minutes: float = analytics.AVG_PREP_MINUTES,
    stations: int = analytics.PARALLEL_STATIONS,
    sla_minutes: float = analytics.SLA_MINUTES,
) -> CanteenView:
    """Everything the UI shows, derived from one snapshot.

    ``now`` is canteen-local time. ``orders`` is the full snapshot; the
    per-user pieces (suggestions, queue estimate) use only ``user_id``'s orders.
    """
    today = now.date()
    window = window_at(now, table)
    effective = effective_category(window, category_filter)
    categories = None if effective == ALL_CATEGORIES else [effective]

    mine = [o for o in orders if user_id and o.user_id == user_id]

    entries = []
    for item in menu:
        if categories is not None and item.category not in categories and (
            window is None or item.category != next_window(window).value
        ):
            continue
        book = can_book_now(item, now, table)
        pre = can_prebook(item, now, table)
        entries.append(MenuEntry(
            item=item,
            can_book_now=book.allowed,
            can_prebook=pre.allowed,
            book_denial=book.kind,
            prebook_denial=pre.kind,
        ))

    return CanteenView(
        now=now,
        window=window,
        next_window=next_window(window) if window else None,
        category_filter=effective,
        menu=entries,
        recommendations=recommend(mine, menu, categories),
        queue_estimate=analytics.queue_estimate(mine, now, avg_prep_minutes, stations),
        efficiency=analytics.efficiency_insight(orders, today),
        sla=analytics.sla_trend(orders, today, sla_minutes),
        heatmap=analytics.demand_heatmap(orders, today, tz),
        forecast=analytics.next_lunch_forecast(orders, today, tz),
    )


def status_changes(previous: dict[str, str | None], current: list[Order]) -> list[StatusChange]:
    """Orders whose status moved since ``previous`` (id → status).

    Prebooked → Cancelled is skipped: only the employee can make that move, so
    they already know about it.
    """
    out = []
    for o in current:
        if o.id is None or o.id not in previous:
            continue
        before = previous[o.id]
        if not before or before == o.status:
            continue
        if before == OrderStatus.PREBOOKED.value and o.status == OrderStatus.CANCELLED.value:
            continue
        out.append(StatusChange(
            order_id=o.id,
            name=o.name,
            previous=before,
            current=o.status,
            message=f'Order "{o.name}" status changed to {o.status}',
        ))
    return out


def status_index(orders: list[Order]) -> dict[str, str | None]:
    return {o.id: o.status for o in orders if o.id is not None}
