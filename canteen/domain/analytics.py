"""
Canteen Core — Queue & SLA analytics

Pure reducers over an order snapshot. None of them mutate their input and all
of them return a zero-shaped result for an empty snapshot.

Day windows are keyed by the order's literal ``date`` string (the local day the
order was placed), not by rolling 24h periods over ``createdAt``.
"""
import math
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable

from pydantic import BaseModel

from canteen.domain.documents import ACTIVE_STATUSES, Order, OrderStatus
from canteen.domain.meal_windows import LUNCH_SLOT, TIME_SLOTS

AVG_PREP_MINUTES = 8
PARALLEL_STATIONS = 2
BASELINE_PREP_MINUTES = 12
WASTE_PER_ORDER_KG = 0.25
SLA_MINUTES = 15
WINDOW_DAYS = 7

_DONE_KEYS = frozenset({"ready", "completed"})


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Half-up rounding (2.5 → 3), matching how the dashboards have always rounded."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def _iround(value: float) -> int:
    return int(round_half_up(value))


def _local(dt: datetime, tz: tzinfo | None) -> datetime:
    # Naive timestamps are taken to be canteen-local already.
    if tz is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(tz)


def local_hour(order: Order, tz: tzinfo | None = None) -> int | None:
    if order.created_at is None:
        return None
    return _local(order.created_at, tz).hour


def trailing_days(today: date, days: int = WINDOW_DAYS) -> list[str]:
    """Oldest-first day strings ending with ``today``."""
    return [(today - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def _is_done(order: Order) -> bool:
    return order.status_key in _DONE_KEYS


# ── Live queue estimate (employee) ────────────────────────────────────────────

class QueueEstimate(BaseModel):
    active_count: int
    est_minutes: int
    eta: datetime


def queue_estimate(
    user_orders: Iterable[Order],
    now: datetime,
    avg_prep_minutes: float = AVG_PREP_MINUTES,
    stations: int = PARALLEL_STATIONS,
) -> QueueEstimate:
    active = sum(1 for o in user_orders if o.status in ACTIVE_STATUSES)
    minutes = math.ceil(active * avg_prep_minutes / stations) if active and stations else 0
    return QueueEstimate(active_count=active, est_minutes=minutes, eta=now + timedelta(minutes=minutes))


# ── Efficiency insight (admin) ────────────────────────────────────────────────

class EfficiencyInsight(BaseModel):
    considered_orders: int = 0
    time_saved_minutes: int = 0
    avg_prep_time_minutes: float = 0
    waste_avoided_kg: float = 0
    cancelled_count: int = 0


def efficiency_insight(
    orders: list[Order],
    today: date,
    baseline_minutes: float = BASELINE_PREP_MINUTES,
    waste_per_order_kg: float = WASTE_PER_ORDER_KG,
) -> EfficiencyInsight:
    if not orders:
        return EfficiencyInsight()

    cutoff = (today - timedelta(days=WINDOW_DAYS)).isoformat()
    # Orders with no date stay in, as they always have on the dashboard.
    recent = [o for o in orders if not o.date or o.date >= cutoff]

    durations: list[float] = []
    cancelled = 0
    for o in recent:
        if _is_done(o):
            minutes = o.duration_minutes()
            if minutes is not None and 0 < minutes < 180:
                durations.append(minutes)
        elif o.status_key == "cancelled":
            cancelled += 1

    avg = sum(durations) / len(durations) if durations else 0
    per_order_saving = max(0, baseline_minutes - (avg or baseline_minutes))
    return EfficiencyInsight(
        considered_orders=len(recent),
        time_saved_minutes=_iround(per_order_saving * len(durations)),
        avg_prep_time_minutes=avg,
        waste_avoided_kg=round(cancelled * waste_per_order_kg, 2),
        cancelled_count=cancelled,
    )


# ── SLA trend (admin) ─────────────────────────────────────────────────────────

class SlaDay(BaseModel):
    date: str
    completed: int = 0
    avg_prep_minutes: float = 0
    on_time_percent: int = 0


class SlaTrend(BaseModel):
    total_completed: int = 0
    avg_prep_minutes: float = 0
    sla_on_time_percent: int = 0
    per_day: list[SlaDay] = []


def sla_trend(orders: list[Order], today: date, sla_minutes: float = SLA_MINUTES) -> SlaTrend:
    if not orders:
        return SlaTrend()

    days = trailing_days(today)
    buckets = {d: {"completed": 0, "minutes": 0.0, "on_time": 0} for d in days}

    for o in orders:
        if not _is_done(o) or o.date not in buckets:
            continue
        minutes = o.duration_minutes()
        if minutes is None or not (0 < minutes < 240):
            continue
        b = buckets[o.date]
        b["completed"] += 1
        b["minutes"] += minutes
        if minutes <= sla_minutes:
            b["on_time"] += 1

    per_day = []
    total = total_minutes = total_on_time = 0
    for d in days:
        b = buckets[d]
        n = b["completed"]
        per_day.append(SlaDay(
            date=d,
            completed=n,
            avg_prep_minutes=b["minutes"] / n if n else 0,
            on_time_percent=_iround(b["on_time"] / n * 100) if n else 0,
        ))
        total += n
        total_minutes += b["minutes"]
        total_on_time += b["on_time"]

    return SlaTrend(
        total_completed=total,
        avg_prep_minutes=total_minutes / total if total else 0,
        sla_on_time_percent=_iround(total_on_time / total * 100) if total else 0,
        per_day=per_day,
    )


# ── Demand heatmap (admin) ────────────────────────────────────────────────────

class HeatmapRow(BaseModel):
    date: str
    slots: dict[str, int]
    intensity: dict[str, float]


class DemandHeatmap(BaseModel):
    slots: list[str] = [s.id for s in TIME_SLOTS]
    rows: list[HeatmapRow] = []
    max_count: int = 0


def demand_heatmap(orders: list[Order], today: date, tz: tzinfo | None = None) -> DemandHeatmap:
    counts: dict[tuple[str, str], int] = defaultdict(int)
    for o in orders:
        hour = local_hour(o, tz)
        if hour is None or not o.date:
            continue
        for slot in TIME_SLOTS:
            if slot.contains(hour):
                counts[(o.date, slot.id)] += 1

    days = trailing_days(today)
    grid = {d: {s.id: counts.get((d, s.id), 0) for s in TIME_SLOTS} for d in days}
    max_count = max((v for row in grid.values() for v in row.values()), default=0)
    scale = max_count or 1
    rows = [
        HeatmapRow(date=d, slots=grid[d], intensity={k: v / scale for k, v in grid[d].items()})
        for d in days
    ]
    return DemandHeatmap(rows=rows, max_count=max_count)


# ── Next lunch forecast (admin) ───────────────────────────────────────────────

class Forecast(BaseModel):
    forecast: int = 0
    lower: int = 0
    upper: int = 0
    sample_dates: list[str] = []


def next_lunch_forecast(orders: list[Order], today: date, tz: tzinfo | None = None, samples: int = 3) -> Forecast:
    """Lunch-slot demand for today from the same weekday in recent weeks."""
    by_date: dict[str, int] = {}
    today_key = today.isoformat()
    for o in orders:
        if not o.date or o.date >= today_key:
            continue
        hour = local_hour(o, tz)
        if hour is None:
            continue
        try:
            day = date.fromisoformat(o.date)
        except ValueError:
            continue
        if day.weekday() != today.weekday():
            continue
        by_date.setdefault(o.date, 0)
        if LUNCH_SLOT.contains(hour):
            by_date[o.date] += 1

    recent = sorted(by_date, reverse=True)[:samples]
    if not recent:
        return Forecast()

    avg = sum(by_date[d] for d in recent) / len(recent)
    forecast = _iround(avg)
    return Forecast(
        forecast=forecast,
        lower=max(0, _iround(forecast * 0.9)),
        upper=_iround(forecast * 1.15),
        sample_dates=recent,
    )


# ── Vendor prep suggestions ───────────────────────────────────────────────────

class PrepSuggestion(BaseModel):
    id: str | None
    name: str
    forecast: int
    today_prebooked: int
    active_today: int
    prep_now: int


def prep_suggestions(menu, orders: list[Order], today: date, lookback_days: int = 5) -> list[PrepSuggestion]:
    """How many plates of each item to start now, from today's pre-bookings plus recent history."""
    today_key = today.isoformat()
    window_start = (today - timedelta(days=lookback_days)).isoformat()
    out: list[PrepSuggestion] = []

    for item in menu:
        if not item.name:
            continue
        mine = [o for o in orders if o.name == item.name and o.date]
        past = sum(1 for o in mine if window_start <= o.date < today_key)
        todays = [o for o in mine if o.date == today_key]
        prebooked = sum(1 for o in todays if o.status == OrderStatus.PREBOOKED)
        active = sum(1 for o in todays if o.status in ACTIVE_STATUSES)

        forecast = _iround(max(prebooked, prebooked + 0.7 * (past / lookback_days)))
        if forecast <= 0:
            continue

        prep_now = max(0, forecast - active)
        if active == 0:
            prep_now = max(1, _iround(forecast * 0.6))

        out.append(PrepSuggestion(
            id=item.id, name=item.name, forecast=forecast,
            today_prebooked=prebooked, active_today=active, prep_now=prep_now,
        ))

    out.sort(key=lambda s: s.forecast, reverse=True)
    return out


# ── Vendor board ──────────────────────────────────────────────────────────────

class QueueLoad(BaseModel):
    prebooked: int = 0
    preparing: int = 0
    ready: int = 0
    active_total: int = 0


def queue_load(orders: Iterable[Order]) -> QueueLoad:
    c = Counter(o.status for o in orders)
    prebooked = c.get(OrderStatus.PREBOOKED.value, 0)
    preparing = c.get(OrderStatus.PREPARING.value, 0)
    ready = c.get(OrderStatus.READY.value, 0)
    return QueueLoad(prebooked=prebooked, preparing=preparing, ready=ready,
                     active_total=prebooked + preparing + ready)


def board_orders(orders: list[Order], status_filter: str = "Active", search: str = "") -> list[Order]:
    """Kitchen board rows: oldest first, filtered by tab and free-text search."""
    rows = sorted(orders, key=lambda o: o.created_at.timestamp() if o.created_at else 0)
    if status_filter == "Active":
        rows = [o for o in rows if o.status in ACTIVE_STATUSES]
    elif status_filter != "All":
        rows = [o for o in rows if o.status == status_filter]

    needle = search.strip().lower()
    if needle:
        rows = [o for o in rows if needle in (o.name or "").lower() or needle in (o.user_id or "").lower()]
    return rows


# ── Admin summary ─────────────────────────────────────────────────────────────

class AdminSummary(BaseModel):
    total_orders: int = 0
    today_orders: int = 0
    status_counts: dict[str, int] = {}
    today_status_counts: dict[str, int] = {}
    top_items: list[tuple[str, int]] = []
    total_revenue: float = 0
    today_revenue: float = 0
    payment_counts: dict[str, int] = {}
    kitchen_counts: dict[str, int] = {}
    live_queue_length: int = 0
    active_users: int = 0
    new_signups: int = 0
    prebook_percent: int = 0
    est_rush_reduction_percent: int = 0


def admin_summary(orders: list[Order], users: list, now: datetime, today: date) -> AdminSummary:
    today_key = today.isoformat()
    todays = [o for o in orders if o.date == today_key]
    paid = [o for o in orders if o.payment_status == "Paid"]

    items = Counter(o.name or "Unnamed item" for o in orders)
    top_items = sorted(items.items(), key=lambda kv: kv[1], reverse=True)[:3]

    cutoff = now - timedelta(days=WINDOW_DAYS)

    def _since_cutoff(ts: datetime | None) -> bool:
        if ts is None:
            return False
        try:
            return ts >= cutoff
        except TypeError:
            return False

    recent = [o for o in orders if _since_cutoff(o.created_at)]
    active_users = {o.user_id for o in recent if o.user_id}
    signups = sum(1 for u in users if _since_cutoff(getattr(u, "created_at", None)))
    prebooked = sum(1 for o in recent if o.status == OrderStatus.PREBOOKED)
    prebook_pct = _iround(prebooked / len(recent) * 100) if recent else 0

    return AdminSummary(
        total_orders=len(orders),
        today_orders=len(todays),
        status_counts=dict(Counter(o.status or "Unknown" for o in orders)),
        today_status_counts=dict(Counter(o.status or "Unknown" for o in todays)),
        top_items=top_items,
        total_revenue=sum(o.price for o in paid),
        today_revenue=sum(o.price for o in paid if o.date == today_key),
        payment_counts=dict(Counter(o.payment_status for o in orders)),
        kitchen_counts=dict(Counter(o.kitchen or "Main Kitchen" for o in orders)),
        live_queue_length=sum(1 for o in orders if o.status and o.status not in ("Completed", "Cancelled")),
        active_users=len(active_users),
        new_signups=signups,
        prebook_percent=prebook_pct,
        est_rush_reduction_percent=_iround(prebook_pct * 0.3),
    )
