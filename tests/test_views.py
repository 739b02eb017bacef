"""
Snapshot view reducer and status-change notifications.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from canteen.domain.admission import AdmissionKind
from canteen.domain.documents import MenuItem, Order
from canteen.domain.meal_windows import MealWindow
from canteen.domain.views import ALL_CATEGORIES, derive_view, effective_category, status_changes, status_index

IST = ZoneInfo("Asia/Kolkata")

MENU = [
    MenuItem.model_validate({"id": "m1", "name": "Thali", "price": 80, "category": "Lunch", "available": True}),
    MenuItem.model_validate({"id": "m2", "name": "Samosa", "price": 20, "category": "Snacks", "available": True}),
    MenuItem.model_validate({"id": "m3", "name": "Poha", "price": 30, "category": "Breakfast", "available": True}),
]


def _order(oid: str, status: str, name: str = "Thali", user: str = "E100") -> Order:
    return Order.model_validate({"id": oid, "name": name, "status": status, "userId": user, "date": "2024-01-10"})


# ─── derive_view ──────────────────────────────────────────────────────────────
def test_view_at_lunch_shows_current_and_next_window():
    now = datetime(2024, 1, 10, 13, 0, tzinfo=IST)
    orders = [_order("o1", "Preparing"), _order("o2", "Ready", user="E200")]
    view = derive_view(orders, MENU, now, user_id="E100", category_filter="Breakfast", tz=IST)

    assert view.window == MealWindow.LUNCH
    assert view.next_window == MealWindow.SNACKS
    assert view.category_filter == "Lunch"  # the window overrides the caller's tab
    entries = {e.item.name: e for e in view.menu}
    assert set(entries) == {"Thali", "Samosa"}
    assert entries["Thali"].can_book_now and not entries["Thali"].can_prebook
    assert entries["Samosa"].can_prebook and not entries["Samosa"].can_book_now
    assert entries["Samosa"].book_denial == AdmissionKind.WRONG_WINDOW
    # only the caller's own active orders feed the estimate
    assert view.queue_estimate.active_count == 1
    assert [r.name for r in view.recommendations] == ["Thali"]


def test_view_outside_windows_uses_tab_and_refuses_everything():
    now = datetime(2024, 1, 10, 2, 0, tzinfo=IST)
    view = derive_view([], MENU, now, user_id="E100")

    assert view.window is None
    assert view.next_window is None
    assert view.category_filter == ALL_CATEGORIES
    assert len(view.menu) == 3
    assert all(e.book_denial == AdmissionKind.OUTSIDE_WINDOW for e in view.menu)
    assert not any(e.can_book_now or e.can_prebook for e in view.menu)
    assert view.queue_estimate.est_minutes == 0


def test_view_outside_windows_respects_tab():
    now = datetime(2024, 1, 10, 2, 0, tzinfo=IST)
    view = derive_view([], MENU, now, category_filter="Snacks")
    assert [e.item.name for e in view.menu] == ["Samosa"]


def test_effective_category():
    assert effective_category(MealWindow.DINNER, "Lunch") == "Dinner"
    assert effective_category(None, "Lunch") == "Lunch"
    assert effective_category(None, "") == ALL_CATEGORIES


# ─── status_changes ───────────────────────────────────────────────────────────
def test_status_changes_reports_vendor_moves_only():
    previous = {"o1": "Prebooked", "o2": "Preparing", "o3": "Prebooked", "o5": None}
    current = [
        _order("o1", "Preparing"),
        _order("o2", "Preparing"),
        _order("o3", "Cancelled"),     # employee's own cancel
        _order("o4", "Preparing"),     # new since last snapshot
        _order("o5", "Ready"),
    ]
    changes = status_changes(previous, current)
    assert [(c.order_id, c.previous, c.current) for c in changes] == [("o1", "Prebooked", "Preparing")]
    assert changes[0].message == 'Order "Thali" status changed to Preparing'


def test_status_index():
    assert status_index([_order("o1", "Ready"), Order.model_validate({"status": "Ready"})]) == {"o1": "Ready"}
