"""
Admission controller: book-now / pre-book decisions against the meal-window calendar.
"""
from datetime import datetime

import pytest

from canteen.domain.admission import (
    AdmissionKind,
    BookingMode,
    admit,
    can_book_now,
    can_prebook,
    is_available,
)
from canteen.domain.documents import MenuItem

AT_13 = datetime(2024, 1, 10, 13, 0)
AT_02 = datetime(2024, 1, 10, 2, 0)
AT_20 = datetime(2024, 1, 10, 20, 0)


def _item(name: str, category: str, available=True) -> MenuItem:
    return MenuItem.model_validate({"id": name.lower(), "name": name, "price": 50, "category": category,
                                    "available": available})


THALI = _item("Thali", "Lunch")
SAMOSA = _item("Samosa", "Snacks")
POHA = _item("Poha", "Breakfast")


# ─── 13:00, Lunch window ──────────────────────────────────────────────────────
def test_lunch_item_bookable_at_lunch():
    decision = can_book_now(THALI, AT_13)
    assert decision.allowed
    assert decision.window.value == "Lunch"


def test_snacks_item_prebookable_at_lunch():
    assert can_prebook(SAMOSA, AT_13).allowed


def test_snacks_item_not_bookable_now_at_lunch():
    decision = can_book_now(SAMOSA, AT_13)
    assert not decision
    assert decision.kind == AdmissionKind.WRONG_WINDOW
    assert "Lunch" in decision.message


def test_breakfast_item_refused_both_ways_at_lunch():
    assert can_book_now(POHA, AT_13).kind == AdmissionKind.WRONG_WINDOW
    assert can_prebook(POHA, AT_13).kind == AdmissionKind.WRONG_WINDOW


def test_lunch_item_not_prebookable_at_lunch():
    assert can_prebook(THALI, AT_13).kind == AdmissionKind.WRONG_WINDOW


def test_unavailable_item_refused_after_window_check():
    sold_out = _item("Biryani", "Lunch", available="no")
    assert can_book_now(sold_out, AT_13).kind == AdmissionKind.ITEM_UNAVAILABLE
    # wrong window wins over availability
    assert can_prebook(sold_out, AT_13).kind == AdmissionKind.WRONG_WINDOW


# ─── 02:00, outside every window ──────────────────────────────────────────────
@pytest.mark.parametrize("item", [THALI, SAMOSA, POHA])
def test_nothing_admitted_outside_windows(item):
    assert can_book_now(item, AT_02).kind == AdmissionKind.OUTSIDE_WINDOW
    assert can_prebook(item, AT_02).kind == AdmissionKind.OUTSIDE_WINDOW


def test_dinner_prebooks_next_breakfast():
    assert can_prebook(POHA, AT_20).allowed


# ─── Availability normalization ───────────────────────────────────────────────
@pytest.mark.parametrize("value,expected", [
    (True, True),
    ("Yes", True),
    (" y ", True),
    ("TRUE", True),
    ("available", True),
    (1, True),
    (False, False),
    ("no", False),
    ("Nope", False),
    ("", False),
    (None, False),
    (0, False),
])
def test_is_available(value, expected):
    assert is_available(value) is expected


# ─── Identity gate ────────────────────────────────────────────────────────────
def test_admit_requires_identity_before_anything_else():
    decision = admit(THALI, AT_02, BookingMode.IMMEDIATE, None)
    assert decision.kind == AdmissionKind.NO_IDENTITY


def test_admit_requires_verified_email():
    decision = admit(THALI, AT_13, BookingMode.IMMEDIATE, "E100", email_verified=False)
    assert decision.kind == AdmissionKind.EMAIL_UNVERIFIED


def test_admit_accepts_string_mode():
    assert admit(SAMOSA, AT_13, "prebook", "E100").allowed
