"""
Canteen Core — Admission controller

Decides whether a menu item may be booked for immediate preparation or
pre-booked into the next meal window. Refusals are returned as values with a
kind tag; nothing here raises for an ordinary "no".
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from canteen.domain.documents import MenuItem
from canteen.domain.meal_windows import DEFAULT_WINDOWS, MealWindow, WindowTable, next_window, window_at

_TRUTHY_STRINGS = frozenset({"yes", "y", "true", "available"})


class AdmissionKind(str, PyEnum):
    OUTSIDE_WINDOW = "outside_window"
    WRONG_WINDOW = "wrong_window"
    ITEM_UNAVAILABLE = "item_unavailable"
    NO_IDENTITY = "no_identity"
    EMAIL_UNVERIFIED = "email_unverified"


class BookingMode(str, PyEnum):
    IMMEDIATE = "immediate"
    PREBOOK = "prebook"


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    kind: AdmissionKind | None = None
    message: str = ""
    window: MealWindow | None = None

    def __bool__(self) -> bool:
        return self.allowed


def is_available(value: Any) -> bool:
    """Normalize the free-form ``available`` field.

    Strings count when they read like a yes ("Yes", " y ", "TRUE", "available");
    anything else falls back to its truthiness, so None/0/""/False are unavailable.
    """
    if isinstance(value, MenuItem):
        value = value.available
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return bool(value)


def deny(kind: AdmissionKind, message: str, window: MealWindow | None = None) -> AdmissionDecision:
    return AdmissionDecision(allowed=False, kind=kind, message=message, window=window)


def _decide(item: MenuItem, now: datetime, mode: BookingMode, table: WindowTable) -> AdmissionDecision:
    current = window_at(now, table)
    if current is None:
        return deny(
            AdmissionKind.OUTSIDE_WINDOW,
            "No meal window is active right now. Ordering opens at the next window.",
        )

    target = current if mode == BookingMode.IMMEDIATE else next_window(current)
    if item.category != target.value:
        if mode == BookingMode.IMMEDIATE:
            msg = f'"{item.name}" is a {item.category} item; only {current.value} items can be ordered now.'
        else:
            msg = f'"{item.name}" is a {item.category} item; only {target.value} items can be pre-booked now.'
        return deny(AdmissionKind.WRONG_WINDOW, msg, current)

    if not is_available(item.available):
        return deny(AdmissionKind.ITEM_UNAVAILABLE, f'"{item.name}" is not available right now.', current)

    return AdmissionDecision(allowed=True, window=current)


def can_book_now(item: MenuItem, now: datetime, table: WindowTable = DEFAULT_WINDOWS) -> AdmissionDecision:
    return _decide(item, now, BookingMode.IMMEDIATE, table)


def can_prebook(item: MenuItem, now: datetime, table: WindowTable = DEFAULT_WINDOWS) -> AdmissionDecision:
    return _decide(item, now, BookingMode.PREBOOK, table)


def admit(
    item: MenuItem,
    now: datetime,
    mode: BookingMode,
    user_id: str | None,
    *,
    email_verified: bool = True,
    table: WindowTable = DEFAULT_WINDOWS,
) -> AdmissionDecision:
    """Full booking gate: identity checks first, then the window/item rules."""
    if not user_id:
        return deny(AdmissionKind.NO_IDENTITY, "No Employee ID linked to this account.")
    if not email_verified:
        return deny(AdmissionKind.EMAIL_UNVERIFIED, "Verify your email address before ordering.")
    return _decide(item, now, BookingMode(mode), table)
