"""
Canteen Core — Order state machine

    Prebooked ─┬─► Preparing ─┬─► Ready ─► Completed
               │              └──────────► Completed
               ├─► Ready / Completed            (vendor)
               └─► Cancelled                    (owning employee, only while Prebooked)

Completed and Cancelled are terminal. Every accepted transition yields the
partial document to write; a refused one yields a kind-tagged reason and
leaves the order untouched.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any

from canteen.domain.admission import BookingMode
from canteen.domain.documents import (
    MenuItem,
    Order,
    OrderStatus,
    PaymentStatus,
    Role,
    TERMINAL_STATUSES,
)

# ── Transition maps ───────────────────────────────────────────────────────────
VENDOR_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PREBOOKED: frozenset({OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.COMPLETED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
}
EMPLOYEE_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PREBOOKED: frozenset({OrderStatus.CANCELLED}),
}


class DenialKind(str, PyEnum):
    INVALID_TRANSITION = "invalid_transition"
    NOT_PERMITTED = "not_permitted"
    NOT_OWNER = "not_owner"
    ORDER_TERMINAL = "order_terminal"
    UNKNOWN_STATUS = "unknown_status"
    ORDER_CANCELLED = "order_cancelled"
    ALREADY_PAID = "already_paid"


class PaymentMethod(str, PyEnum):
    ONLINE = "online"
    CASH = "cash"


@dataclass(frozen=True)
class TransitionOutcome:
    allowed: bool
    order: Order
    kind: DenialKind | None = None
    message: str = ""
    changes: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.allowed


def _parse_status(value: Any) -> OrderStatus | None:
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def _label(order: Order) -> str:
    return order.name or "item"


def _refuse(order: Order, kind: DenialKind, message: str) -> TransitionOutcome:
    return TransitionOutcome(allowed=False, order=order, kind=kind, message=message)


def _accept(order: Order, changes: dict[str, Any], message: str) -> TransitionOutcome:
    update = {
        "status": changes.get("status", order.status),
        "payment_status": changes.get("paymentStatus", order.payment_status),
        "updated_at": changes["updatedAt"],
    }
    return TransitionOutcome(allowed=True, order=order.model_copy(update=update), message=message, changes=changes)


def can_transition(current: Any, target: Any, role: Role = Role.VENDOR) -> bool:
    """Table lookup only (no ownership check); used to enable board actions."""
    src, dst = _parse_status(current), _parse_status(target)
    if src is None or dst is None:
        return False
    table = VENDOR_TRANSITIONS if Role(role) == Role.VENDOR else EMPLOYEE_TRANSITIONS
    return dst in table.get(src, frozenset())


def can_cancel(order: Order) -> bool:
    return _parse_status(order.status) == OrderStatus.PREBOOKED


def transition(
    order: Order,
    target: Any,
    actor_role: Role | str,
    actor_user_id: str | None = None,
    now: datetime | None = None,
) -> TransitionOutcome:
    """Apply a status change on behalf of ``actor_role``."""
    now = now or datetime.now(timezone.utc)
    current = _parse_status(order.status)
    if current is None:
        return _refuse(order, DenialKind.UNKNOWN_STATUS, f'Order "{_label(order)}" has an unknown status ({order.status}).')

    wanted = _parse_status(target)
    if wanted is None:
        return _refuse(order, DenialKind.INVALID_TRANSITION, f"Unknown target status '{target}'.")

    if current.value in TERMINAL_STATUSES:
        return _refuse(
            order, DenialKind.ORDER_TERMINAL,
            f'Order "{_label(order)}" is already {current.value}; no further changes are possible.',
        )

    if wanted in VENDOR_TRANSITIONS.get(current, frozenset()):
        if actor_role != Role.VENDOR:
            return _refuse(order, DenialKind.NOT_PERMITTED, "Only the vendor can move an order through the kitchen.")
        changes = {"status": wanted.value, "updatedAt": now}
        return _accept(order, changes, f'Order "{_label(order)}" is now {wanted.value}.')

    if wanted in EMPLOYEE_TRANSITIONS.get(current, frozenset()):
        if actor_role != Role.EMPLOYEE:
            return _refuse(order, DenialKind.NOT_PERMITTED, "Only the employee who placed the order can cancel it.")
        if not actor_user_id or actor_user_id != order.user_id:
            return _refuse(order, DenialKind.NOT_OWNER, "You can only cancel your own orders.")
        refund = order.payment_status == PaymentStatus.PAID
        changes = {
            "status": OrderStatus.CANCELLED.value,
            "paymentStatus": (PaymentStatus.REFUNDED if refund else PaymentStatus.PENDING).value,
            "updatedAt": now,
        }
        return _accept(order, changes, f'Cancelled "{_label(order)}".')

    if wanted == OrderStatus.CANCELLED:
        return _refuse(
            order, DenialKind.INVALID_TRANSITION,
            f'Order "{_label(order)}" can no longer be cancelled (status: {current.value}).',
        )
    return _refuse(
        order, DenialKind.INVALID_TRANSITION,
        f"Cannot move order from {current.value} to {wanted.value}.",
    )


def cancel(order: Order, actor_user_id: str | None, now: datetime | None = None) -> TransitionOutcome:
    return transition(order, OrderStatus.CANCELLED, Role.EMPLOYEE, actor_user_id, now)


def pay(
    order: Order,
    actor_role: Role | str,
    actor_user_id: str | None = None,
    method: PaymentMethod = PaymentMethod.ONLINE,
    now: datetime | None = None,
) -> TransitionOutcome:
    """Mark an order paid: online by its owner, or cash at the counter by the vendor."""
    now = now or datetime.now(timezone.utc)
    if actor_role == Role.EMPLOYEE:
        if not actor_user_id or actor_user_id != order.user_id:
            return _refuse(order, DenialKind.NOT_OWNER, "You can only pay for your own orders.")
    elif actor_role != Role.VENDOR:
        return _refuse(order, DenialKind.NOT_PERMITTED, "Only the employee or the vendor can record a payment.")

    if order.payment_status == PaymentStatus.PAID:
        return _refuse(order, DenialKind.ALREADY_PAID, f'Order "{_label(order)}" is already paid.')
    if _parse_status(order.status) == OrderStatus.CANCELLED:
        return _refuse(order, DenialKind.ORDER_CANCELLED, f'Cancelled order "{_label(order)}" cannot be paid.')

    changes = {"paymentStatus": PaymentStatus.PAID.value, "updatedAt": now}
    how = "online (demo)" if PaymentMethod(method) == PaymentMethod.ONLINE else "in cash"
    return _accept(order, changes, f'Payment recorded for "{_label(order)}" {how}.')


def new_order_fields(item: MenuItem, user_id: str, mode: BookingMode | str, now: datetime) -> dict[str, Any]:
    """Document for a freshly admitted booking.

    ``now`` must already be in canteen-local time: the ``date`` string is fixed
    here and never recomputed. Timestamps are assigned by the store.
    """
    status = OrderStatus.PREPARING if BookingMode(mode) == BookingMode.IMMEDIATE else OrderStatus.PREBOOKED
    return {
        "itemId": item.id,
        "name": item.name or "item",
        "price": item.price or 0,
        "userId": user_id,
        "status": status.value,
        "paymentStatus": PaymentStatus.PENDING.value,
        "date": now.date().isoformat(),
    }
