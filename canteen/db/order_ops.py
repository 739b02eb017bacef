"""
Canteen Service — Order and menu writes, re-validated against the stored document

Every write path loads the current document first and re-runs the same
domain guard the UI used to enable the button. A refusal raises
``OperationDenied`` and nothing is written.
"""
import logging
from datetime import datetime
from typing import Any

from canteen.db.document_store import MENU, ORDERS, USERS, DocumentNotFound, DocumentStore
from canteen.domain.admission import BookingMode, admit, is_available
from canteen.domain.documents import MenuItem, Order, Role, UserProfile, parse_menu
from canteen.domain.meal_windows import DEFAULT_WINDOWS, OTHER_CATEGORY, MealWindow, WindowTable
from canteen.domain.orders import (
    DenialKind,
    PaymentMethod,
    TransitionOutcome,
    cancel,
    new_order_fields,
    pay,
    transition,
)
from canteen.domain.profiles import Principal, bootstrap_profile_fields, pick_profile

logger = logging.getLogger(__name__)

INVALID_MENU_ITEM = "invalid_menu_item"
DUPLICATE_PROFILE = "duplicate_profile"

MENU_CATEGORIES = tuple(w.value for w in MealWindow) + (OTHER_CATEGORY,)


class OperationDenied(Exception):
    """A guard refused the write. ``kind`` is the machine-readable reason."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind.value if hasattr(kind, "value") else kind
        self.message = message


# ── Loaders ───────────────────────────────────────────────────────────────────

async def load_order(store: DocumentStore, order_id: str) -> Order:
    doc = await store.get(ORDERS, order_id)
    if doc is None:
        raise DocumentNotFound(ORDERS, order_id)
    return Order.model_validate(doc)


async def load_menu_item(store: DocumentStore, item_id: str) -> MenuItem:
    doc = await store.get(MENU, item_id)
    if doc is None:
        raise DocumentNotFound(MENU, item_id)
    return MenuItem.model_validate(doc)


# ── Orders ────────────────────────────────────────────────────────────────────

async def place_order(
    store: DocumentStore,
    item_id: str,
    mode: BookingMode,
    user_id: str | None,
    now: datetime,
    *,
    email_verified: bool = True,
    table: WindowTable = DEFAULT_WINDOWS,
) -> Order:
    """Book for immediate preparation or pre-book into the next window."""
    item = await load_menu_item(store, item_id)
    decision = admit(item, now, mode, user_id, email_verified=email_verified, table=table)
    if not decision:
        logger.info("Booking refused (%s) for %s on %s: %s", decision.kind.value, user_id, item_id, decision.message)
        raise OperationDenied(decision.kind, decision.message)

    order_id = await store.create(ORDERS, new_order_fields(item, user_id, mode, now))
    logger.info("Order %s placed (%s) by %s for %s", order_id, BookingMode(mode).value, user_id, item.name)
    return await load_order(store, order_id)


async def _commit(store: DocumentStore, outcome: TransitionOutcome, action: str) -> Order:
    if not outcome:
        logger.info("%s refused (%s) on order %s: %s", action, outcome.kind.value, outcome.order.id, outcome.message)
        raise OperationDenied(outcome.kind, outcome.message)
    await store.update(ORDERS, outcome.order.id, outcome.changes)
    logger.info("%s applied to order %s", action, outcome.order.id)
    return await load_order(store, outcome.order.id)


async def cancel_order(store: DocumentStore, order_id: str, user_id: str | None, now: datetime) -> Order:
    order = await load_order(store, order_id)
    return await _commit(store, cancel(order, user_id, now), "Cancel")


async def pay_order(
    store: DocumentStore,
    order_id: str,
    actor_role: Role | str,
    user_id: str | None,
    method: PaymentMethod,
    now: datetime,
) -> Order:
    order = await load_order(store, order_id)
    return await _commit(store, pay(order, actor_role, user_id, method, now), "Payment")


async def change_status(
    store: DocumentStore,
    order_id: str,
    target: str,
    actor_role: Role | str,
    user_id: str | None,
    now: datetime,
) -> Order:
    order = await load_order(store, order_id)
    return await _commit(store, transition(order, target, actor_role, user_id, now), f"Status → {target}")


# ── Menu ──────────────────────────────────────────────────────────────────────

def _reject(kind: str, message: str) -> None:
    logger.info("Menu change refused (%s): %s", kind, message)
    raise OperationDenied(kind, message)


def _clean_menu_fields(fields: dict[str, Any], *, creating: bool) -> dict[str, Any]:
    """Validate a create body, or the fields a patch explicitly sends (null clears)."""
    out = {k: v for k, v in fields.items() if v is not None} if creating else dict(fields)
    if "name" in out or creating:
        name = (out.get("name") or "").strip()
        if not name:
            _reject(INVALID_MENU_ITEM, "Menu item needs a name.")
        out["name"] = name
    if "price" in out or creating:
        try:
            price = float(out.get("price") or 0)
        except (TypeError, ValueError):
            price = 0
        if price <= 0:
            _reject(INVALID_MENU_ITEM, "Price must be greater than zero.")
        out["price"] = price
    if "category" in out and out["category"] not in MENU_CATEGORIES:
        _reject(INVALID_MENU_ITEM, f"Category must be one of: {', '.join(MENU_CATEGORIES)}.")
    if creating:
        out.setdefault("category", MealWindow.LUNCH.value)
        out.setdefault("available", True)
    return out


def _check_menu_owner(item: MenuItem, vendor_id: str | None) -> None:
    # Legacy items (no vendorId) are shared by every vendor.
    if item.vendor_id and item.vendor_id != vendor_id:
        _reject(DenialKind.NOT_OWNER.value, f'"{item.name}" belongs to another vendor.')


def vendor_menu(menu: list[MenuItem], vendor_id: str | None) -> list[MenuItem]:
    """Legacy items plus the vendor's own, by name."""
    mine = [m for m in menu if not m.vendor_id or m.vendor_id == vendor_id]
    return sorted(mine, key=lambda m: m.name.lower())


async def list_vendor_menu(store: DocumentStore, vendor_id: str | None) -> list[MenuItem]:
    return vendor_menu(parse_menu(await store.list(MENU)), vendor_id)


async def create_menu_item(store: DocumentStore, fields: dict[str, Any], vendor_id: str | None) -> MenuItem:
    clean = _clean_menu_fields(fields, creating=True)
    if vendor_id:
        clean["vendorId"] = vendor_id
    item_id = await store.create(MENU, clean)
    logger.info("Menu item %s created: %s", item_id, clean["name"])
    return await load_menu_item(store, item_id)


async def update_menu_item(
    store: DocumentStore, item_id: str, fields: dict[str, Any], vendor_id: str | None,
) -> MenuItem:
    item = await load_menu_item(store, item_id)
    _check_menu_owner(item, vendor_id)
    clean = _clean_menu_fields(fields, creating=False)
    if clean:
        await store.update(MENU, item_id, clean)
    return await load_menu_item(store, item_id)


async def toggle_availability(store: DocumentStore, item_id: str, vendor_id: str | None) -> MenuItem:
    item = await load_menu_item(store, item_id)
    _check_menu_owner(item, vendor_id)
    await store.update(MENU, item_id, {"available": not is_available(item.available)})
    return await load_menu_item(store, item_id)


async def delete_menu_item(store: DocumentStore, item_id: str, vendor_id: str | None) -> None:
    item = await load_menu_item(store, item_id)
    _check_menu_owner(item, vendor_id)
    await store.delete(MENU, item_id)
    logger.info("Menu item %s deleted", item_id)


# ── Profiles ──────────────────────────────────────────────────────────────────

async def ensure_profile(store: DocumentStore, principal: Principal) -> UserProfile:
    """Find (or create) the profile for a signed-in principal.

    An email match binds the profile to this uid only when nobody holds it
    yet and the principal has verified that email. Until then the caller is
    treated as a plain employee and nothing is written. A profile with no
    role gets the employee default written back.
    """
    docs = await store.list(USERS)
    profiles = [UserProfile.model_validate(d) for d in docs]
    profile, needs_binding = pick_profile(principal, profiles)

    if needs_binding and not principal.email_verified:
        logger.info("Profile %s not bound: %s is unverified", profile.id, principal.email)
        fields = bootstrap_profile_fields(principal)
        fields.pop("createdVia")
        return UserProfile.model_validate(fields)

    if profile is None:
        profile_id = await store.create(USERS, bootstrap_profile_fields(principal))
        logger.info("Bootstrapped employee profile %s for %s", profile_id, principal.email or principal.id)
        return UserProfile.model_validate(await store.get(USERS, profile_id))

    fixes: dict[str, Any] = {}
    if needs_binding:
        fixes["uid"] = principal.id
    raw = next(d for d in docs if d.get("id") == profile.id)
    if not raw.get("role"):
        fixes["role"] = Role.EMPLOYEE.value
    if fixes:
        await store.update(USERS, profile.id, fixes)
        logger.info("Profile %s updated on sign-in: %s", profile.id, sorted(fixes))
        return UserProfile.model_validate(await store.get(USERS, profile.id))
    return profile


async def provision_vendor(store: DocumentStore, fields: dict[str, Any]) -> UserProfile:
    """Create an unbound vendor profile; the vendor claims it by signing in with that email."""
    email = fields.get("email")
    existing = await store.list(USERS, {"email": email})
    if existing:
        logger.info("Vendor provisioning refused: %s already has a profile", email)
        raise OperationDenied(DUPLICATE_PROFILE, f"A profile for {email} already exists.")
    profile_id = await store.create(USERS, {**fields, "role": Role.VENDOR.value, "uid": None})
    logger.info("Provisioned vendor profile %s (%s)", profile_id, fields.get("vendorId"))
    return UserProfile.model_validate(await store.get(USERS, profile_id))
