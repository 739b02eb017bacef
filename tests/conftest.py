"""
Shared fixtures: in-memory document store, pinned clocks, ASGI test client.

The settings cache is read at import time, so the environment is set here
before anything from ``canteen`` is imported.
"""
import os

os.environ.setdefault("DOCUMENT_STORE_BACKEND", "memory")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("LOCAL_TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest
import pytest_asyncio

from canteen.api.dependencies import local_now
from canteen.core.security import create_email_verification_token
from canteen.db.document_store import MENU, USERS, MemoryDocumentStore, get_store
from canteen.main import app

IST = ZoneInfo("Asia/Kolkata")

# Wednesday, inside the Lunch window.
LUNCH_TIME = datetime(2024, 1, 10, 13, 0, tzinfo=IST)
PASSWORD = "CanteenPass123!"


class FakeClock:
    """Store clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now = self.now + timedelta(minutes=minutes)


# ─── Fixtures ──────────────────────────────────────────────────────────────────
@pytest.fixture
def clock():
    return FakeClock(LUNCH_TIME.astimezone(timezone.utc))


@pytest.fixture
def store(clock):
    return MemoryDocumentStore(clock=clock)


@pytest_asyncio.fixture
async def client(store):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[local_now] = lambda: LUNCH_TIME
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def menu_ids(store):
    """One item per category plus a sold-out lunch item."""
    ids = {}
    for key, fields in {
        "thali": {"name": "Veg Thali", "price": 80, "category": "Lunch", "available": True},
        "samosa": {"name": "Samosa", "price": 20, "category": "Snacks", "available": "Yes"},
        "poha": {"name": "Poha", "price": 30, "category": "Breakfast", "available": True},
        "biryani": {"name": "Biryani", "price": 120, "category": "Lunch", "available": "no"},
    }.items():
        ids[key] = await store.create(MENU, fields)
    return ids


async def sign_in(
    client: httpx.AsyncClient,
    store: MemoryDocumentStore,
    email: str,
    *,
    role: str | None = None,
    employee_id: str | None = None,
    vendor_id: str | None = None,
    verified: bool = True,
) -> dict[str, str]:
    """Register (and optionally verify) an account, pre-seeding its profile; returns auth headers.

    The verification token is minted here, standing in for the mail the user
    would receive.
    """
    if role or employee_id:
        await store.create(USERS, {
            "email": email,
            "role": role or "employee",
            "employeeId": employee_id,
            "vendorId": vendor_id,
            "uid": None,
        })

    r = await client.post("/auth/register", json={"email": email, "password": PASSWORD})
    assert r.status_code == 201, f"Register failed: {r.text}"
    if verified:
        token = create_email_verification_token(r.json()["id"], email)
        v = await client.post("/auth/verify-email", json={"token": token})
        assert v.status_code == 200, f"Verify failed: {v.text}"

    r = await client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, f"Login failed: {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
