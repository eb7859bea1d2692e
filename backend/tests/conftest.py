"""
Pytest fixtures for the store, services, HTTP client and authentication.

Every test gets its own SQLite file database under tmp_path (a file, not
:memory:, so concurrent sessions really use separate connections) and runs
with Redis disabled.
"""

import os

os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from railbook.core.config import Settings, get_settings
from railbook.core.security import InMemoryAuthProvider
from railbook.db.store import InventoryStore
from railbook.main import create_app
from railbook.models import Booking, Schedule, SeatClass, Train
from railbook.schemas.train import TrainCreate
from railbook.services.booking_service import BookingEngine
from railbook.services.schedule_admin import ScheduleAdmin

SCENARIO_DATE = date(2025, 6, 1)

ADMIN = ("admin", "admin-password")
ALICE = ("alice", "alice-password")
BOB = ("bob", "bob-password")


@pytest.fixture
def settings(tmp_path) -> Settings:
    get_settings.cache_clear()
    return get_settings().model_copy(
        update={
            "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'railbook_test.db'}",
            "BOOKING_RETRY_BACKOFF_MS": 1,
            "ADMIN_USERNAME": ADMIN[0],
        }
    )


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncGenerator[InventoryStore, None]:
    """Fresh schema in a throwaway database file."""
    store = InventoryStore.from_settings(settings)
    await store.create_all()
    yield store
    await store.drop_all()
    await store.dispose()


@pytest.fixture
def engine(store: InventoryStore, settings: Settings) -> BookingEngine:
    return BookingEngine(store, settings)


@pytest.fixture
def admin(store: InventoryStore) -> ScheduleAdmin:
    return ScheduleAdmin(store)


def make_train(number: str = "T1", **overrides) -> TrainCreate:
    data = {
        "train_number": number,
        "train_name": "Coastal Express",
        "source": "Mumbai",
        "destination": "Goa",
        "departure_time": "22:15",
        "journey_duration": "11:30",
        "total_ac_seats": 10,
        "total_sleeper_seats": 20,
        "ac_fare": Decimal("500.00"),
        "sleeper_fare": Decimal("250.00"),
    }
    data.update(overrides)
    return TrainCreate(**data)


@pytest_asyncio.fixture
async def t1(admin: ScheduleAdmin) -> Train:
    """Train T1: 10 AC seats at 500, 20 sleeper seats at 250."""
    return await admin.add_train(make_train())


@pytest_asyncio.fixture
async def schedule(admin: ScheduleAdmin, t1: Train) -> Schedule:
    """T1 scheduled for the scenario date with full availability."""
    return await admin.schedule_train(t1.train_number, SCENARIO_DATE)


async def availability(store: InventoryStore, schedule_id: int, seat_class: SeatClass) -> int:
    async with store.snapshot() as session:
        schedule = await session.get(Schedule, schedule_id)
        return schedule.available_for(seat_class)


async def live_seats(store: InventoryStore, schedule_id: int, seat_class: SeatClass) -> int:
    """Seats held by live bookings for a schedule/class."""
    async with store.snapshot() as session:
        total = await session.scalar(
            select(func.coalesce(func.sum(Booking.num_seats), 0)).where(
                Booking.schedule_id == schedule_id,
                Booking.seat_class == seat_class.value,
            )
        )
        return int(total)


async def booking_count(store: InventoryStore) -> int:
    async with store.snapshot() as session:
        return await session.scalar(select(func.count()).select_from(Booking))


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_provider() -> InMemoryAuthProvider:
    # Low iteration count keeps hashing fast in tests
    provider = InMemoryAuthProvider(iterations=1000)
    for username, password in (ADMIN, ALICE, BOB):
        provider.register(username, password)
    return provider


@pytest_asyncio.fixture
async def client(
    store: InventoryStore,
    auth_provider: InMemoryAuthProvider,
    settings: Settings,
    monkeypatch,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test store."""
    monkeypatch.setenv("ADMIN_USERNAME", ADMIN[0])
    monkeypatch.setenv("BOOKING_RETRY_BACKOFF_MS", "1")
    get_settings.cache_clear()

    app = create_app(store=store, auth_provider=auth_provider)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    get_settings.cache_clear()


@pytest.fixture
def upcoming_date() -> date:
    return date.today() + timedelta(days=30)


@pytest_asyncio.fixture
async def upcoming_schedule(admin: ScheduleAdmin, t1: Train, upcoming_date: date) -> Schedule:
    return await admin.schedule_train(t1.train_number, upcoming_date)
