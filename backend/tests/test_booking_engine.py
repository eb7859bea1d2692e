"""
Tests for the booking engine: booking, cancellation and reports.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from railbook.core.exceptions import (
    InsufficientSeats,
    InvalidRequest,
    NotFound,
    NotOwner,
    StorageFailure,
    TransientFailure,
)
from railbook.models import Schedule, SeatClass
from railbook.services.booking_service import BookingEngine, generate_ticket_id
from conftest import (
    SCENARIO_DATE,
    availability,
    booking_count,
    live_seats,
    make_train,
)


async def assert_ledger_balanced(store, schedule_id):
    """Live bookings plus remaining seats always equal the train's totals."""
    assert await live_seats(store, schedule_id, SeatClass.AC) + await availability(
        store, schedule_id, SeatClass.AC
    ) == 10
    assert await live_seats(store, schedule_id, SeatClass.SLEEPER) + await availability(
        store, schedule_id, SeatClass.SLEEPER
    ) == 20


def test_generated_ticket_ids_have_expected_shape():
    ticket_id = generate_ticket_id()
    assert ticket_id.startswith("TKT")
    assert len(ticket_id) == 11
    assert ticket_id[3:].isdigit()


@pytest.mark.asyncio
async def test_scenario(engine, store, schedule):
    """alice books 4 of 10, bob cannot get 7, alice cancels twice."""
    sid = schedule.schedule_id

    booking = await engine.book(sid, "alice", SeatClass.AC, 4)
    assert booking.total_fare == Decimal("2000.00")
    assert await availability(store, sid, SeatClass.AC) == 6

    with pytest.raises(InsufficientSeats) as exc_info:
        await engine.book(sid, "bob", SeatClass.AC, 7)
    assert exc_info.value.requested == 7
    assert exc_info.value.available == 6
    assert await availability(store, sid, SeatClass.AC) == 6

    await engine.cancel(booking.ticket_id, "alice")
    assert await availability(store, sid, SeatClass.AC) == 10

    with pytest.raises(NotFound):
        await engine.cancel(booking.ticket_id, "alice")
    assert await availability(store, sid, SeatClass.AC) == 10


@pytest.mark.asyncio
async def test_booking_record(engine, schedule):
    booking = await engine.book(schedule.schedule_id, "alice", SeatClass.SLEEPER, 3)

    assert booking.ticket_id.startswith("TKT")
    assert booking.username == "alice"
    assert booking.schedule_id == schedule.schedule_id
    assert booking.seat_class == "Sleeper"
    assert booking.num_seats == 3
    assert booking.total_fare == Decimal("750.00")
    assert booking.booked_at is not None


@pytest.mark.asyncio
async def test_classes_have_independent_pools(engine, store, schedule):
    sid = schedule.schedule_id
    await engine.book(sid, "alice", SeatClass.AC, 10)

    with pytest.raises(InsufficientSeats):
        await engine.book(sid, "bob", SeatClass.AC, 1)

    await engine.book(sid, "bob", SeatClass.SLEEPER, 20)
    assert await availability(store, sid, SeatClass.AC) == 0
    assert await availability(store, sid, SeatClass.SLEEPER) == 0
    await assert_ledger_balanced(store, sid)


@pytest.mark.asyncio
async def test_book_exactly_remaining_seats(engine, store, schedule):
    await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 6)
    await engine.book(schedule.schedule_id, "bob", SeatClass.AC, 4)
    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("num_seats", [0, -3])
async def test_non_positive_seat_count(engine, store, schedule, num_seats):
    with pytest.raises(InvalidRequest):
        await engine.book(schedule.schedule_id, "alice", SeatClass.AC, num_seats)

    assert await booking_count(store) == 0
    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 10


@pytest.mark.asyncio
async def test_unknown_seat_class(engine, schedule):
    with pytest.raises(InvalidRequest):
        await engine.book(schedule.schedule_id, "alice", "FirstClass", 1)


@pytest.mark.asyncio
async def test_book_unknown_schedule(engine, store):
    with pytest.raises(NotFound):
        await engine.book(99999, "alice", SeatClass.AC, 1)
    assert await booking_count(store) == 0


@pytest.mark.asyncio
async def test_failed_booking_leaves_state_untouched(engine, store, schedule):
    sid = schedule.schedule_id
    await engine.book(sid, "alice", SeatClass.AC, 8)
    before = (
        await availability(store, sid, SeatClass.AC),
        await availability(store, sid, SeatClass.SLEEPER),
        await booking_count(store),
    )

    with pytest.raises(InsufficientSeats):
        await engine.book(sid, "bob", SeatClass.AC, 3)

    after = (
        await availability(store, sid, SeatClass.AC),
        await availability(store, sid, SeatClass.SLEEPER),
        await booking_count(store),
    )
    assert after == before


@pytest.mark.asyncio
async def test_ticket_id_collision_is_regenerated(store, settings, schedule):
    ids = iter(["TKT00000001", "TKT00000001", "TKT00000001", "TKT00000002"])
    engine = BookingEngine(store, settings, ticket_id_factory=lambda: next(ids))

    first = await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 1)
    second = await engine.book(schedule.schedule_id, "bob", SeatClass.AC, 2)

    assert first.ticket_id == "TKT00000001"
    assert second.ticket_id == "TKT00000002"
    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 7
    await assert_ledger_balanced(store, schedule.schedule_id)


@pytest.mark.asyncio
async def test_exhausted_ticket_ids_roll_back_the_decrement(store, settings, schedule):
    engine = BookingEngine(store, settings, ticket_id_factory=lambda: "TKT00000001")
    await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 1)

    with pytest.raises(TransientFailure):
        await engine.book(schedule.schedule_id, "bob", SeatClass.AC, 2)

    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 9
    assert await booking_count(store) == 1


@pytest.mark.asyncio
async def test_non_collision_insert_failure_is_not_retried(store, settings, schedule):
    """A constraint failure other than a duplicate id aborts with the decrement."""
    issued = []

    def next_ticket_id():
        issued.append(f"TKT{len(issued) + 1:08d}")
        return issued[-1]

    engine = BookingEngine(store, settings, ticket_id_factory=next_ticket_id)
    sid = schedule.schedule_id

    with pytest.raises(StorageFailure):
        async with store.transaction() as session:
            await session.execute(
                update(Schedule)
                .where(Schedule.schedule_id == sid)
                .values(ac_seats_available=Schedule.ac_seats_available - 1)
            )
            await engine._insert_booking(
                session,
                username="alice",
                schedule_id=sid,
                seat_class=SeatClass.AC.value,
                num_seats=0,
                total_fare=Decimal("0.00"),
            )

    assert issued == ["TKT00000001"]
    assert await availability(store, sid, SeatClass.AC) == 10
    assert await booking_count(store) == 0


@pytest.mark.asyncio
async def test_transient_failure_is_retried(engine, store, schedule, monkeypatch):
    real_book_once = engine._book_once
    calls = []

    async def flaky_book_once(*args):
        calls.append(args)
        if len(calls) == 1:
            raise TransientFailure("database is locked")
        return await real_book_once(*args)

    monkeypatch.setattr(engine, "_book_once", flaky_book_once)

    booking = await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 2)
    assert booking.num_seats == 2
    assert len(calls) == 2
    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 8


@pytest.mark.asyncio
async def test_persistent_transient_failure_gives_up(engine, schedule, monkeypatch):
    calls = []

    async def always_busy(*args):
        calls.append(args)
        raise TransientFailure("database is locked")

    monkeypatch.setattr(engine, "_book_once", always_busy)

    with pytest.raises(TransientFailure):
        await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 1)
    assert len(calls) == engine.max_attempts


@pytest.mark.asyncio
async def test_cancel_by_non_owner(engine, store, schedule):
    booking = await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 2)

    with pytest.raises(NotOwner):
        await engine.cancel(booking.ticket_id, "bob")

    assert await availability(store, schedule.schedule_id, SeatClass.AC) == 8
    assert await booking_count(store) == 1


@pytest.mark.asyncio
async def test_cancel_unknown_ticket(engine):
    with pytest.raises(NotFound):
        await engine.cancel("TKT99999999", "alice")


@pytest.mark.asyncio
async def test_cancel_returns_cancelled_booking(engine, schedule):
    booking = await engine.book(schedule.schedule_id, "alice", SeatClass.SLEEPER, 5)
    cancelled = await engine.cancel(booking.ticket_id, "alice")

    assert cancelled.ticket_id == booking.ticket_id
    assert cancelled.seat_class == "Sleeper"
    assert cancelled.num_seats == 5


@pytest.mark.asyncio
async def test_cancel_then_rebook_restores_availability(engine, store, schedule):
    sid = schedule.schedule_id
    booking = await engine.book(sid, "alice", SeatClass.AC, 3)
    before_cancel = await availability(store, sid, SeatClass.AC)

    await engine.cancel(booking.ticket_id, "alice")
    rebooked = await engine.book(sid, "alice", SeatClass.AC, 3)

    assert await availability(store, sid, SeatClass.AC) == before_cancel
    assert rebooked.ticket_id != booking.ticket_id
    await assert_ledger_balanced(store, sid)


@pytest.mark.asyncio
async def test_cancel_only_touches_its_own_class(engine, store, schedule):
    sid = schedule.schedule_id
    await engine.book(sid, "alice", SeatClass.AC, 2)
    sleeper = await engine.book(sid, "alice", SeatClass.SLEEPER, 4)

    await engine.cancel(sleeper.ticket_id, "alice")

    assert await availability(store, sid, SeatClass.AC) == 8
    assert await availability(store, sid, SeatClass.SLEEPER) == 20


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_bookable_journeys_filters_by_date(engine, admin, t1):
    await admin.schedule_train("T1", date(2025, 5, 31))
    june_first = await admin.schedule_train("T1", date(2025, 6, 1))
    june_second = await admin.schedule_train("T1", date(2025, 6, 2))

    journeys = await engine.list_bookable_journeys(date(2025, 6, 1))

    assert [j.schedule_id for j in journeys] == [june_first.schedule_id, june_second.schedule_id]
    first = journeys[0]
    assert first.train_number == "T1"
    assert first.train_name == "Coastal Express"
    assert first.source == "Mumbai"
    assert first.destination == "Goa"
    assert first.departure_time == "22:15"
    assert first.ac_seats_available == 10
    assert first.ac_fare == Decimal("500.00")
    assert first.sleeper_seats_available == 20
    assert first.sleeper_fare == Decimal("250.00")


@pytest.mark.asyncio
async def test_list_bookable_journeys_reflects_bookings(engine, schedule):
    await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 4)

    journeys = await engine.list_bookable_journeys(SCENARIO_DATE)
    assert journeys[0].ac_seats_available == 6


@pytest.mark.asyncio
async def test_list_bookable_journeys_empty(engine, schedule):
    assert await engine.list_bookable_journeys(SCENARIO_DATE + timedelta(days=1)) == []


@pytest.mark.asyncio
async def test_list_user_bookings(engine, admin, schedule):
    await admin.add_train(make_train("T2", train_name="Deccan Queen", journey_duration="03:15"))
    other = await admin.schedule_train("T2", SCENARIO_DATE)

    mine = await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 2)
    await engine.book(other.schedule_id, "bob", SeatClass.SLEEPER, 1)

    bookings = await engine.list_user_bookings("alice")

    assert len(bookings) == 1
    detail = bookings[0]
    assert detail.ticket_id == mine.ticket_id
    assert detail.train_name == "Coastal Express"
    assert detail.departure_date == SCENARIO_DATE
    assert detail.arrival_at == datetime(2025, 6, 2, 9, 45)
    assert detail.seat_class == SeatClass.AC
    assert detail.total_fare == Decimal("1000.00")


@pytest.mark.asyncio
async def test_list_user_bookings_excludes_cancelled(engine, schedule):
    booking = await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 2)
    await engine.cancel(booking.ticket_id, "alice")

    assert await engine.list_user_bookings("alice") == []


@pytest.mark.asyncio
async def test_list_all_bookings_with_revenue(engine, schedule):
    await engine.book(schedule.schedule_id, "alice", SeatClass.AC, 2)
    await engine.book(schedule.schedule_id, "bob", SeatClass.SLEEPER, 3)

    ledger = await engine.list_all_bookings()

    assert {entry.username for entry in ledger.bookings} == {"alice", "bob"}
    assert all(entry.train_name == "Coastal Express" for entry in ledger.bookings)
    assert ledger.total_revenue == Decimal("1750.00")


@pytest.mark.asyncio
async def test_list_all_bookings_empty(engine):
    ledger = await engine.list_all_bookings()
    assert ledger.bookings == []
    assert ledger.total_revenue == Decimal("0")
