"""
Booking engine with concurrency-safe seat reservation.

CONCURRENCY STRATEGY: Locked Compare-and-Decrement
==================================================

Problem:
  Two users try to book the last AC seats on the same train run at once.
  Both read ac_seats_available=4, both subtract 4, both succeed.
  Result: Overselling, and a bookings ledger that no longer adds up.

Solution:
  Each booking is one write transaction (see InventoryStore.transaction):

  1. Re-read the schedule row with SELECT ... FOR UPDATE. PostgreSQL locks
     the row; on SQLite the transaction already holds the write lock
     (BEGIN IMMEDIATE), so the read cannot be stale.
  2. Reject with InsufficientSeats if the class is short.
  3. Decrement with a guarded update:
       UPDATE schedules SET ac_seats_available = ac_seats_available - :n
       WHERE schedule_id = :id AND ac_seats_available >= :n
     rows_affected == 0 means the seats went to someone else.
  4. Insert the booking under a freshly generated ticket id, inside a
     savepoint so a colliding id can be regenerated without losing step 3.
  5. Commit. Anything that fails rolls the whole transaction back: there is
     never a ticket without a decrement, or a decrement without a ticket.

  The guard in step 3 makes the decrement itself a compare-and-swap, and
  the CHECK constraint on the table is the final safety net.

  Busy/deadlock/serialization errors surface as TransientFailure; the whole
  attempt is retried from a fresh read, up to BOOKING_MAX_ATTEMPTS times
  with jittered exponential backoff.

Cancellation uses the same transaction shape: lock the booking row, check
ownership, delete it, and return the seats with a relative increment.
"""

import asyncio
import random
import secrets
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from railbook.core.config import Settings, get_settings
from railbook.core.exceptions import (
    InsufficientSeats,
    InvalidRequest,
    NotFound,
    NotOwner,
    RailbookError,
    TransientFailure,
)
from railbook.core.logging import get_logger
from railbook.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_cancellation_attempt,
    record_retry,
    ticket_id_collisions,
)
from railbook.db.store import InventoryStore, is_unique_violation
from railbook.models import Booking, Schedule, SeatClass, Train
from railbook.schemas.booking import BookingDetail, BookingLedger, LedgerEntry
from railbook.schemas.schedule import JourneyView
from railbook.services.fare import calculate_fare
from railbook.services.timetable import add_duration

logger = get_logger(__name__)

T = TypeVar("T")

TICKET_PREFIX = "TKT"
TICKET_SPACE = 10 ** 8


def generate_ticket_id() -> str:
    """Random ticket id, e.g. TKT04718233. Uniqueness is enforced by the store."""
    return f"{TICKET_PREFIX}{secrets.randbelow(TICKET_SPACE):08d}"


def _seat_class(value) -> SeatClass:
    try:
        return SeatClass(value)
    except ValueError:
        raise InvalidRequest(f"Unknown seat class: {value}")


class BookingEngine:
    """
    Books and cancels seats against an InventoryStore.

    Holds no seat state of its own: every call re-reads availability inside
    its transaction.
    """

    def __init__(
        self,
        store: InventoryStore,
        settings: Optional[Settings] = None,
        ticket_id_factory: Callable[[], str] = generate_ticket_id,
    ):
        settings = settings or get_settings()
        self.store = store
        self.max_attempts = max(1, settings.BOOKING_MAX_ATTEMPTS)
        self.retry_backoff = settings.BOOKING_RETRY_BACKOFF_MS / 1000
        self.ticket_id_attempts = max(1, settings.TICKET_ID_MAX_ATTEMPTS)
        self.new_ticket_id = ticket_id_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_bookable_journeys(self, as_of: date) -> list[JourneyView]:
        """
        Every schedule departing on or after `as_of`, joined with its train.
        Snapshot read: availability may be stale by the time the caller books.
        """
        query = (
            select(Schedule, Train)
            .join(Train, Schedule.train_number == Train.train_number)
            .where(Schedule.departure_date >= as_of)
            .order_by(Schedule.departure_date.asc(), Schedule.schedule_id.asc())
        )
        async with self.store.snapshot() as session:
            rows = (await session.execute(query)).all()

        return [
            JourneyView(
                schedule_id=schedule.schedule_id,
                train_number=train.train_number,
                train_name=train.train_name,
                source=train.source,
                destination=train.destination,
                departure_date=schedule.departure_date,
                departure_time=train.departure_time,
                ac_seats_available=schedule.ac_seats_available,
                ac_fare=train.ac_fare,
                sleeper_seats_available=schedule.sleeper_seats_available,
                sleeper_fare=train.sleeper_fare,
            )
            for schedule, train in rows
        ]

    async def list_user_bookings(self, username: str) -> list[BookingDetail]:
        """The user's live tickets with journey details, newest first."""
        query = (
            select(Booking, Schedule, Train)
            .join(Schedule, Booking.schedule_id == Schedule.schedule_id)
            .join(Train, Schedule.train_number == Train.train_number)
            .where(Booking.username == username)
            .order_by(Booking.booked_at.desc(), Booking.ticket_id.asc())
        )
        async with self.store.snapshot() as session:
            rows = (await session.execute(query)).all()

        return [
            BookingDetail(
                ticket_id=booking.ticket_id,
                schedule_id=schedule.schedule_id,
                train_number=train.train_number,
                train_name=train.train_name,
                source=train.source,
                destination=train.destination,
                departure_date=schedule.departure_date,
                departure_time=train.departure_time,
                arrival_at=add_duration(
                    schedule.departure_date, train.departure_time, train.journey_duration
                ),
                seat_class=booking.seat_class,
                num_seats=booking.num_seats,
                total_fare=booking.total_fare,
                booked_at=booking.booked_at,
            )
            for booking, schedule, train in rows
        ]

    async def list_all_bookings(self) -> BookingLedger:
        """Every live booking across all users, with total revenue."""
        query = (
            select(Booking, Schedule.departure_date, Train.train_name)
            .join(Schedule, Booking.schedule_id == Schedule.schedule_id)
            .join(Train, Schedule.train_number == Train.train_number)
            .order_by(Schedule.departure_date.asc(), Booking.ticket_id.asc())
        )
        async with self.store.snapshot() as session:
            rows = (await session.execute(query)).all()

        entries = [
            LedgerEntry(
                ticket_id=booking.ticket_id,
                username=booking.username,
                train_name=train_name,
                departure_date=departure_date,
                seat_class=booking.seat_class,
                num_seats=booking.num_seats,
                total_fare=booking.total_fare,
            )
            for booking, departure_date, train_name in rows
        ]
        revenue = sum((entry.total_fare for entry in entries), Decimal("0.00"))
        return BookingLedger(bookings=entries, total_revenue=revenue)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def book(
        self,
        schedule_id: int,
        username: str,
        seat_class: SeatClass,
        num_seats: int,
    ) -> Booking:
        """
        Reserve `num_seats` seats of `seat_class` on a schedule for `username`.

        Raises InvalidRequest, NotFound, InsufficientSeats, TransientFailure
        or StorageFailure. On any error nothing is written.
        """
        if num_seats <= 0:
            record_booking_attempt("invalid_request")
            raise InvalidRequest(f"Number of seats must be positive, got {num_seats}")
        seat_class = _seat_class(seat_class)

        try:
            with booking_latency.time():
                booking = await self._with_retries(
                    "book",
                    lambda: self._book_once(schedule_id, username, seat_class, num_seats),
                )
        except RailbookError as exc:
            record_booking_attempt(exc.code)
            raise

        record_booking_attempt("success")
        return booking

    async def _book_once(
        self,
        schedule_id: int,
        username: str,
        seat_class: SeatClass,
        num_seats: int,
    ) -> Booking:
        async with self.store.transaction() as session:
            result = await session.execute(
                select(Schedule)
                .where(Schedule.schedule_id == schedule_id)
                .with_for_update()
            )
            schedule = result.scalar_one_or_none()
            if schedule is None:
                raise NotFound(f"Schedule {schedule_id} not found")

            train = await session.get(Train, schedule.train_number)
            if train is None:
                raise NotFound(
                    f"Train {schedule.train_number} for schedule {schedule_id} not found"
                )

            available = schedule.available_for(seat_class)
            if num_seats > available:
                logger.warning(
                    "booking_failed_no_seats",
                    schedule_id=schedule_id,
                    seat_class=seat_class.value,
                    requested=num_seats,
                    available=available,
                )
                raise InsufficientSeats(num_seats, available)

            total_fare = calculate_fare(seat_class, num_seats, train.fare_for(seat_class))

            seats = Schedule.seat_column(seat_class)
            decrement = await session.execute(
                update(Schedule)
                .where(Schedule.schedule_id == schedule_id, seats >= num_seats)
                .values({seats: seats - num_seats})
                .execution_options(synchronize_session=False)
            )
            if decrement.rowcount != 1:
                # Availability moved between the read and the guarded update
                logger.warning(
                    "booking_failed_guard",
                    schedule_id=schedule_id,
                    seat_class=seat_class.value,
                    requested=num_seats,
                )
                raise InsufficientSeats(num_seats, available)

            booking = await self._insert_booking(
                session,
                username=username,
                schedule_id=schedule_id,
                seat_class=seat_class.value,
                num_seats=num_seats,
                total_fare=total_fare,
            )

        logger.info(
            "booking_created",
            ticket_id=booking.ticket_id,
            username=username,
            schedule_id=schedule_id,
            seat_class=seat_class.value,
            seats=num_seats,
            total_fare=total_fare,
            seats_left=available - num_seats,
        )
        return booking

    async def _insert_booking(self, session: AsyncSession, **values) -> Booking:
        """
        Insert a booking under a fresh ticket id. A primary-key collision only
        rolls back the savepoint, so the surrounding decrement survives. Any
        other integrity failure aborts the whole transaction.
        """
        for attempt in range(1, self.ticket_id_attempts + 1):
            booking = Booking(ticket_id=self.new_ticket_id(), **values)
            try:
                async with session.begin_nested():
                    session.add(booking)
            except IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise
                ticket_id_collisions.inc()
                logger.info("ticket_id_collision", ticket_id=booking.ticket_id, attempt=attempt)
                continue

            await session.refresh(booking)
            return booking

        raise TransientFailure("Could not allocate a unique ticket id. Please try again.")

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel(self, ticket_id: str, username: str) -> Booking:
        """
        Cancel `username`'s ticket and return its seats to the schedule.

        Raises NotFound (unknown or already cancelled), NotOwner,
        TransientFailure or StorageFailure. Returns the cancelled booking.
        """
        try:
            booking = await self._with_retries(
                "cancel", lambda: self._cancel_once(ticket_id, username)
            )
        except RailbookError as exc:
            record_cancellation_attempt(exc.code)
            raise

        record_cancellation_attempt("success")
        return booking

    async def _cancel_once(self, ticket_id: str, username: str) -> Booking:
        async with self.store.transaction() as session:
            result = await session.execute(
                select(Booking)
                .where(Booking.ticket_id == ticket_id)
                .with_for_update()
            )
            booking = result.scalar_one_or_none()
            if booking is None:
                raise NotFound(f"Ticket {ticket_id} not found")

            if booking.username != username:
                logger.warning(
                    "cancellation_refused",
                    ticket_id=ticket_id,
                    username=username,
                    reason="not_owner",
                )
                raise NotOwner(f"Ticket {ticket_id} does not belong to you")

            deleted = await session.execute(
                delete(Booking)
                .where(Booking.ticket_id == ticket_id)
                .execution_options(synchronize_session=False)
            )
            if deleted.rowcount != 1:
                raise NotFound(f"Ticket {ticket_id} not found")

            seats = Schedule.seat_column(SeatClass(booking.seat_class))
            await session.execute(
                update(Schedule)
                .where(Schedule.schedule_id == booking.schedule_id)
                .values({seats: seats + booking.num_seats})
                .execution_options(synchronize_session=False)
            )

        logger.info(
            "booking_cancelled",
            ticket_id=ticket_id,
            username=username,
            schedule_id=booking.schedule_id,
            seat_class=booking.seat_class,
            seats_restored=booking.num_seats,
        )
        return booking

    # ------------------------------------------------------------------

    async def _with_retries(self, operation: str, attempt_fn: Callable[[], Awaitable[T]]) -> T:
        """Run `attempt_fn`, retrying from scratch on TransientFailure."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await attempt_fn()
            except TransientFailure:
                if attempt == self.max_attempts:
                    logger.warning("transaction_gave_up", operation=operation, attempts=attempt)
                    raise
                record_retry(operation)
                delay = self.retry_backoff * (2 ** (attempt - 1))
                delay += random.uniform(0, self.retry_backoff)
                logger.info(
                    "transaction_retry",
                    operation=operation,
                    attempt=attempt,
                    delay_ms=round(delay * 1000, 2),
                )
                await asyncio.sleep(delay)

        raise TransientFailure(f"{operation} failed after {self.max_attempts} attempts")
