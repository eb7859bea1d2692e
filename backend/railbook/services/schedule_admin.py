"""
Administrative writes: train routes and their dated schedules.

Admin actions are rare and single-writer, but scheduling still relies on the
(train_number, departure_date) unique constraint rather than the pre-check
alone, so two admins racing to schedule the same run get DuplicateKey instead
of two seat pools.
"""

from datetime import date

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError

from railbook.core.exceptions import DuplicateKey, NotFound, TrainInUse
from railbook.core.logging import get_logger
from railbook.db.store import InventoryStore, is_foreign_key_violation, is_unique_violation
from railbook.models import Schedule, Train
from railbook.schemas.train import TrainCreate

logger = get_logger(__name__)


class ScheduleAdmin:
    def __init__(self, store: InventoryStore):
        self.store = store

    async def add_train(self, train_data: TrainCreate) -> Train:
        """Create a train route. DuplicateKey if the number is taken."""
        async with self.store.transaction() as session:
            if await session.get(Train, train_data.train_number) is not None:
                raise DuplicateKey(f"Train {train_data.train_number} already exists")

            train = Train(**train_data.model_dump())
            session.add(train)
            try:
                await session.flush()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateKey(f"Train {train_data.train_number} already exists") from exc
                raise

        logger.info(
            "train_added",
            train_number=train.train_number,
            route=f"{train.source}->{train.destination}",
            ac_seats=train.total_ac_seats,
            sleeper_seats=train.total_sleeper_seats,
        )
        return train

    async def schedule_train(self, train_number: str, departure_date: date) -> Schedule:
        """Create the dated run of a train with full seat availability."""
        async with self.store.transaction() as session:
            train = await session.get(Train, train_number)
            if train is None:
                raise NotFound(f"Train {train_number} not found")

            existing = await session.execute(
                select(Schedule.schedule_id).where(
                    Schedule.train_number == train_number,
                    Schedule.departure_date == departure_date,
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateKey(
                    f"Train {train_number} is already scheduled for {departure_date}"
                )

            schedule = Schedule(
                train_number=train_number,
                departure_date=departure_date,
                ac_seats_available=train.total_ac_seats,
                sleeper_seats_available=train.total_sleeper_seats,
            )
            session.add(schedule)
            try:
                await session.flush()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateKey(
                        f"Train {train_number} is already scheduled for {departure_date}"
                    ) from exc
                if is_foreign_key_violation(exc):
                    # The train was deleted after the lookup above
                    raise NotFound(f"Train {train_number} not found") from exc
                raise

        logger.info(
            "train_scheduled",
            schedule_id=schedule.schedule_id,
            train_number=train_number,
            departure_date=departure_date,
        )
        return schedule

    async def delete_train(self, train_number: str) -> None:
        """
        Delete a train route. Refused with TrainInUse while any schedule
        references it, so schedules and bookings are never orphaned.
        """
        async with self.store.transaction() as session:
            result = await session.execute(
                select(Train).where(Train.train_number == train_number).with_for_update()
            )
            if result.scalar_one_or_none() is None:
                raise NotFound(f"Train {train_number} not found")

            scheduled = await session.scalar(
                select(func.count())
                .select_from(Schedule)
                .where(Schedule.train_number == train_number)
            )
            if scheduled:
                logger.warning("train_delete_refused", train_number=train_number, schedules=scheduled)
                raise TrainInUse(
                    f"Train {train_number} has {scheduled} scheduled journey(s) and cannot be deleted"
                )

            try:
                await session.execute(
                    delete(Train)
                    .where(Train.train_number == train_number)
                    .execution_options(synchronize_session=False)
                )
            except IntegrityError as exc:
                raise TrainInUse(
                    f"Train {train_number} was scheduled concurrently and cannot be deleted"
                ) from exc

        logger.info("train_deleted", train_number=train_number)

    async def list_trains(self) -> list[Train]:
        async with self.store.snapshot() as session:
            result = await session.execute(select(Train).order_by(Train.train_number.asc()))
            return list(result.scalars().all())

    async def get_train(self, train_number: str) -> Train:
        async with self.store.snapshot() as session:
            train = await session.get(Train, train_number)
        if train is None:
            raise NotFound(f"Train {train_number} not found")
        return train

    async def get_schedule(self, schedule_id: int) -> Schedule:
        async with self.store.snapshot() as session:
            schedule = await session.get(Schedule, schedule_id)
        if schedule is None:
            raise NotFound(f"Schedule {schedule_id} not found")
        return schedule
