"""
Administrator endpoints: train routes, schedules and the booking ledger.
"""

from fastapi import APIRouter, Depends, Response, status

from railbook.api.deps import get_booking_engine, get_schedule_admin
from railbook.core.security import get_admin_username
from railbook.schemas.booking import BookingLedger
from railbook.schemas.schedule import ScheduleCreate, ScheduleResponse
from railbook.schemas.train import TrainCreate, TrainResponse
from railbook.services.booking_service import BookingEngine
from railbook.services.cache_service import invalidate_journey_cache
from railbook.services.schedule_admin import ScheduleAdmin

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_admin_username)],
)


@router.post("/trains", response_model=TrainResponse, status_code=status.HTTP_201_CREATED)
async def add_train(
    train_data: TrainCreate,
    admin: ScheduleAdmin = Depends(get_schedule_admin),
):
    return await admin.add_train(train_data)


@router.get("/trains", response_model=list[TrainResponse])
async def list_trains(admin: ScheduleAdmin = Depends(get_schedule_admin)):
    return await admin.list_trains()


@router.get("/trains/{train_number}", response_model=TrainResponse)
async def get_train(train_number: str, admin: ScheduleAdmin = Depends(get_schedule_admin)):
    return await admin.get_train(train_number)


@router.delete("/trains/{train_number}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_train(train_number: str, admin: ScheduleAdmin = Depends(get_schedule_admin)):
    """Delete a train route. 409 `train_in_use` while it has schedules."""
    await admin.delete_train(train_number)
    await invalidate_journey_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/schedules", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def schedule_train(
    schedule_data: ScheduleCreate,
    admin: ScheduleAdmin = Depends(get_schedule_admin),
):
    """Schedule a train for a date with full seat availability."""
    schedule = await admin.schedule_train(schedule_data.train_number, schedule_data.departure_date)
    await invalidate_journey_cache()
    return schedule


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: int, admin: ScheduleAdmin = Depends(get_schedule_admin)):
    return await admin.get_schedule(schedule_id)


@router.get("/bookings", response_model=BookingLedger)
async def list_all_bookings(engine: BookingEngine = Depends(get_booking_engine)):
    """Every live booking with total revenue."""
    return await engine.list_all_bookings()
