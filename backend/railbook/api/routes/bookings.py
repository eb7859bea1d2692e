"""
Booking endpoints with concurrency-safe seat reservation.
"""

from fastapi import APIRouter, Depends, status

from railbook.api.deps import get_booking_engine
from railbook.core.logging import get_logger
from railbook.core.security import get_current_username
from railbook.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingDetail,
    BookingResponse,
)
from railbook.services.booking_service import BookingEngine
from railbook.services.cache_service import invalidate_journey_cache

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    username: str = Depends(get_current_username),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Book seats on a scheduled journey.

    Availability is re-checked and decremented in one transaction; if the
    seats are gone the request fails with 409 `insufficient_seats`.
    """
    booking = await engine.book(
        booking_data.schedule_id,
        username,
        booking_data.seat_class,
        booking_data.num_seats,
    )
    await invalidate_journey_cache()
    return booking


@router.get("/", response_model=list[BookingDetail])
async def list_my_bookings(
    username: str = Depends(get_current_username),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Get all live bookings of the authenticated user."""
    return await engine.list_user_bookings(username)


@router.delete("/{ticket_id}", response_model=BookingCancelResponse)
async def cancel_booking(
    ticket_id: str,
    username: str = Depends(get_current_username),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Cancel one of your tickets and release its seats."""
    booking = await engine.cancel(ticket_id, username)
    await invalidate_journey_cache()
    return BookingCancelResponse(
        message="Ticket cancelled successfully",
        ticket_id=booking.ticket_id,
        seat_class=booking.seat_class,
        seats_released=booking.num_seats,
    )
