"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from railbook.models.booking import SeatClass


class BookingCreate(BaseModel):
    schedule_id: int
    seat_class: SeatClass
    num_seats: int = Field(default=1, gt=0, le=100)


class BookingResponse(BaseModel):
    ticket_id: str
    username: str
    schedule_id: int
    seat_class: SeatClass
    num_seats: int
    total_fare: Decimal
    booked_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    ticket_id: str
    seat_class: SeatClass
    seats_released: int


class BookingDetail(BaseModel):
    """One of the caller's tickets with its journey details."""

    ticket_id: str
    schedule_id: int
    train_number: str
    train_name: str
    source: str
    destination: str
    departure_date: date
    departure_time: str
    arrival_at: datetime
    seat_class: SeatClass
    num_seats: int
    total_fare: Decimal
    booked_at: datetime


class LedgerEntry(BaseModel):
    ticket_id: str
    username: str
    train_name: str
    departure_date: date
    seat_class: SeatClass
    num_seats: int
    total_fare: Decimal


class BookingLedger(BaseModel):
    bookings: list[LedgerEntry]
    total_revenue: Decimal
