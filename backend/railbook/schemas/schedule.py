"""
Pydantic schemas for schedules and the bookable-journey listing.
"""

from datetime import date
from decimal import Decimal
from pydantic import BaseModel, Field


class ScheduleCreate(BaseModel):
    train_number: str = Field(..., min_length=1, max_length=20)
    departure_date: date


class ScheduleResponse(BaseModel):
    schedule_id: int
    train_number: str
    departure_date: date
    ac_seats_available: int
    sleeper_seats_available: int

    model_config = {"from_attributes": True}


class JourneyView(BaseModel):
    """A schedule joined with its train: what a traveller picks from."""

    schedule_id: int
    train_number: str
    train_name: str
    source: str
    destination: str
    departure_date: date
    departure_time: str
    ac_seats_available: int
    ac_fare: Decimal
    sleeper_seats_available: int
    sleeper_fare: Decimal


class JourneyListResponse(BaseModel):
    journeys: list[JourneyView]
    total: int
    as_of: date
    cached: bool = False
