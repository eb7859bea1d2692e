"""
Pydantic schemas for train route definitions.
"""

from decimal import Decimal
from pydantic import BaseModel, Field

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DURATION_PATTERN = r"^\d{1,3}:[0-5]\d$"


class TrainCreate(BaseModel):
    train_number: str = Field(..., min_length=1, max_length=20, pattern=r"^[A-Za-z0-9_-]+$")
    train_name: str = Field(..., min_length=1, max_length=255)
    source: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_time: str = Field(..., pattern=HHMM_PATTERN)
    journey_duration: str = Field(..., pattern=DURATION_PATTERN)
    total_ac_seats: int = Field(..., ge=0, le=10000)
    total_sleeper_seats: int = Field(..., ge=0, le=10000)
    ac_fare: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    sleeper_fare: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class TrainResponse(BaseModel):
    train_number: str
    train_name: str
    source: str
    destination: str
    departure_time: str
    journey_duration: str
    total_ac_seats: int
    total_sleeper_seats: int
    ac_fare: Decimal
    sleeper_fare: Decimal

    model_config = {"from_attributes": True}
