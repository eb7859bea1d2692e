from railbook.schemas.user import UserRegister, UserResponse
from railbook.schemas.train import TrainCreate, TrainResponse
from railbook.schemas.schedule import ScheduleCreate, ScheduleResponse, JourneyView, JourneyListResponse
from railbook.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelResponse,
    BookingDetail,
    LedgerEntry,
    BookingLedger,
)

__all__ = [
    "UserRegister", "UserResponse",
    "TrainCreate", "TrainResponse",
    "ScheduleCreate", "ScheduleResponse", "JourneyView", "JourneyListResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse",
    "BookingDetail", "LedgerEntry", "BookingLedger",
]
