from railbook.services.booking_service import BookingEngine
from railbook.services.schedule_admin import ScheduleAdmin
from railbook.services.fare import calculate_fare

__all__ = ["BookingEngine", "ScheduleAdmin", "calculate_fare"]
