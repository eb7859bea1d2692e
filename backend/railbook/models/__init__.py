from railbook.models.train import Train
from railbook.models.schedule import Schedule
from railbook.models.booking import Booking, SeatClass

__all__ = ["Train", "Schedule", "Booking", "SeatClass"]
