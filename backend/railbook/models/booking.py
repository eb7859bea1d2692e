"""
Booking model: a user's reservation of seats on one Schedule.

Key design decisions:
- ticket_id is the primary key, so a colliding generated id fails the insert
- Cancellation deletes the row; a cancelled ticket no longer exists
- num_seats and total_fare are fixed at booking time
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from railbook.db.base import Base


class SeatClass(str, enum.Enum):
    AC = "AC"
    SLEEPER = "Sleeper"


class Booking(Base):
    __tablename__ = "bookings"

    ticket_id = Column(String(16), primary_key=True)
    username = Column(String(100), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.schedule_id"), nullable=False, index=True)
    seat_class = Column(String(10), nullable=False)
    num_seats = Column(Integer, nullable=False)
    total_fare = Column(Numeric(12, 2), nullable=False)
    booked_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    schedule = relationship("Schedule", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("num_seats > 0", name="check_booking_num_seats_positive"),
        CheckConstraint("seat_class IN ('AC', 'Sleeper')", name="check_booking_seat_class"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(ticket={self.ticket_id}, user={self.username}, "
            f"schedule={self.schedule_id}, class={self.seat_class}, seats={self.num_seats})>"
        )
