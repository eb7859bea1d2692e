"""
Schedule model: one dated run of a Train with its own seat counters.

Key design decisions:
- Seat counters are the only contended mutable state in the system
- CHECK constraints keep counters non-negative even if application logic fails
- Unique (train_number, departure_date) makes duplicate scheduling a
  constraint violation rather than a silent second row
"""

from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship

from railbook.db.base import Base
from railbook.models.booking import SeatClass


class Schedule(Base):
    __tablename__ = "schedules"

    schedule_id = Column(Integer, primary_key=True, autoincrement=True)
    train_number = Column(String(20), ForeignKey("trains.train_number"), nullable=False)
    departure_date = Column(Date, nullable=False)
    ac_seats_available = Column(Integer, nullable=False)
    sleeper_seats_available = Column(Integer, nullable=False)

    train = relationship("Train", back_populates="schedules")
    bookings = relationship("Booking", back_populates="schedule")

    __table_args__ = (
        UniqueConstraint("train_number", "departure_date", name="uq_schedule_train_date"),
        CheckConstraint("ac_seats_available >= 0", name="check_ac_seats_non_negative"),
        CheckConstraint("sleeper_seats_available >= 0", name="check_sleeper_seats_non_negative"),
        Index("ix_schedules_departure_date", "departure_date"),
    )

    @staticmethod
    def seat_column(seat_class: SeatClass):
        """Counter column for a seat class, usable in UPDATE expressions."""
        if seat_class == SeatClass.AC:
            return Schedule.ac_seats_available
        return Schedule.sleeper_seats_available

    def available_for(self, seat_class: SeatClass) -> int:
        if seat_class == SeatClass.AC:
            return self.ac_seats_available
        return self.sleeper_seats_available

    def __repr__(self) -> str:
        return (
            f"<Schedule(id={self.schedule_id}, train={self.train_number}, "
            f"date={self.departure_date}, ac={self.ac_seats_available}, "
            f"sleeper={self.sleeper_seats_available})>"
        )
