"""
Train route definition: the template every dated Schedule is created from.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from railbook.db.base import Base
from railbook.models.booking import SeatClass


class Train(Base):
    __tablename__ = "trains"

    train_number = Column(String(20), primary_key=True)
    train_name = Column(String(255), nullable=False)
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_time = Column(String(5), nullable=False)  # HH:MM
    journey_duration = Column(String(6), nullable=False)  # H:MM up to 999:59
    total_ac_seats = Column(Integer, nullable=False)
    total_sleeper_seats = Column(Integer, nullable=False)
    ac_fare = Column(Numeric(10, 2), nullable=False)
    sleeper_fare = Column(Numeric(10, 2), nullable=False)

    schedules = relationship("Schedule", back_populates="train")

    __table_args__ = (
        CheckConstraint("total_ac_seats >= 0", name="check_total_ac_seats_non_negative"),
        CheckConstraint("total_sleeper_seats >= 0", name="check_total_sleeper_seats_non_negative"),
        CheckConstraint("ac_fare >= 0", name="check_ac_fare_non_negative"),
        CheckConstraint("sleeper_fare >= 0", name="check_sleeper_fare_non_negative"),
    )

    def fare_for(self, seat_class: SeatClass) -> Decimal:
        return self.ac_fare if seat_class == SeatClass.AC else self.sleeper_fare

    def __repr__(self) -> str:
        return f"<Train(number={self.train_number}, name={self.train_name})>"
