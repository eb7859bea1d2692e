"""Initial schema: trains, schedules, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trains table: route definitions
    op.create_table(
        "trains",
        sa.Column("train_number", sa.String(20), primary_key=True),
        sa.Column("train_name", sa.String(255), nullable=False),
        sa.Column("source", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.String(5), nullable=False),
        sa.Column("journey_duration", sa.String(6), nullable=False),
        sa.Column("total_ac_seats", sa.Integer(), nullable=False),
        sa.Column("total_sleeper_seats", sa.Integer(), nullable=False),
        sa.Column("ac_fare", sa.Numeric(10, 2), nullable=False),
        sa.Column("sleeper_fare", sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint("total_ac_seats >= 0", name="check_total_ac_seats_non_negative"),
        sa.CheckConstraint("total_sleeper_seats >= 0", name="check_total_sleeper_seats_non_negative"),
        sa.CheckConstraint("ac_fare >= 0", name="check_ac_fare_non_negative"),
        sa.CheckConstraint("sleeper_fare >= 0", name="check_sleeper_fare_non_negative"),
    )

    # Schedules table: the contended seat counters live here
    op.create_table(
        "schedules",
        sa.Column("schedule_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("train_number", sa.String(20), sa.ForeignKey("trains.train_number"), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("ac_seats_available", sa.Integer(), nullable=False),
        sa.Column("sleeper_seats_available", sa.Integer(), nullable=False),
        sa.UniqueConstraint("train_number", "departure_date", name="uq_schedule_train_date"),
        sa.CheckConstraint("ac_seats_available >= 0", name="check_ac_seats_non_negative"),
        sa.CheckConstraint("sleeper_seats_available >= 0", name="check_sleeper_seats_non_negative"),
    )
    # Journey listing filters on departure_date >= as_of
    op.create_index("ix_schedules_departure_date", "schedules", ["departure_date"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("ticket_id", sa.String(16), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedules.schedule_id"), nullable=False),
        sa.Column("seat_class", sa.String(10), nullable=False),
        sa.Column("num_seats", sa.Integer(), nullable=False),
        sa.Column("total_fare", sa.Numeric(12, 2), nullable=False),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("num_seats > 0", name="check_booking_num_seats_positive"),
        sa.CheckConstraint("seat_class IN ('AC', 'Sleeper')", name="check_booking_seat_class"),
    )
    op.create_index("ix_bookings_username", "bookings", ["username"])
    op.create_index("ix_bookings_schedule_id", "bookings", ["schedule_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("schedules")
    op.drop_table("trains")
