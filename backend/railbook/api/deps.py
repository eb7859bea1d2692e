"""
FastAPI dependencies resolving the services wired onto app.state.
"""

from fastapi import Request

from railbook.services.booking_service import BookingEngine
from railbook.services.schedule_admin import ScheduleAdmin


def get_booking_engine(request: Request) -> BookingEngine:
    return request.app.state.booking_engine


def get_schedule_admin(request: Request) -> ScheduleAdmin:
    return request.app.state.schedule_admin
