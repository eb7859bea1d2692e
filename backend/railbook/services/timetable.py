"""
Date arithmetic for displaying journeys.
"""

from datetime import date, datetime, timedelta


def add_duration(departure_date: date, departure_time: str, duration: str) -> datetime:
    """
    Arrival moment of a journey leaving at `departure_time` (HH:MM) on
    `departure_date` and lasting `duration` (H:MM, hours may exceed 23).
    """
    start = datetime.combine(departure_date, datetime.strptime(departure_time, "%H:%M").time())
    hours, minutes = (int(part) for part in duration.split(":"))
    return start + timedelta(hours=hours, minutes=minutes)
