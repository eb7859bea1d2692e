"""
Fare calculation. Pure functions, no I/O.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from railbook.core.exceptions import InvalidRequest
from railbook.models.booking import SeatClass

CENTS = Decimal("0.01")


def calculate_fare(
    seat_class: Union[SeatClass, str],
    num_seats: int,
    fare_per_seat: Union[Decimal, int, str],
) -> Decimal:
    """
    Total fare for `num_seats` seats of `seat_class` at `fare_per_seat` each,
    rounded to two decimal places.
    """
    try:
        SeatClass(seat_class)
    except ValueError:
        raise InvalidRequest(f"Unknown seat class: {seat_class}")

    if num_seats <= 0:
        raise InvalidRequest(f"Number of seats must be positive, got {num_seats}")

    try:
        fare = Decimal(str(fare_per_seat))
    except InvalidOperation:
        raise InvalidRequest(f"Invalid fare: {fare_per_seat}")
    if fare < 0:
        raise InvalidRequest(f"Fare cannot be negative, got {fare}")

    return (fare * num_seats).quantize(CENTS, rounding=ROUND_HALF_UP)
