"""
Bookable journey listing with Redis caching.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from railbook.api.deps import get_booking_engine
from railbook.core.logging import get_logger
from railbook.schemas.schedule import JourneyListResponse
from railbook.services.booking_service import BookingEngine
from railbook.services.cache_service import get_cached_journeys, set_cached_journeys

logger = get_logger(__name__)
router = APIRouter(prefix="/journeys", tags=["Journeys"])


@router.get("/", response_model=JourneyListResponse)
async def list_journeys(
    as_of: Optional[date] = Query(None, description="Earliest departure date, defaults to today"),
    engine: BookingEngine = Depends(get_booking_engine),
):
    """
    Every scheduled journey departing on or after `as_of`, with per-class
    availability and fares. Availability shown here may be stale; booking
    always re-checks it.
    """
    as_of = as_of or date.today()

    cached = await get_cached_journeys(as_of)
    if cached:
        logger.info("journeys_list_cache_hit", as_of=as_of)
        cached["cached"] = True
        return JourneyListResponse(**cached)

    journeys = await engine.list_bookable_journeys(as_of)
    response = JourneyListResponse(journeys=journeys, total=len(journeys), as_of=as_of)

    await set_cached_journeys(as_of, response.model_dump(mode="json"))
    return response
