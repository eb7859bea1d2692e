"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from railbook.api.routes import admin, auth, bookings, journeys

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(journeys.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
