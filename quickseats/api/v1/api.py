"""
Main API Router
Aggregates all API endpoints for v1
"""

from fastapi import APIRouter
from quickseats.api.v1.endpoints import (
    events,
    seats,
    checkout,
    admin,
    staff,
    cron,
    health
)

api_router = APIRouter()

# Include all routers
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(seats.router, prefix="/seats", tags=["seats"])
api_router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
