"""
Main API Router
Aggregates all API endpoints for v1
"""

from fastapi import APIRouter
from cinebook.api.v1.endpoints import bookings, shows, admin, health

api_router = APIRouter()

api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(shows.router, prefix="/shows", tags=["shows"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
