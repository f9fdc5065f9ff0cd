"""
API endpoints module
"""

from . import bookings, shows, admin, health

__all__ = ["bookings", "shows", "admin", "health"]
