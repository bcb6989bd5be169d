"""
API endpoints module
"""

from . import events, seats, checkout, admin, staff, cron, health

__all__ = [
    "events",
    "seats",
    "checkout",
    "admin",
    "staff",
    "cron",
    "health"
]
