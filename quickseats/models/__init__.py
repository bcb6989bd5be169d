"""
Database models
"""

from quickseats.models.event import Event, EventStatus
from quickseats.models.catalog import TicketType, Artist, CatalogStatus
from quickseats.models.reservation import SeatReservation
from quickseats.models.order import (
    Order,
    OrderStatus,
    CommitStrategy,
    CanceledTicket,
    CancellationType,
)

__all__ = [
    "Event",
    "EventStatus",
    "TicketType",
    "Artist",
    "CatalogStatus",
    "SeatReservation",
    "Order",
    "OrderStatus",
    "CommitStrategy",
    "CanceledTicket",
    "CancellationType",
]
