"""
Pydantic schemas for request and response validation
"""

from quickseats.schemas.inventory import (
    SeatStatus,
    SeatRecord,
    TicketCounter,
    OrderTicketLine
)
from quickseats.schemas.event import (
    EventCreate,
    EventResponse,
    EventSummary,
    SeatDefinition
)
from quickseats.schemas.order import (
    BookingRequest,
    CheckoutResponse,
    OrderResponse,
    CancellationResponse
)
from quickseats.schemas.response import (
    SuccessResponse,
    ErrorResponse
)

__all__ = [
    "SeatStatus",
    "SeatRecord",
    "TicketCounter",
    "OrderTicketLine",
    "EventCreate",
    "EventResponse",
    "EventSummary",
    "SeatDefinition",
    "BookingRequest",
    "CheckoutResponse",
    "OrderResponse",
    "CancellationResponse",
    "SuccessResponse",
    "ErrorResponse"
]
