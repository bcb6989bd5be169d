"""
Seat hold and availability schemas
"""

from pydantic import Field
from typing import Optional, List, Union

from quickseats.schemas.base import BaseSchema, Money
from quickseats.schemas.inventory import SeatStatus


class SeatHoldRequest(BaseSchema):
    """Select or unselect a single seat"""
    event_id: int
    seat_id: Union[int, str]


class SeatResetRequest(BaseSchema):
    event_id: int
    seat_ids: List[Union[int, str]] = Field(..., min_length=1)


class SeatResetResponse(BaseSchema):
    reset_seats: List[Union[int, str]]
    not_found_seats: List[Union[int, str]]


class SeatStatusResponse(BaseSchema):
    event_id: int
    seat_id: Union[int, str]
    status: SeatStatus


class TicketAvailabilityResponse(BaseSchema):
    """Remaining pool for a counted ticket type. ``available`` is None when unlimited"""
    ticket_type_id: int
    available: Optional[int] = None
    has_ticket_count: bool


class TicketWithoutSeatResponse(BaseSchema):
    ticket_type_id: int
    ticket_type_name: str
    available_count: Optional[int] = None
    price: Money
