"""
Event schemas
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime

from quickseats.schemas.base import BaseSchema, IDSchema, TimestampSchema, Money
from quickseats.schemas.inventory import SeatStatus
from quickseats.models.event import EventStatus


class EventTicketPrice(BaseSchema):
    """Price (and optional pool size) of one ticket type for an event"""
    type_id: int
    price: Money = Field(..., ge=0)
    count: Optional[int] = Field(None, ge=0)


class SeatDefinition(BaseSchema):
    """One seat of a seat map as submitted by an admin"""
    model_config = ConfigDict(populate_by_name=True)

    seat_id: Union[int, str] = Field(..., alias="seatId")
    type_id: int
    price: Optional[Money] = Field(None, ge=0)


class EventBase(BaseSchema):
    """Base event schema"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    policy: Optional[str] = None
    organized_by: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    start_date_time: datetime
    end_date_time: Optional[datetime] = None
    banner_image: Optional[str] = None
    featured_image: Optional[str] = None


class EventCreate(EventBase):
    """Event creation schema"""
    tickets: List[EventTicketPrice] = []
    artists: List[int] = []
    seats: List[SeatDefinition] = []

    @field_validator('end_date_time')
    def validate_end_time(cls, v, values):
        start = values.data.get('start_date_time')
        if v is not None and start is not None and v <= start:
            raise ValueError('End time must be after start time')
        return v

    @field_validator('tickets')
    def validate_unique_types(cls, v):
        ids = [t.type_id for t in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Each ticket type may be priced only once')
        return v


class SeatMapUpdate(BaseSchema):
    """Replacement seat map for an event"""
    seats: List[SeatDefinition]

    @field_validator('seats')
    def validate_unique_seats(cls, v):
        keys = [str(s.seat_id) for s in v]
        if len(keys) != len(set(keys)):
            raise ValueError('Duplicate seat IDs not allowed')
        return v


class SeatView(BaseSchema):
    seat_id: Union[int, str] = Field(..., serialization_alias="seatId")
    status: SeatStatus
    price: Money
    ticket_type_name: Optional[str] = Field(None, serialization_alias="ticketTypeName")
    type_id: Optional[Union[int, str]] = None


class TicketDetailView(BaseSchema):
    ticket_type_id: int = Field(..., serialization_alias="ticketTypeId")
    ticket_type_name: Optional[str] = Field(None, serialization_alias="ticketTypeName")
    price: Money
    ticket_count: Optional[int] = Field(None, serialization_alias="ticketCount")
    has_ticket_count: bool = Field(False, serialization_alias="hasTicketCount")
    booked_ticket_count: int = Field(0, serialization_alias="bookedTicketCount")


class ArtistView(BaseSchema):
    id: int
    name: str


class EventResponse(EventBase, IDSchema, TimestampSchema):
    """Event with its inventory and resolved catalog names"""
    status: EventStatus
    seats: List[SeatView] = []
    ticket_details: List[TicketDetailView] = []
    artists: List[ArtistView] = []
    inventory_version: int = 0


class EventSummary(EventBase, IDSchema):
    """Listing entry without the seat map"""
    status: EventStatus
    ticket_details: List[TicketDetailView] = []
    artists: List[ArtistView] = []


class EventStatusUpdate(BaseSchema):
    status: EventStatus
