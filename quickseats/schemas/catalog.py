"""
Ticket type and artist schemas
"""

from pydantic import Field
from typing import Optional

from quickseats.schemas.base import BaseSchema, IDSchema, TimestampSchema
from quickseats.models.catalog import CatalogStatus


class TicketTypeCreate(BaseSchema):
    """Ticket type creation schema"""
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    has_ticket_count: bool = False


class TicketTypeResponse(TicketTypeCreate, IDSchema, TimestampSchema):
    status: CatalogStatus


class ArtistCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)


class ArtistResponse(ArtistCreate, IDSchema, TimestampSchema):
    status: CatalogStatus


class StatusUpdate(BaseSchema):
    status: CatalogStatus
