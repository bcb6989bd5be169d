"""
Inventory blob schemas

These models are the single decoding point for the JSON collections stored
on events and orders. They read and write the persisted key names
(``seatId``, ``ticketTypeName``, ``bookedTicketCount``...) and keep any
extra keys they do not know about so a load/save cycle never drops data.
"""

import enum
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from quickseats.schemas.base import Money


class SeatStatus(str, enum.Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    BOOKED = "booked"
    ISSUED = "issued"


class InventoryRecord(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SeatRecord(InventoryRecord):
    """One seat of an event's seat map"""
    seat_id: Union[int, str] = Field(alias="seatId")
    status: SeatStatus = SeatStatus.AVAILABLE
    price: Money = Decimal("0")
    ticket_type_name: Optional[str] = Field(default=None, alias="ticketTypeName")
    type_id: Optional[Union[int, str]] = None

    @property
    def key(self) -> str:
        """Seat ids arrive as numbers or strings; compare them as text"""
        return str(self.seat_id)

    @property
    def numeric_type_id(self) -> Optional[int]:
        """type_id as a ticket type key; numeric strings such as "3" count too"""
        if isinstance(self.type_id, int):
            return self.type_id
        if isinstance(self.type_id, str) and self.type_id.strip().isdigit():
            return int(self.type_id)
        return None


class TicketCounter(InventoryRecord):
    """Per-event pool for one ticket type"""
    ticket_type_id: int = Field(alias="ticketTypeId")
    price: Money = Decimal("0")
    ticket_count: Optional[int] = Field(default=None, alias="ticketCount")
    has_ticket_count: bool = Field(default=False, alias="hasTicketCount")
    booked_ticket_count: int = Field(default=0, alias="bookedTicketCount")

    @property
    def is_limited(self) -> bool:
        return self.has_ticket_count and self.ticket_count is not None

    @property
    def remaining(self) -> Optional[int]:
        """Tickets left in the pool, None when the pool is unlimited"""
        if not self.is_limited:
            return None
        return max(self.ticket_count - self.booked_ticket_count, 0)


class OrderTicketLine(InventoryRecord):
    """A counted-ticket line held by an order"""
    ticket_type_id: int
    ticket_count: int = 0
    issued_count: int = 0
    # Price at booking time, used when the event counter has since vanished
    unit_price: Optional[Money] = None

    @property
    def issuable(self) -> int:
        return max(self.ticket_count - self.issued_count, 0)
