"""
Read-side inventory queries
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.exceptions import StorageParseError, TicketTypeNotFoundError
from quickseats.models.catalog import TicketType
from quickseats.schemas.inventory import SeatStatus
from quickseats.services.inventory import InventoryStore

logger = logging.getLogger(__name__)


@dataclass
class TicketAvailability:
    ticket_type_id: int
    available: Optional[int]
    has_ticket_count: bool


@dataclass
class TicketWithoutSeat:
    ticket_type_id: int
    ticket_type_name: str
    available_count: Optional[int]
    price: Decimal


class AvailabilityService:
    """
    Answers availability questions from a single unlocked load.

    Unreadable collections read as empty here; single-seat lookups report
    the storage problem instead of a misleading "not found".
    """

    def __init__(self, session: AsyncSession, store: InventoryStore):
        self.session = session
        self.store = store

    async def get_seat_status(self, event_id: int, seat_id: Union[int, str]) -> SeatStatus:
        inventory = await self.store.load(event_id)
        if "seats" in inventory.degraded_fields:
            raise StorageParseError(event_id, "seats")
        return inventory.require_seat(seat_id).status

    async def count_available(self, event_id: int, ticket_type_id: int) -> TicketAvailability:
        inventory = await self.store.load(event_id)
        counter = inventory.find_counter(ticket_type_id)
        if counter is None:
            if "ticket_details" in inventory.degraded_fields:
                raise StorageParseError(event_id, "ticket_details")
            raise TicketTypeNotFoundError(ticket_type_id)

        return TicketAvailability(
            ticket_type_id=ticket_type_id,
            available=counter.remaining,
            has_ticket_count=counter.has_ticket_count,
        )

    async def list_tickets_without_seats(self, event_id: int) -> List[TicketWithoutSeat]:
        inventory = await self.store.load(event_id)
        counters = [c for c in inventory.counters if c.has_ticket_count]
        if not counters:
            return []

        result = await self.session.execute(
            select(TicketType.id, TicketType.name).where(
                TicketType.id.in_([c.ticket_type_id for c in counters])
            )
        )
        names = {row.id: row.name for row in result}

        tickets = []
        for counter in counters:
            name = names.get(counter.ticket_type_id)
            if name is None:
                logger.warning(
                    f"Event {event_id} offers ticket type {counter.ticket_type_id} missing from the catalog"
                )
                name = "Unknown"
            tickets.append(
                TicketWithoutSeat(
                    ticket_type_id=counter.ticket_type_id,
                    ticket_type_name=name,
                    available_count=counter.remaining,
                    price=counter.price,
                )
            )
        return tickets
