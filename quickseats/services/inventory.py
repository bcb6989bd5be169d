"""
Inventory store

Loads an event's seat map and ticket counters exactly once per operation,
hands them to the caller as typed records, and writes them back whole with
a version check. Mutations run under a per-event Redis lock and commit the
session once, so the order row and ledger changes staged by the caller land
in the same write as the inventory.
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Type, TypeVar, Union, AsyncIterator

from pydantic import BaseModel, ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.database import DatabaseManager
from quickseats.core.exceptions import (
    ConcurrencyError,
    EventNotFoundError,
    LockAcquisitionError,
    SeatNotFoundError,
    StorageParseError,
    TicketTypeNotFoundError,
)
from quickseats.core.metrics import INVENTORY_CONFLICTS
from quickseats.core.redis import RedisManager
from quickseats.models.event import Event
from quickseats.schemas.inventory import SeatRecord, TicketCounter

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


def decode_collection(raw: Any, model: Type[R]) -> Tuple[List[R], bool]:
    """
    Decode a persisted JSON collection into ``model`` records.

    Accepts an already structured list or its serialized string form.
    Returns ``(records, degraded)``; unparseable text, non-array content or
    an invalid entry yields an empty list with ``degraded`` set.
    """
    if raw is None:
        return [], False

    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return [], False
        try:
            raw = json.loads(raw)
        except ValueError:
            return [], True

    if not isinstance(raw, list):
        return [], True

    try:
        return [model.model_validate(item) for item in raw], False
    except ValidationError:
        return [], True


def encode_collection(records: List[BaseModel]) -> List[dict]:
    return [record.to_storage() for record in records]


@dataclass
class EventInventory:
    """In-memory copy of one event's inventory"""
    event_id: int
    version: int
    seats: List[SeatRecord]
    counters: List[TicketCounter]
    degraded_fields: List[str] = field(default_factory=list)
    _snapshot: Tuple[str, str] = ("", "")

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_fields)

    def find_seat(self, seat_id: Union[int, str]) -> Optional[SeatRecord]:
        key = str(seat_id)
        for seat in self.seats:
            if seat.key == key:
                return seat
        return None

    def require_seat(self, seat_id: Union[int, str]) -> SeatRecord:
        seat = self.find_seat(seat_id)
        if seat is None:
            raise SeatNotFoundError(seat_id, self.event_id)
        return seat

    def find_counter(self, ticket_type_id: int) -> Optional[TicketCounter]:
        for counter in self.counters:
            if counter.ticket_type_id == ticket_type_id:
                return counter
        return None

    def require_counter(self, ticket_type_id: int) -> TicketCounter:
        counter = self.find_counter(ticket_type_id)
        if counter is None:
            raise TicketTypeNotFoundError(ticket_type_id)
        return counter

    def encoded(self) -> Tuple[List[dict], List[dict]]:
        return encode_collection(self.seats), encode_collection(self.counters)

    def take_snapshot(self):
        seats, counters = self.encoded()
        self._snapshot = (json.dumps(seats, sort_keys=True), json.dumps(counters, sort_keys=True))

    def is_dirty(self) -> bool:
        seats, counters = self.encoded()
        return self._snapshot != (json.dumps(seats, sort_keys=True), json.dumps(counters, sort_keys=True))


class InventoryStore:
    """
    Read-modify-write access to event inventory
    """

    def __init__(self, session: AsyncSession, redis_manager: RedisManager):
        self.session = session
        self.redis_manager = redis_manager
        self.db_manager = DatabaseManager()

    async def load(self, event_id: int) -> EventInventory:
        result = await self.session.execute(
            select(
                Event.seats,
                Event.ticket_details,
                Event.inventory_version,
            ).where(Event.id == event_id)
        )
        row = result.first()
        if row is None:
            raise EventNotFoundError(event_id)

        seats, seats_degraded = decode_collection(row.seats, SeatRecord)
        counters, counters_degraded = decode_collection(row.ticket_details, TicketCounter)

        degraded = []
        if seats_degraded:
            degraded.append("seats")
        if counters_degraded:
            degraded.append("ticket_details")
        if degraded:
            logger.error(
                f"Unreadable inventory for event {event_id}: {', '.join(degraded)}",
                extra={"context": {"event_id": event_id, "fields": degraded}},
            )

        inventory = EventInventory(
            event_id=event_id,
            version=row.inventory_version or 0,
            seats=seats,
            counters=counters,
            degraded_fields=degraded,
        )
        inventory.take_snapshot()
        return inventory

    async def save(self, inventory: EventInventory) -> bool:
        """
        Stage both collections with a compare-and-swap on the version.

        Returns False when nothing changed since load. The write is flushed
        but not committed.
        """
        if inventory.degraded:
            raise StorageParseError(inventory.event_id, inventory.degraded_fields[0])
        if not inventory.is_dirty():
            return False

        seats, counters = inventory.encoded()
        result = await self.session.execute(
            update(Event)
            .where(
                Event.id == inventory.event_id,
                Event.inventory_version == inventory.version,
            )
            .values(
                seats=seats,
                ticket_details=counters,
                inventory_version=inventory.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            INVENTORY_CONFLICTS.labels(reason="version").inc()
            logger.warning(
                f"Inventory version conflict for event {inventory.event_id} at version {inventory.version}"
            )
            raise ConcurrencyError(
                f"Inventory of event {inventory.event_id} changed during the update"
            )

        inventory.version += 1
        inventory.take_snapshot()
        return True

    @asynccontextmanager
    async def mutate(self, event_id: int) -> AsyncIterator[EventInventory]:
        """
        Lock the event, load its inventory and commit once on exit.

        Anything else the caller staged on the session is committed in the
        same transaction. Any exception rolls the whole operation back.
        """
        try:
            async with self.redis_manager.event_lock(event_id):
                async with self.db_manager.transaction(self.session):
                    inventory = await self.load(event_id)
                    if inventory.degraded:
                        raise StorageParseError(event_id, inventory.degraded_fields[0])
                    yield inventory
                    await self.save(inventory)
        except LockAcquisitionError:
            INVENTORY_CONFLICTS.labels(reason="lock").inc()
            raise
        except StorageParseError:
            INVENTORY_CONFLICTS.labels(reason="unreadable").inc()
            raise
