"""
Seat hold and release
"""

import logging
from dataclasses import dataclass
from typing import List, Union

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.exceptions import InvalidStateError
from quickseats.core.metrics import record_seat_transitions
from quickseats.models.reservation import SeatReservation
from quickseats.schemas.inventory import SeatRecord, SeatStatus
from quickseats.services.inventory import InventoryStore

logger = logging.getLogger(__name__)

SeatId = Union[int, str]


@dataclass
class SeatResetResult:
    reset_seats: List[SeatId]
    not_found_seats: List[SeatId]


async def delete_ledger_entries(session: AsyncSession, event_id: int, seat_ids: List[SeatId]):
    """Stage deletion of the hold rows for ``seat_ids``"""
    if not seat_ids:
        return
    await session.execute(
        delete(SeatReservation).where(
            SeatReservation.event_id == event_id,
            SeatReservation.seat_id.in_([str(s) for s in seat_ids]),
        )
    )


class SeatHoldService:
    """
    Moves single seats between ``available`` and ``pending``.

    A hold is recorded in the reservation ledger so the sweeper can expire it.
    """

    def __init__(self, session: AsyncSession, store: InventoryStore):
        self.session = session
        self.store = store

    async def select_seat(self, event_id: int, seat_id: SeatId) -> SeatRecord:
        async with self.store.mutate(event_id) as inventory:
            seat = inventory.require_seat(seat_id)
            if seat.status != SeatStatus.AVAILABLE:
                raise InvalidStateError(
                    f"Seat {seat_id} is {seat.status.value} and cannot be selected",
                    code="SEAT_NOT_AVAILABLE",
                    details={"seat_id": seat_id, "status": seat.status.value},
                )
            seat.status = SeatStatus.PENDING

            # A row left behind by an administrative reset is replaced,
            # the hold starts now
            await delete_ledger_entries(self.session, event_id, [seat.seat_id])
            self.session.add(SeatReservation(event_id=event_id, seat_id=seat.key))

        record_seat_transitions(SeatStatus.PENDING.value)
        logger.info(f"Seat {seat_id} of event {event_id} held")
        return seat

    async def unselect_seat(self, event_id: int, seat_id: SeatId) -> SeatRecord:
        async with self.store.mutate(event_id) as inventory:
            seat = inventory.require_seat(seat_id)
            if seat.status != SeatStatus.PENDING:
                raise InvalidStateError(
                    f"Seat {seat_id} is {seat.status.value}, only pending seats can be released",
                    code="SEAT_NOT_PENDING",
                    details={"seat_id": seat_id, "status": seat.status.value},
                )
            seat.status = SeatStatus.AVAILABLE
            await delete_ledger_entries(self.session, event_id, [seat.seat_id])

        record_seat_transitions(SeatStatus.AVAILABLE.value)
        logger.info(f"Seat {seat_id} of event {event_id} released")
        return seat

    async def reset_seats(self, event_id: int, seat_ids: List[SeatId]) -> SeatResetResult:
        """
        Force seats back to ``available`` whatever their status.

        Administrative override; the ledger is left alone.
        """
        reset, not_found = [], []
        async with self.store.mutate(event_id) as inventory:
            for seat_id in seat_ids:
                seat = inventory.find_seat(seat_id)
                if seat is None:
                    not_found.append(seat_id)
                    continue
                seat.status = SeatStatus.AVAILABLE
                reset.append(seat_id)

        record_seat_transitions(SeatStatus.AVAILABLE.value, len(reset))
        logger.info(
            f"Reset {len(reset)} seats of event {event_id}, {len(not_found)} not found"
        )
        return SeatResetResult(reset_seats=reset, not_found_seats=not_found)
