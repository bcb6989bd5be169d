"""
Issuance tracker

Records physical redemption at the gate. Seats move ``booked -> issued``;
counted lines track ``issued_count`` against ``ticket_count``. The event's
``bookedTicketCount`` measures sales and is never touched here.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.database import DatabaseManager
from quickseats.core.exceptions import (
    InvalidInputError,
    InvalidStateError,
    OrderNotFoundError,
    OverIssueError,
    SeatNotFoundError,
    TicketTypeNotInOrderError,
)
from quickseats.core.metrics import record_seat_transitions
from quickseats.models.catalog import TicketType
from quickseats.models.event import Event
from quickseats.models.order import CancellationType, Order, OrderStatus
from quickseats.schemas.inventory import OrderTicketLine, SeatRecord, SeatStatus
from quickseats.services.booking import order_lines
from quickseats.services.inventory import InventoryStore

logger = logging.getLogger(__name__)

SeatId = Union[int, str]


@dataclass
class VerifiedSeat:
    seat_id: SeatId
    status: str


@dataclass
class TicketVerification:
    order_id: int
    order_status: OrderStatus
    event_name: str
    type: CancellationType
    ticket_type_id: int
    ticket_type_name: str
    seats: List[VerifiedSeat]
    count: Optional[int] = None
    issued_count: Optional[int] = None
    remaining: Optional[int] = None


class IssuanceService:
    def __init__(self, session: AsyncSession, store: InventoryStore):
        self.session = session
        self.store = store
        self.db_manager = DatabaseManager()

    async def _load_order(self, order_id: int, require_committed: bool = True) -> Order:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        if require_committed and (order.status != OrderStatus.COMPLETED or not order.inventory_committed):
            raise InvalidStateError(
                f"Order {order_id} is {order.status.value}, only completed orders can be issued",
                details={"order_id": order_id, "status": order.status.value},
            )
        return order

    async def confirm_issue(self, order_id: int, seat_id: SeatId) -> SeatRecord:
        """Mark one booked seat of the order as issued"""
        async with self.store.redis_manager.order_lock(order_id):
            order = await self._load_order(order_id)
            if str(seat_id) not in {str(s) for s in order.seat_ids}:
                raise SeatNotFoundError(seat_id)

            async with self.store.mutate(order.event_id) as inventory:
                seat = inventory.require_seat(seat_id)
                if seat.status != SeatStatus.BOOKED:
                    raise InvalidStateError(
                        f"Seat {seat_id} is {seat.status.value}, only booked seats can be issued",
                        code="SEAT_NOT_BOOKED",
                        details={"seat_id": seat_id, "status": seat.status.value},
                    )
                seat.status = SeatStatus.ISSUED

        record_seat_transitions(SeatStatus.ISSUED.value)
        logger.info(f"Seat {seat_id} of order {order_id} issued")
        return seat

    async def issue_counted(self, order_id: int, ticket_type_id: int, count: int) -> OrderTicketLine:
        """Redeem ``count`` tickets of a counted line"""
        if count is None or count <= 0:
            raise InvalidInputError("Count to issue must be greater than zero", field="count")

        async with self.store.redis_manager.order_lock(order_id):
            order = await self._load_order(order_id)
            lines = order_lines(order)
            line = next((entry for entry in lines if entry.ticket_type_id == ticket_type_id), None)
            if line is None:
                raise TicketTypeNotInOrderError(ticket_type_id)
            if line.issued_count + count > line.ticket_count:
                raise OverIssueError(ticket_type_id, line.issuable, count)

            async with self.db_manager.transaction(self.session):
                line.issued_count += count
                order.tickets_without_seats = [entry.to_storage() for entry in lines]

        logger.info(
            f"Issued {count} tickets of type {ticket_type_id} for order {order_id} "
            f"({line.issued_count}/{line.ticket_count})"
        )
        return line

    async def verify_ticket(
        self,
        order_id: int,
        ticket_type_id: int,
        ticket_kind: CancellationType,
        seat_ids: Optional[List[SeatId]] = None,
        ticket_count: Optional[int] = None,
        ticket_type_name: Optional[str] = None,
    ) -> TicketVerification:
        """
        Describe what a scanned redemption code entitles its bearer to.

        Read only; staff use it before issuing.
        """
        order = await self._load_order(order_id, require_committed=False)
        result = await self.session.execute(select(Event.name).where(Event.id == order.event_id))
        event_name = result.scalar_one_or_none() or f"Event {order.event_id}"
        inventory = await self.store.load(order.event_id)

        if ticket_kind == CancellationType.SEAT:
            if not seat_ids:
                raise InvalidInputError("Seat tickets must list their seats", field="seat_ids")
            seats = []
            for seat_id in seat_ids:
                seat = inventory.find_seat(seat_id)
                matches = seat is not None and str(seat.type_id) == str(ticket_type_id)
                seats.append(VerifiedSeat(
                    seat_id=seat_id,
                    status=seat.status.value if matches else "unknown",
                ))
            name = next(
                (s.ticket_type_name for s in inventory.seats
                 if str(s.type_id) == str(ticket_type_id) and s.ticket_type_name),
                None,
            )
            return TicketVerification(
                order_id=order.id,
                order_status=order.status,
                event_name=event_name,
                type=ticket_kind,
                ticket_type_id=ticket_type_id,
                ticket_type_name=name or ticket_type_name or "Unknown",
                seats=seats,
            )

        if ticket_count is None:
            raise InvalidInputError("Counted tickets must state their count", field="ticket_count")
        if inventory.find_counter(ticket_type_id) is None:
            raise TicketTypeNotInOrderError(ticket_type_id)

        line = next(
            (entry for entry in order_lines(order) if entry.ticket_type_id == ticket_type_id),
            None,
        )
        if not ticket_type_name:
            name_result = await self.session.execute(
                select(TicketType.name).where(TicketType.id == ticket_type_id)
            )
            ticket_type_name = name_result.scalar_one_or_none() or "Unknown"

        return TicketVerification(
            order_id=order.id,
            order_status=order.status,
            event_name=event_name,
            type=ticket_kind,
            ticket_type_id=ticket_type_id,
            ticket_type_name=ticket_type_name,
            seats=[],
            count=ticket_count,
            issued_count=line.issued_count if line else None,
            remaining=line.issuable if line else None,
        )
