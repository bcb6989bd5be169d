"""
Cancellation engine

Reverses the inventory effects of a committed order, a subset of its seats
or part of a counted-ticket line, shrinks the order's own snapshot and
totals, and appends CanceledTicket audit rows. The event inventory and the
order are written together.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.exceptions import (
    InsufficientQuantityError,
    InvalidQuantityError,
    InvalidStateError,
    NoValidSeatsError,
    OrderCancelledError,
    OrderNotFoundError,
    TicketTypeNotInOrderError,
)
from quickseats.core.metrics import CANCELLATIONS, record_seat_transitions
from quickseats.models.catalog import TicketType
from quickseats.models.event import Event
from quickseats.models.order import CancellationType, CanceledTicket, Order, OrderStatus
from quickseats.schemas.inventory import OrderTicketLine, SeatStatus
from quickseats.schemas.order import SeatCancelItem
from quickseats.services.booking import order_lines
from quickseats.services.email_service import EmailService
from quickseats.services.inventory import EventInventory, InventoryStore

logger = logging.getLogger(__name__)


@dataclass
class CancellationResult:
    order: Order
    cancelled: List[CanceledTicket]
    reduction: Decimal


class CancellationService:
    def __init__(self, session: AsyncSession, store: InventoryStore, notifier: EmailService):
        self.session = session
        self.store = store
        self.notifier = notifier

    async def _load_order(self, order_id: int) -> Order:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise OrderCancelledError(order_id)
        if not order.inventory_committed:
            raise InvalidStateError(
                f"Order {order_id} is {order.status.value} and holds no committed tickets",
                details={"order_id": order_id, "status": order.status.value},
            )
        return order

    async def _ticket_type_names(self, ids: List[int]) -> Dict[int, str]:
        if not ids:
            return {}
        result = await self.session.execute(
            select(TicketType.id, TicketType.name).where(TicketType.id.in_(ids))
        )
        return {row.id: row.name for row in result}

    def _release_seat(
        self,
        inventory: EventInventory,
        order: Order,
        seat_id: Union[int, str],
        fallback: Optional[SeatCancelItem] = None,
    ) -> CanceledTicket:
        """Free one seat of the event and build its audit row"""
        seat = inventory.find_seat(seat_id)
        if seat is not None:
            seat.status = SeatStatus.AVAILABLE
            price = seat.price
            type_id = seat.numeric_type_id
            type_name = seat.ticket_type_name
        else:
            logger.warning(
                f"Seat {seat_id} of order {order.id} is missing from event {order.event_id}, "
                f"auditing with the supplied details"
            )
            price = fallback.price if fallback else Decimal("0")
            type_id = fallback.ticket_type_id if fallback else None
            type_name = fallback.ticket_type_name if fallback else None

        return CanceledTicket(
            order_id=order.id,
            type=CancellationType.SEAT,
            seat_id=str(seat_id),
            type_id=type_id,
            ticket_type_name=type_name,
            quantity=1,
            price=price,
        )

    def _release_tickets(
        self,
        inventory: EventInventory,
        order: Order,
        line: OrderTicketLine,
        quantity: int,
        type_name: Optional[str] = None,
    ) -> CanceledTicket:
        """Return ``quantity`` tickets of a line to the event pool and build the audit row"""
        counter = inventory.find_counter(line.ticket_type_id)
        if counter is not None:
            counter.booked_ticket_count = max(counter.booked_ticket_count - quantity, 0)
            unit_price = counter.price
        elif line.unit_price is not None:
            logger.warning(
                f"Ticket type {line.ticket_type_id} no longer offered by event {order.event_id}, "
                f"refunding at the booked price"
            )
            unit_price = line.unit_price
        else:
            logger.warning(
                f"No price known for ticket type {line.ticket_type_id} on order {order.id}"
            )
            unit_price = Decimal("0")

        line.ticket_count -= quantity
        line.issued_count = min(line.issued_count, line.ticket_count)

        return CanceledTicket(
            order_id=order.id,
            type=CancellationType.NO_SEAT,
            type_id=line.ticket_type_id,
            ticket_type_name=type_name,
            quantity=quantity,
            price=unit_price * quantity,
        )

    def _apply(self, order: Order, rows: List[CanceledTicket], seat_ids, lines: List[OrderTicketLine]) -> Decimal:
        reduction = sum((row.price for row in rows), Decimal("0"))
        order.seat_ids = list(seat_ids)
        order.tickets_without_seats = [line.to_storage() for line in lines if line.ticket_count > 0]
        order.sub_total = order.sub_total - reduction
        order.total = order.total - reduction
        if not order.seat_ids and not order.tickets_without_seats:
            order.status = OrderStatus.CANCELLED
        self.session.add_all(rows)
        return reduction

    async def cancel_seats(self, order_id: int, items: List[SeatCancelItem]) -> CancellationResult:
        async with self.store.redis_manager.order_lock(order_id):
            order = await self._load_order(order_id)
            lines = order_lines(order)

            async with self.store.mutate(order.event_id) as inventory:
                held = list(order.seat_ids)
                rows = []
                for item in items:
                    match = next((s for s in held if str(s) == str(item.seat_id)), None)
                    if match is None:
                        logger.warning(f"Seat {item.seat_id} is not held by order {order_id}, skipping")
                        continue
                    held.remove(match)
                    rows.append(self._release_seat(inventory, order, match, item))

                if not rows:
                    raise NoValidSeatsError([item.seat_id for item in items])
                reduction = self._apply(order, rows, held, lines)

        return await self._finish(order, rows, reduction, "seats")

    async def cancel_counted(
        self,
        order_id: int,
        ticket_type_id: int,
        quantity: int,
        ticket_type_name: Optional[str] = None,
    ) -> CancellationResult:
        if quantity is None or quantity <= 0:
            raise InvalidQuantityError()

        async with self.store.redis_manager.order_lock(order_id):
            order = await self._load_order(order_id)
            lines = order_lines(order)
            line = next((entry for entry in lines if entry.ticket_type_id == ticket_type_id), None)
            if line is None or line.ticket_count <= 0:
                raise TicketTypeNotInOrderError(ticket_type_id)
            if quantity > line.ticket_count:
                raise InsufficientQuantityError(ticket_type_id, line.ticket_count, quantity)

            if not ticket_type_name:
                names = await self._ticket_type_names([ticket_type_id])
                ticket_type_name = names.get(ticket_type_id)

            async with self.store.mutate(order.event_id) as inventory:
                row = self._release_tickets(inventory, order, line, quantity, ticket_type_name)
                reduction = self._apply(order, [row], order.seat_ids, lines)

        return await self._finish(order, [row], reduction, "tickets")

    async def cancel_order(self, order_id: int) -> CancellationResult:
        async with self.store.redis_manager.order_lock(order_id):
            order = await self._load_order(order_id)
            lines = order_lines(order)
            names = await self._ticket_type_names([line.ticket_type_id for line in lines])

            async with self.store.mutate(order.event_id) as inventory:
                rows = [self._release_seat(inventory, order, seat_id) for seat_id in order.seat_ids]
                for line in lines:
                    if line.ticket_count > 0:
                        rows.append(self._release_tickets(
                            inventory, order, line, line.ticket_count, names.get(line.ticket_type_id)
                        ))
                reduction = self._apply(order, rows, [], lines)
                order.status = OrderStatus.CANCELLED

        return await self._finish(order, rows, reduction, "order")

    async def _finish(self, order: Order, rows: List[CanceledTicket], reduction: Decimal, kind: str) -> CancellationResult:
        CANCELLATIONS.labels(kind=kind).inc()
        record_seat_transitions(
            SeatStatus.AVAILABLE.value,
            sum(1 for row in rows if row.type == CancellationType.SEAT),
        )
        logger.info(
            f"Cancelled {len(rows)} entries of order {order.id} ({kind}), "
            f"reduction {reduction}, new total {order.total}"
        )

        result = await self.session.execute(select(Event.name).where(Event.id == order.event_id))
        event_name = result.scalar_one_or_none() or f"Event {order.event_id}"
        await self.notifier.send_cancellation(
            to_email=order.email,
            customer_name=f"{order.first_name} {order.last_name}",
            order_id=order.id,
            event_name=event_name,
            rows=[
                {
                    "ticket_type_name": row.ticket_type_name,
                    "seat_id": row.seat_id,
                    "quantity": row.quantity,
                    "price": row.price,
                }
                for row in rows
            ],
            reduction=reduction,
            total=order.total,
        )
        return CancellationResult(order=order, cancelled=rows, reduction=reduction)
