"""
Booking engine

Two commit strategies share one validation routine:

* immediate - admin desk sales. Seats must be ``available``; inventory is
  committed and the order completed in the same write.
* deferred - online checkout. Seats may be ``available`` or ``pending``;
  the order is created ``pending`` with no inventory change, and the
  inventory is committed when the payment gateway confirms.
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.exceptions import (
    AlreadyProcessedError,
    CapacityError,
    EmptySelectionError,
    InvalidInputError,
    InvalidQuantityError,
    InvalidStateError,
    NotFoundError,
    OrderNotFoundError,
    SeatUnavailableError,
    SoldOutError,
    StorageParseError,
)
from quickseats.core.metrics import BOOKINGS, record_seat_transitions
from quickseats.models.catalog import TicketType
from quickseats.models.event import Event
from quickseats.models.order import CommitStrategy, Order, OrderStatus
from quickseats.schemas.inventory import OrderTicketLine, SeatRecord, SeatStatus
from quickseats.schemas.order import BookingRequest, TicketRequest
from quickseats.services.fulfillment import FulfillmentService
from quickseats.services.inventory import EventInventory, InventoryStore, decode_collection
from quickseats.services.payment_gateway import ACCEPT, PaymentGateway
from quickseats.services.seat_hold import delete_ledger_entries

logger = logging.getLogger(__name__)

SeatId = Union[int, str]

IMMEDIATE_ACCEPTS: FrozenSet[SeatStatus] = frozenset({SeatStatus.AVAILABLE})
DEFERRED_ACCEPTS: FrozenSet[SeatStatus] = frozenset({SeatStatus.AVAILABLE, SeatStatus.PENDING})

TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED)


@dataclass
class BookingQuote:
    """Validated selection priced against one loaded inventory"""
    seats: List[SeatRecord]
    lines: List[OrderTicketLine]
    sub_total: Decimal
    seat_groups: Dict[str, List[SeatRecord]] = field(default_factory=dict)
    ticket_type_names: Dict[int, str] = field(default_factory=dict)


def validate_selection(
    inventory: EventInventory,
    seat_ids: Sequence[SeatId],
    tickets: Sequence[TicketRequest],
    accepted: FrozenSet[SeatStatus],
) -> BookingQuote:
    """
    Check every requested seat and counted line, and price the selection.

    Raises on the first problem; the inventory is never modified.
    """
    if not seat_ids and not tickets:
        raise EmptySelectionError()

    sub_total = Decimal("0")
    seats: List[SeatRecord] = []
    seen = set()
    groups: Dict[str, List[SeatRecord]] = OrderedDict()

    for seat_id in seat_ids:
        seat = inventory.require_seat(seat_id)
        if seat.key in seen:
            raise InvalidInputError(f"Seat {seat_id} requested twice", field="seat_ids")
        seen.add(seat.key)
        if seat.status not in accepted:
            raise SeatUnavailableError(seat.seat_id, seat.status.value)
        seats.append(seat)
        sub_total += seat.price
        groups.setdefault(seat.ticket_type_name or "General", []).append(seat)

    requested: Dict[int, int] = OrderedDict()
    for ticket in tickets:
        if ticket.ticket_count <= 0:
            raise InvalidQuantityError("ticket_count")
        requested[ticket.ticket_type_id] = requested.get(ticket.ticket_type_id, 0) + ticket.ticket_count

    lines = []
    for ticket_type_id, count in requested.items():
        counter = inventory.require_counter(ticket_type_id)
        if counter.is_limited:
            remaining = counter.ticket_count - counter.booked_ticket_count
            if count > remaining:
                raise SoldOutError(ticket_type_id, max(remaining, 0), count)
        lines.append(OrderTicketLine(
            ticket_type_id=ticket_type_id,
            ticket_count=count,
            issued_count=0,
            unit_price=counter.price,
        ))
        sub_total += counter.price * count

    return BookingQuote(seats=seats, lines=lines, sub_total=sub_total, seat_groups=groups)


def commit_selection(inventory: EventInventory, quote: BookingQuote):
    """Mark the quoted seats booked and add the quoted counts to the pools"""
    for seat in quote.seats:
        seat.status = SeatStatus.BOOKED
    for line in quote.lines:
        counter = inventory.require_counter(line.ticket_type_id)
        counter.booked_ticket_count = counter.booked_ticket_count + line.ticket_count


def order_lines(order: Order) -> List[OrderTicketLine]:
    lines, degraded = decode_collection(order.tickets_without_seats, OrderTicketLine)
    if degraded:
        logger.error(f"Unreadable ticket lines on order {order.id}")
        raise StorageParseError(order.event_id, "tickets_without_seats")
    return lines


class BookingService:
    """
    Creates orders and commits their inventory
    """

    def __init__(
        self,
        session: AsyncSession,
        store: InventoryStore,
        fulfillment: FulfillmentService,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.session = session
        self.store = store
        self.fulfillment = fulfillment
        self.gateway = gateway or PaymentGateway()

    async def _ticket_type_names(self, quote: BookingQuote):
        ids = [line.ticket_type_id for line in quote.lines]
        if not ids:
            return
        result = await self.session.execute(
            select(TicketType.id, TicketType.name).where(TicketType.id.in_(ids))
        )
        quote.ticket_type_names = {row.id: row.name for row in result}

    async def _event_name(self, event_id: int) -> str:
        result = await self.session.execute(select(Event.name).where(Event.id == event_id))
        return result.scalar_one_or_none() or f"Event {event_id}"

    def _new_order(self, request: BookingRequest, quote: BookingQuote, strategy: CommitStrategy) -> Order:
        customer = request.customer
        return Order(
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            contact_number=customer.contact_number,
            nic_passport=customer.nic_passport,
            country=customer.country,
            user_id=customer.user_id,
            event_id=request.event_id,
            seat_ids=[seat.seat_id for seat in quote.seats],
            tickets_without_seats=[line.to_storage() for line in quote.lines],
            sub_total=quote.sub_total,
            discount=Decimal("0"),
            total=quote.sub_total,
            commit_strategy=strategy,
        )

    async def get_order(self, order_id: int) -> Order:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(
        self,
        event_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Order]:
        query = select(Order).order_by(Order.id.desc()).offset(skip).limit(limit)
        if event_id is not None:
            query = query.where(Order.event_id == event_id)
        if status is not None:
            query = query.where(Order.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def book_immediately(self, request: BookingRequest) -> Tuple[Order, BookingQuote]:
        """Validate, commit inventory and create a completed order in one write"""
        try:
            async with self.store.mutate(request.event_id) as inventory:
                quote = validate_selection(inventory, request.seat_ids, request.tickets, IMMEDIATE_ACCEPTS)
                commit_selection(inventory, quote)

                order = self._new_order(request, quote, CommitStrategy.IMMEDIATE)
                order.status = OrderStatus.COMPLETED
                order.inventory_committed = True
                self.session.add(order)
                await delete_ledger_entries(self.session, request.event_id, order.seat_ids)
        except (CapacityError, InvalidStateError, InvalidInputError, NotFoundError):
            BOOKINGS.labels(strategy="immediate", outcome="rejected").inc()
            raise

        BOOKINGS.labels(strategy="immediate", outcome="completed").inc()
        record_seat_transitions(SeatStatus.BOOKED.value, len(quote.seats))
        logger.info(
            f"Order {order.id} booked immediately for event {order.event_id}: "
            f"{len(quote.seats)} seats, {sum(line.ticket_count for line in quote.lines)} counted tickets, total {order.total}"
        )

        await self._ticket_type_names(quote)
        await self.fulfillment.fulfill(order, quote, await self._event_name(order.event_id))
        return order, quote

    async def checkout(self, request: BookingRequest) -> Tuple[Order, Dict[str, str]]:
        """
        Create a pending order and the signed payment request for it.

        Inventory is validated but not touched until the gateway confirms.
        """
        inventory = await self.store.load(request.event_id)
        if inventory.degraded:
            raise StorageParseError(request.event_id, inventory.degraded_fields[0])

        try:
            quote = validate_selection(inventory, request.seat_ids, request.tickets, DEFERRED_ACCEPTS)
        except (CapacityError, InvalidStateError, InvalidInputError, NotFoundError):
            BOOKINGS.labels(strategy="deferred", outcome="rejected").inc()
            raise

        order = self._new_order(request, quote, CommitStrategy.DEFERRED)
        order.status = OrderStatus.PENDING
        order.inventory_committed = False
        order.transaction_uuid = uuid.uuid4().hex
        self.session.add(order)
        await self.session.commit()

        BOOKINGS.labels(strategy="deferred", outcome="pending").inc()
        logger.info(f"Checkout created pending order {order.id} for event {order.event_id}, total {order.total}")

        fields = self.gateway.build_payment_request(
            order_id=order.id,
            transaction_uuid=order.transaction_uuid,
            amount=order.total,
            first_name=order.first_name,
            last_name=order.last_name,
            email=order.email,
        )
        return order, fields

    async def handle_payment_callback(self, fields: Mapping[str, str]) -> Order:
        """
        Apply a signed gateway notification to its pending order.

        Raises SignatureMismatchError before touching anything, and
        AlreadyProcessedError when the order already reached a final status.
        """
        self.gateway.verify(fields)

        try:
            order_id = int(fields.get("req_reference_number", ""))
        except ValueError:
            raise OrderNotFoundError(fields.get("req_reference_number")) from None
        transaction_uuid = fields.get("req_transaction_uuid")
        decision = (fields.get("decision") or "").upper()

        async with self.store.redis_manager.order_lock(order_id):
            result = await self.session.execute(
                select(Order)
                .where(Order.id == order_id, Order.transaction_uuid == transaction_uuid)
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one_or_none()
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.status in TERMINAL_STATUSES:
                logger.info(f"Ignoring repeated payment notification for order {order_id} ({order.status.value})")
                raise AlreadyProcessedError(order_id, order.status.value)

            if decision == ACCEPT:
                return await self._confirm(order, fields)
            return await self._decline(order, decision)

    async def _confirm(self, order: Order, fields: Mapping[str, str]) -> Order:
        order_id = order.id
        lines = order_lines(order)
        tickets = [
            TicketRequest(ticket_type_id=line.ticket_type_id, ticket_count=line.ticket_count)
            for line in lines if line.ticket_count > 0
        ]

        try:
            async with self.store.mutate(order.event_id) as inventory:
                quote = validate_selection(inventory, order.seat_ids, tickets, DEFERRED_ACCEPTS)
                commit_selection(inventory, quote)
                order.status = OrderStatus.COMPLETED
                order.inventory_committed = True
                order.payment_reference = fields.get("transaction_id")
                await delete_ledger_entries(self.session, order.event_id, order.seat_ids)
        except (CapacityError, InvalidStateError, NotFoundError) as e:
            # Paid, but the inventory went elsewhere meanwhile
            await self.session.refresh(order)
            order.status = OrderStatus.FAILED
            order.payment_reference = fields.get("transaction_id")
            await self.session.commit()
            BOOKINGS.labels(strategy="deferred", outcome="failed").inc()
            logger.error(
                f"Paid order {order_id} could not be fulfilled and needs a refund: {e.message}",
                extra={"context": {"order_id": order_id, "code": e.code}},
            )
            return order

        BOOKINGS.labels(strategy="deferred", outcome="completed").inc()
        record_seat_transitions(SeatStatus.BOOKED.value, len(quote.seats))
        logger.info(f"Payment accepted for order {order_id}, inventory committed")

        await self._ticket_type_names(quote)
        await self.fulfillment.fulfill(order, quote, await self._event_name(order.event_id))
        return order

    async def _decline(self, order: Order, decision: str) -> Order:
        order_id = order.id
        if not order.seat_ids:
            order.status = OrderStatus.FAILED
            await self.session.commit()
        else:
            released = 0
            async with self.store.mutate(order.event_id) as inventory:
                for seat_id in order.seat_ids:
                    seat = inventory.find_seat(seat_id)
                    # Seats booked by someone else are not ours to release
                    if seat is not None and seat.status == SeatStatus.PENDING:
                        seat.status = SeatStatus.AVAILABLE
                        released += 1
                await delete_ledger_entries(self.session, order.event_id, order.seat_ids)
                order.status = OrderStatus.FAILED
            record_seat_transitions(SeatStatus.AVAILABLE.value, released)

        BOOKINGS.labels(strategy="deferred", outcome="failed").inc()
        logger.info(f"Payment for order {order_id} ended with decision {decision or 'UNKNOWN'}, order failed")
        return order
