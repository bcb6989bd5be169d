"""
Tests for seat holds, releases, resets and availability queries
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from quickseats.core.exceptions import (
    InvalidStateError,
    SeatNotFoundError,
    StorageParseError,
    TicketTypeNotFoundError,
)
from quickseats.models.event import Event
from quickseats.models.reservation import SeatReservation
from quickseats.schemas.event import EventCreate, EventTicketPrice, SeatDefinition
from quickseats.schemas.inventory import SeatStatus
from quickseats.services.inventory import InventoryStore
from quickseats.services.seat_hold import SeatHoldService


async def ledger_rows(session, event_id):
    result = await session.execute(
        select(SeatReservation.seat_id).where(SeatReservation.event_id == event_id)
    )
    return sorted(row.seat_id for row in result)


@pytest.mark.unit
class TestSeatHold:
    """Select and unselect of single seats"""

    async def test_select_then_unselect(self, seat_hold_service, store, db_session, test_event):
        """Seat goes pending with a ledger row, then back to available without one"""
        seat = await seat_hold_service.select_seat(test_event.id, "A1")
        assert seat.status == SeatStatus.PENDING
        assert await ledger_rows(db_session, test_event.id) == ["A1"]

        seat = await seat_hold_service.unselect_seat(test_event.id, "A1")
        assert seat.status == SeatStatus.AVAILABLE
        assert await ledger_rows(db_session, test_event.id) == []

        stored = (await store.load(test_event.id)).find_seat("A1")
        assert stored.status == SeatStatus.AVAILABLE

    async def test_round_trip_keeps_seat_fields(self, seat_hold_service, store, test_event):
        before = (await store.load(test_event.id)).find_seat("B1").to_storage()

        await seat_hold_service.select_seat(test_event.id, "B1")
        await seat_hold_service.unselect_seat(test_event.id, "B1")

        after = (await store.load(test_event.id)).find_seat("B1").to_storage()
        assert after == before

    async def test_select_unknown_seat(self, seat_hold_service, test_event):
        with pytest.raises(SeatNotFoundError):
            await seat_hold_service.select_seat(test_event.id, "Z9")

    async def test_select_held_seat(self, seat_hold_service, db_session, test_event):
        await seat_hold_service.select_seat(test_event.id, "A1")

        with pytest.raises(InvalidStateError) as exc_info:
            await seat_hold_service.select_seat(test_event.id, "A1")
        assert exc_info.value.code == "SEAT_NOT_AVAILABLE"
        assert await ledger_rows(db_session, test_event.id) == ["A1"]

    async def test_unselect_available_seat(self, seat_hold_service, test_event):
        with pytest.raises(InvalidStateError) as exc_info:
            await seat_hold_service.unselect_seat(test_event.id, "A2")
        assert exc_info.value.code == "SEAT_NOT_PENDING"

    async def test_numeric_seat_ids_match_text(self, catalog_service, seat_hold_service, ticket_types):
        """Seat ids stored as numbers are addressable by their text form"""
        vip = ticket_types["vip"]
        event = await catalog_service.create_event(EventCreate(
            name="Numbered",
            start_date_time=datetime.now(timezone.utc) + timedelta(days=3),
            tickets=[EventTicketPrice(type_id=vip.id, price=200)],
            seats=[SeatDefinition(seat_id=12, type_id=vip.id)],
        ))

        seat = await seat_hold_service.select_seat(event.id, "12")
        assert seat.seat_id == 12
        assert seat.status == SeatStatus.PENDING

    async def test_concurrent_selects_hold_once(self, session_factory, redis_manager, test_event):
        """Two customers racing for one seat: exactly one hold"""
        async def attempt():
            async with session_factory() as session:
                service = SeatHoldService(session, InventoryStore(session, redis_manager))
                return await service.select_seat(test_event.id, "B1")

        results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

        held = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InvalidStateError)]
        assert len(held) == 1
        assert len(rejected) == 1

        async with session_factory() as session:
            assert await ledger_rows(session, test_event.id) == ["B1"]
            version = await session.scalar(
                select(Event.inventory_version).where(Event.id == test_event.id)
            )
            assert version == 1


@pytest.mark.unit
class TestSeatReset:
    """Administrative reset of seats"""

    async def test_reset_reports_unknown_seats(self, seat_hold_service, store, db_session, test_event):
        await seat_hold_service.select_seat(test_event.id, "A1")

        result = await seat_hold_service.reset_seats(test_event.id, ["A1", "A2", "Q7"])
        assert result.reset_seats == ["A1", "A2"]
        assert result.not_found_seats == ["Q7"]

        inventory = await store.load(test_event.id)
        assert inventory.find_seat("A1").status == SeatStatus.AVAILABLE
        # the ledger is left for the sweeper
        count = await db_session.scalar(select(func.count(SeatReservation.id)))
        assert count == 1


@pytest.mark.unit
class TestAvailability:
    """Read side queries"""

    async def test_seat_status(self, availability_service, seat_hold_service, test_event):
        assert await availability_service.get_seat_status(test_event.id, "A1") == SeatStatus.AVAILABLE
        await seat_hold_service.select_seat(test_event.id, "A1")
        assert await availability_service.get_seat_status(test_event.id, "A1") == SeatStatus.PENDING

    async def test_count_available(self, availability_service, ticket_types, test_event):
        general = ticket_types["general"]
        result = await availability_service.count_available(test_event.id, general.id)
        assert result.available == 10
        assert result.has_ticket_count is True

        vip = ticket_types["vip"]
        unlimited = await availability_service.count_available(test_event.id, vip.id)
        assert unlimited.available is None

        with pytest.raises(TicketTypeNotFoundError):
            await availability_service.count_available(test_event.id, 999)

    async def test_tickets_without_seats_lists_counted_types(self, availability_service, ticket_types, test_event):
        tickets = await availability_service.list_tickets_without_seats(test_event.id)
        assert len(tickets) == 1
        assert tickets[0].ticket_type_id == ticket_types["general"].id
        assert tickets[0].ticket_type_name == "General"
        assert tickets[0].available_count == 10
        assert tickets[0].price == 300

    async def test_unreadable_seats(self, availability_service, db_session, test_event):
        await db_session.execute(update(Event).where(Event.id == test_event.id).values(seats="[{"))
        await db_session.commit()

        with pytest.raises(StorageParseError):
            await availability_service.get_seat_status(test_event.id, "A1")
        # counters are still readable
        tickets = await availability_service.list_tickets_without_seats(test_event.id)
        assert len(tickets) == 1
