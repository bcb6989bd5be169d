"""
Tests for the expired-hold sweeper
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from quickseats.models.event import Event
from quickseats.models.reservation import SeatReservation
from quickseats.schemas.event import EventCreate, EventTicketPrice, SeatDefinition
from quickseats.schemas.inventory import SeatStatus
from quickseats.services.sweeper import ReservationSweeper

from conftest import make_booking_request


def later(minutes: int = 20) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


async def ledger(session):
    result = await session.execute(
        select(SeatReservation.event_id, SeatReservation.seat_id).order_by(SeatReservation.id)
    )
    return [(row.event_id, row.seat_id) for row in result]


@pytest.fixture
def sweeper(db_session, store):
    return ReservationSweeper(db_session, store, ttl_minutes=15)


@pytest.mark.unit
class TestReservationSweeper:
    """Expiry of abandoned holds"""

    async def test_expired_hold_is_released(self, sweeper, seat_hold_service, store, db_session, test_event):
        await seat_hold_service.select_seat(test_event.id, "A1")

        report = await sweeper.sweep(now=later())

        assert report.examined == 1
        assert report.released == 1
        assert report.details == [{"event_id": test_event.id, "seat_id": "A1", "result": "released"}]
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.AVAILABLE
        assert await ledger(db_session) == []

    async def test_young_hold_is_left_alone(self, sweeper, seat_hold_service, store, db_session, test_event):
        await seat_hold_service.select_seat(test_event.id, "A1")

        report = await sweeper.sweep()

        assert report.examined == 0
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.PENDING
        assert await ledger(db_session) == [(test_event.id, "A1")]

    async def test_hold_on_booked_seat_is_dropped(self, sweeper, booking_service, store, db_session, test_event):
        """A stale ledger row never frees a sold seat"""
        await booking_service.book_immediately(make_booking_request(test_event.id, ["A2"]))
        db_session.add(SeatReservation(event_id=test_event.id, seat_id="A2"))
        await db_session.commit()

        report = await sweeper.sweep(now=later())

        assert report.skipped == 1
        assert report.released == 0
        assert (await store.load(test_event.id)).find_seat("A2").status == SeatStatus.BOOKED
        assert await ledger(db_session) == []

    async def test_hold_on_unknown_seat_is_dropped(self, sweeper, db_session, test_event):
        db_session.add(SeatReservation(event_id=test_event.id, seat_id="Z9"))
        await db_session.commit()

        report = await sweeper.sweep(now=later())

        assert report.skipped == 1
        assert await ledger(db_session) == []

    async def test_unreadable_event_does_not_stop_the_sweep(
        self, sweeper, catalog_service, seat_hold_service, store, db_session, ticket_types, test_event
    ):
        vip = ticket_types["vip"]
        broken = await catalog_service.create_event(EventCreate(
            name="Broken",
            start_date_time=later(60 * 24),
            tickets=[EventTicketPrice(type_id=vip.id, price=100)],
            seats=[SeatDefinition(seat_id="C1", type_id=vip.id)],
        ))
        broken_id = broken.id
        await seat_hold_service.select_seat(broken_id, "C1")
        await seat_hold_service.select_seat(test_event.id, "A1")

        await db_session.execute(update(Event).where(Event.id == broken_id).values(seats="[{oops"))
        await db_session.commit()

        report = await sweeper.sweep(now=later())

        assert report.examined == 2
        assert report.failed == 1
        assert report.released == 1
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.AVAILABLE
        # kept for the next run
        assert await ledger(db_session) == [(broken_id, "C1")]

    async def test_hold_renewed_during_sweep_is_kept(self, sweeper, seat_hold_service, store, db_session, test_event):
        """A row read at the start of a sweep no longer backs a seat taken again since"""
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=15)
        await seat_hold_service.select_seat(test_event.id, "A1")
        stale_id = await db_session.scalar(select(SeatReservation.id))
        await db_session.execute(
            update(SeatReservation)
            .where(SeatReservation.id == stale_id)
            .values(created_at=cutoff - timedelta(minutes=5))
        )
        await db_session.commit()

        await seat_hold_service.unselect_seat(test_event.id, "A1")
        await seat_hold_service.select_seat(test_event.id, "A1")

        outcome = await sweeper._process_entry(stale_id, test_event.id, "A1", cutoff)

        assert outcome == "skipped"
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.PENDING
        assert await ledger(db_session) == [(test_event.id, "A1")]

    async def test_zero_ttl_expires_every_hold(self, seat_hold_service, store, db_session, test_event):
        await seat_hold_service.select_seat(test_event.id, "A1")
        sweeper = ReservationSweeper(db_session, store, ttl_minutes=0)
        assert sweeper.ttl == timedelta(0)

        report = await sweeper.sweep(now=later(1))

        assert report.released == 1
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.AVAILABLE
