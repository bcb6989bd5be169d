"""
Tests for gate redemption: seat issuing, counted issuing and ticket verification
"""

import pytest

from quickseats.core.exceptions import (
    InvalidInputError,
    InvalidStateError,
    OverIssueError,
    SeatNotFoundError,
    TicketTypeNotInOrderError,
)
from quickseats.models.order import CancellationType, OrderStatus
from quickseats.schemas.inventory import SeatStatus

from conftest import make_booking_request, reload_order


@pytest.fixture
async def sold_order_id(booking_service, ticket_types, test_event):
    """A1 and 3 General tickets"""
    order, _ = await booking_service.book_immediately(
        make_booking_request(test_event.id, ["A1"], [(ticket_types["general"].id, 3)])
    )
    return order.id


@pytest.mark.unit
class TestSeatIssue:
    """booked -> issued"""

    async def test_issue_booked_seat(self, issuance_service, store, sold_order_id, test_event):
        seat = await issuance_service.confirm_issue(sold_order_id, "A1")
        assert seat.status == SeatStatus.ISSUED
        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.ISSUED

    async def test_second_issue_is_refused(self, issuance_service, sold_order_id):
        await issuance_service.confirm_issue(sold_order_id, "A1")
        with pytest.raises(InvalidStateError) as exc_info:
            await issuance_service.confirm_issue(sold_order_id, "A1")
        assert exc_info.value.code == "SEAT_NOT_BOOKED"

    async def test_seat_of_another_order(self, issuance_service, sold_order_id):
        with pytest.raises(SeatNotFoundError):
            await issuance_service.confirm_issue(sold_order_id, "A2")

    async def test_pending_order_cannot_be_issued(self, issuance_service, booking_service, test_event):
        order, _ = await booking_service.checkout(make_booking_request(test_event.id, ["B1"]))
        with pytest.raises(InvalidStateError):
            await issuance_service.confirm_issue(order.id, "B1")


@pytest.mark.unit
class TestCountedIssue:
    """Issuing part of a counted line"""

    async def test_cannot_issue_more_than_bought(self, issuance_service, store, db_session, sold_order_id, ticket_types, test_event):
        """3 bought: 2 issued, then 2 more refused with 1 remaining"""
        general = ticket_types["general"]

        line = await issuance_service.issue_counted(sold_order_id, general.id, 2)
        assert line.issued_count == 2
        assert line.issuable == 1

        with pytest.raises(OverIssueError) as exc_info:
            await issuance_service.issue_counted(sold_order_id, general.id, 2)
        assert exc_info.value.remaining == 1

        order = await reload_order(db_session, sold_order_id)
        assert order.tickets_without_seats[0]["issued_count"] == 2
        assert order.tickets_without_seats[0]["ticket_count"] == 3
        # sales counter is untouched by redemption
        assert (await store.load(test_event.id)).find_counter(general.id).booked_ticket_count == 3

    async def test_issue_all_remaining(self, issuance_service, sold_order_id, ticket_types):
        general = ticket_types["general"]
        await issuance_service.issue_counted(sold_order_id, general.id, 1)
        line = await issuance_service.issue_counted(sold_order_id, general.id, 2)
        assert line.issuable == 0

    async def test_zero_count(self, issuance_service, sold_order_id, ticket_types):
        with pytest.raises(InvalidInputError):
            await issuance_service.issue_counted(sold_order_id, ticket_types["general"].id, 0)

    async def test_type_not_in_order(self, issuance_service, sold_order_id, ticket_types):
        with pytest.raises(TicketTypeNotInOrderError):
            await issuance_service.issue_counted(sold_order_id, ticket_types["vip"].id, 1)


@pytest.mark.unit
class TestVerifyTicket:
    """Read-only lookup behind a scanned code"""

    async def test_verify_seat_ticket(self, issuance_service, sold_order_id, ticket_types):
        result = await issuance_service.verify_ticket(
            sold_order_id, ticket_types["vip"].id, CancellationType.SEAT, seat_ids=["A1", "Z9"]
        )
        assert result.event_name == "Test Concert"
        assert result.order_status == OrderStatus.COMPLETED
        assert result.ticket_type_name == "VIP"
        assert [(s.seat_id, s.status) for s in result.seats] == [("A1", "booked"), ("Z9", "unknown")]

    async def test_verify_counted_ticket(self, issuance_service, sold_order_id, ticket_types):
        general = ticket_types["general"]
        await issuance_service.issue_counted(sold_order_id, general.id, 1)

        result = await issuance_service.verify_ticket(
            sold_order_id, general.id, CancellationType.NO_SEAT, ticket_count=3
        )
        assert result.ticket_type_name == "General"
        assert result.count == 3
        assert result.issued_count == 1
        assert result.remaining == 2

    async def test_seat_ticket_needs_seats(self, issuance_service, sold_order_id, ticket_types):
        with pytest.raises(InvalidInputError):
            await issuance_service.verify_ticket(sold_order_id, ticket_types["vip"].id, CancellationType.SEAT)
