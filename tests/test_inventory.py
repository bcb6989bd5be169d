"""
Unit tests for the inventory store: blob decoding, versioned writes and locking
"""

import pytest
from sqlalchemy import update

from quickseats.core.exceptions import (
    ConcurrencyError,
    EventNotFoundError,
    LockAcquisitionError,
    StorageParseError,
)
from quickseats.models.event import Event
from quickseats.schemas.inventory import OrderTicketLine, SeatRecord, SeatStatus, TicketCounter
from quickseats.services.inventory import decode_collection


@pytest.mark.unit
class TestDecodeCollection:
    """Decoding of persisted seat and counter collections"""

    def test_decodes_structured_list(self):
        seats, degraded = decode_collection(
            [{"seatId": "A1", "status": "available", "price": 500, "ticketTypeName": "VIP", "type_id": 1}],
            SeatRecord,
        )
        assert not degraded
        assert seats[0].seat_id == "A1"
        assert seats[0].ticket_type_name == "VIP"
        assert seats[0].status == SeatStatus.AVAILABLE

    def test_decodes_serialized_string(self):
        counters, degraded = decode_collection(
            '[{"ticketTypeId": 2, "price": 300, "ticketCount": 10, "hasTicketCount": true, "bookedTicketCount": 4}]',
            TicketCounter,
        )
        assert not degraded
        assert counters[0].remaining == 6

    def test_missing_collection_is_empty_not_degraded(self):
        assert decode_collection(None, SeatRecord) == ([], False)
        assert decode_collection("  ", SeatRecord) == ([], False)

    @pytest.mark.parametrize("raw", ["{not json", '{"seatId": "A1"}', 42, [{"status": "available"}]])
    def test_unreadable_collection_is_degraded(self, raw):
        records, degraded = decode_collection(raw, SeatRecord)
        assert records == []
        assert degraded

    def test_unknown_keys_survive_a_round_trip(self):
        seats, _ = decode_collection(
            [{"seatId": 7, "status": "booked", "price": 250, "row": "C", "type_id": 1}],
            SeatRecord,
        )
        stored = seats[0].to_storage()
        assert stored["seatId"] == 7
        assert stored["row"] == "C"
        assert stored["status"] == "booked"

    @pytest.mark.parametrize("type_id, expected", [(3, 3), ("3", 3), (" 12", 12), ("vip", None), (None, None)])
    def test_seat_type_id_as_ticket_type_key(self, type_id, expected):
        seats, _ = decode_collection([{"seatId": "A1", "type_id": type_id}], SeatRecord)
        assert seats[0].numeric_type_id == expected

    def test_unlimited_counter_has_no_remaining(self):
        counter = TicketCounter(ticket_type_id=1, price=100, ticket_count=None, has_ticket_count=False)
        assert not counter.is_limited
        assert counter.remaining is None

    def test_order_line_issuable(self):
        line = OrderTicketLine(ticket_type_id=1, ticket_count=5, issued_count=2)
        assert line.issuable == 3


@pytest.mark.unit
class TestInventoryStore:
    """Versioned load and save of event inventory"""

    async def test_load_missing_event(self, store):
        with pytest.raises(EventNotFoundError):
            await store.load(9999)

    async def test_load_decodes_event(self, store, test_event):
        inventory = await store.load(test_event.id)
        assert [seat.seat_id for seat in inventory.seats] == ["A1", "A2", "B1"]
        assert inventory.find_seat("B1").price == 1000
        assert len(inventory.counters) == 2
        assert not inventory.degraded

    async def test_unchanged_inventory_is_not_written(self, store, db_session, test_event):
        inventory = await store.load(test_event.id)
        assert await store.save(inventory) is False
        await db_session.commit()

        assert (await store.load(test_event.id)).version == inventory.version

    async def test_save_bumps_version(self, store, db_session, test_event):
        inventory = await store.load(test_event.id)
        inventory.find_seat("A1").status = SeatStatus.PENDING
        assert await store.save(inventory) is True
        await db_session.commit()

        reloaded = await store.load(test_event.id)
        assert reloaded.version == inventory.version
        assert reloaded.find_seat("A1").status == SeatStatus.PENDING

    async def test_lost_compare_and_swap_raises(self, store, db_session, test_event):
        """A write based on a stale version must not overwrite a newer one"""
        inventory = await store.load(test_event.id)

        await db_session.execute(
            update(Event)
            .where(Event.id == test_event.id)
            .values(inventory_version=Event.inventory_version + 1)
        )
        await db_session.commit()

        inventory.find_seat("A1").status = SeatStatus.BOOKED
        with pytest.raises(ConcurrencyError):
            await store.save(inventory)
        await db_session.rollback()

        assert (await store.load(test_event.id)).find_seat("A1").status == SeatStatus.AVAILABLE

    async def test_degraded_inventory_is_never_saved(self, store, db_session, test_event):
        await db_session.execute(
            update(Event).where(Event.id == test_event.id).values(seats="{broken")
        )
        await db_session.commit()

        inventory = await store.load(test_event.id)
        assert inventory.degraded_fields == ["seats"]
        assert inventory.seats == []
        assert len(inventory.counters) == 2

        with pytest.raises(StorageParseError):
            async with store.mutate(test_event.id):
                pass

        result = await db_session.get(Event, test_event.id, populate_existing=True)
        assert result.seats == "{broken"

    async def test_mutate_commits_once(self, store, test_event):
        async with store.mutate(test_event.id) as inventory:
            inventory.require_counter(inventory.counters[1].ticket_type_id).booked_ticket_count = 3

        reloaded = await store.load(test_event.id)
        assert reloaded.counters[1].booked_ticket_count == 3
        assert reloaded.version == 1

    async def test_mutate_rolls_back_on_error(self, store, test_event):
        with pytest.raises(RuntimeError):
            async with store.mutate(test_event.id) as inventory:
                inventory.find_seat("A1").status = SeatStatus.BOOKED
                raise RuntimeError("validation failed")

        reloaded = await store.load(test_event.id)
        assert reloaded.find_seat("A1").status == SeatStatus.AVAILABLE
        assert reloaded.version == 0


@pytest.mark.unit
class TestEventLock:
    """Per-event mutual exclusion"""

    async def test_held_lock_times_out(self, store, redis_manager, test_event):
        token = await redis_manager.acquire_lock(f"event-inventory:{test_event.id}", ttl=30)
        assert token is not None

        with pytest.raises(LockAcquisitionError):
            async with store.mutate(test_event.id):
                pass

        await redis_manager.release_lock(f"event-inventory:{test_event.id}", token)

    async def test_lock_released_after_mutation(self, store, redis_manager, test_event):
        async with store.mutate(test_event.id):
            assert await redis_manager.is_locked(f"event-inventory:{test_event.id}")
        assert not await redis_manager.is_locked(f"event-inventory:{test_event.id}")

    async def test_only_owner_releases(self, redis_manager):
        token = await redis_manager.acquire_lock("order:1", ttl=30)
        assert await redis_manager.acquire_lock("order:1", ttl=30) is None
        assert await redis_manager.release_lock("order:1", "someone-else") is False
        assert await redis_manager.release_lock("order:1", token) is True
        assert not await redis_manager.is_locked("order:1")
