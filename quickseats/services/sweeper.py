"""
Reservation sweeper

Releases seats whose hold in the reservation ledger is older than the TTL.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.config import settings
from quickseats.core.exceptions import (
    ConcurrencyError,
    EventNotFoundError,
    LockAcquisitionError,
    StorageParseError,
)
from quickseats.core.metrics import SWEEPER_ROWS, record_seat_transitions
from quickseats.models.reservation import SeatReservation
from quickseats.schemas.inventory import SeatStatus
from quickseats.services.inventory import InventoryStore

logger = logging.getLogger(__name__)

# Failures worth another look on the next run; the ledger row is kept
RETRIABLE = (StorageParseError, LockAcquisitionError, ConcurrencyError)


@dataclass
class SweepReport:
    examined: int = 0
    released: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)


class ReservationSweeper:
    def __init__(self, session: AsyncSession, store: InventoryStore, ttl_minutes: Optional[int] = None):
        self.session = session
        self.store = store
        if ttl_minutes is None:
            ttl_minutes = settings.SEAT_HOLD_TTL_MINUTES
        self.ttl = timedelta(minutes=ttl_minutes)

    async def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.ttl

        result = await self.session.execute(
            select(
                SeatReservation.id,
                SeatReservation.event_id,
                SeatReservation.seat_id,
            )
            .where(SeatReservation.created_at < cutoff)
            .order_by(SeatReservation.created_at)
        )
        entries = result.all()
        await self.session.commit()

        report = SweepReport()
        for entry in entries:
            report.examined += 1
            try:
                outcome = await self._process_entry(entry.id, entry.event_id, entry.seat_id, cutoff)
            except Exception as e:
                # One bad event must not stop the sweep
                report.failed += 1
                SWEEPER_ROWS.labels(result="failed").inc()
                logger.error(
                    f"Failed to sweep hold {entry.id} (event {entry.event_id}, seat {entry.seat_id}): {e}",
                    exc_info=True,
                )
                report.details.append(
                    {"event_id": entry.event_id, "seat_id": entry.seat_id, "result": "failed"}
                )
                continue

            if outcome == "released":
                report.released += 1
            else:
                report.skipped += 1
            SWEEPER_ROWS.labels(result=outcome).inc()
            report.details.append(
                {"event_id": entry.event_id, "seat_id": entry.seat_id, "result": outcome}
            )

        logger.info(
            f"Sweep finished: {report.examined} examined, {report.released} released, "
            f"{report.skipped} skipped, {report.failed} failed"
        )
        return report

    async def _process_entry(self, entry_id: int, event_id: int, seat_id: str, cutoff: datetime) -> str:
        keep_entry = False
        try:
            return await self._release_if_pending(entry_id, event_id, seat_id, cutoff)
        except RETRIABLE:
            keep_entry = True
            raise
        finally:
            if not keep_entry:
                # a younger row for the same seat belongs to a new hold
                await self.session.execute(
                    delete(SeatReservation).where(
                        SeatReservation.id == entry_id,
                        SeatReservation.created_at < cutoff,
                    )
                )
                await self.session.commit()

    async def _hold_expired(self, entry_id: int, event_id: int, seat_id: str, cutoff: datetime) -> bool:
        """Whether the ledger row read by the sweep still backs the seat's hold"""
        found = await self.session.scalar(
            select(SeatReservation.id).where(
                SeatReservation.id == entry_id,
                SeatReservation.event_id == event_id,
                SeatReservation.seat_id == str(seat_id),
                SeatReservation.created_at < cutoff,
            )
        )
        return found is not None

    async def _release_if_pending(self, entry_id: int, event_id: int, seat_id: str, cutoff: datetime) -> str:
        try:
            async with self.store.mutate(event_id) as inventory:
                if not await self._hold_expired(entry_id, event_id, seat_id, cutoff):
                    logger.info(
                        f"Hold {entry_id} on seat {seat_id} of event {event_id} "
                        f"was released or renewed during the sweep"
                    )
                    return "skipped"
                seat = inventory.find_seat(seat_id)
                if seat is None:
                    logger.warning(f"Expired hold for unknown seat {seat_id} of event {event_id}")
                    return "skipped"
                if seat.status != SeatStatus.PENDING:
                    logger.warning(
                        f"Expired hold for seat {seat_id} of event {event_id} "
                        f"which is already {seat.status.value}"
                    )
                    return "skipped"
                seat.status = SeatStatus.AVAILABLE
        except EventNotFoundError:
            logger.warning(f"Expired hold for missing event {event_id}")
            return "skipped"

        record_seat_transitions(SeatStatus.AVAILABLE.value)
        logger.info(f"Released expired hold on seat {seat_id} of event {event_id}")
        return "released"
