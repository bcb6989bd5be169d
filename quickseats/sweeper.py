"""
Run the reservation sweeper once from the command line

    python -m quickseats.sweeper [--ttl-minutes N]
"""

import argparse
import asyncio

from quickseats.config import settings
from quickseats.core.database import async_session, close_db
from quickseats.core.logging import setup_logging
from quickseats.core.redis import RedisManager, close_redis, get_redis
from quickseats.services.inventory import InventoryStore
from quickseats.services.sweeper import ReservationSweeper, SweepReport


async def run_sweep(ttl_minutes: int) -> SweepReport:
    redis_client = await get_redis()
    try:
        async with async_session() as session:
            store = InventoryStore(session, RedisManager(redis_client))
            return await ReservationSweeper(session, store, ttl_minutes).sweep()
    finally:
        await close_redis()
        await close_db()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Release seats whose hold has expired")
    parser.add_argument(
        "--ttl-minutes",
        type=int,
        default=settings.SEAT_HOLD_TTL_MINUTES,
        help="hold lifetime in minutes (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    setup_logging()
    report = asyncio.run(run_sweep(args.ttl_minutes))
    print(
        f"examined={report.examined} released={report.released} "
        f"skipped={report.skipped} failed={report.failed}"
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
