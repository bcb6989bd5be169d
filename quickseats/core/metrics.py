"""
Inventory metrics and component health checks
"""

import time
import logging
from typing import Dict, Any, List
from datetime import datetime, timezone

from prometheus_client import Counter, Histogram, REGISTRY
from sqlalchemy import text

logger = logging.getLogger(__name__)


def _register(factory, name: str, documentation: str, labels: List[str]):
    """Create a collector, or reuse it when the module is imported twice"""
    try:
        return factory(name, documentation, labels)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUEST_COUNT = _register(
    Counter, "quickseats_requests_total", "Total requests", ["method", "endpoint", "status"]
)
REQUEST_DURATION = _register(
    Histogram, "quickseats_request_duration_seconds", "Request duration", ["method", "endpoint"]
)
BOOKINGS = _register(
    Counter, "quickseats_bookings_total", "Booking attempts", ["strategy", "outcome"]
)
CANCELLATIONS = _register(
    Counter, "quickseats_cancellations_total", "Committed cancellations", ["kind"]
)
SEAT_TRANSITIONS = _register(
    Counter, "quickseats_seat_transitions_total", "Seat status transitions", ["to_status"]
)
SWEEPER_ROWS = _register(
    Counter, "quickseats_sweeper_rows_total", "Ledger rows processed by the sweeper", ["result"]
)
INVENTORY_CONFLICTS = _register(
    Counter, "quickseats_inventory_conflicts_total", "Inventory write conflicts", ["reason"]
)


def record_seat_transitions(to_status: str, count: int = 1):
    if count > 0:
        SEAT_TRANSITIONS.labels(to_status=to_status).inc(count)


class HealthChecker:
    """Health checking for the database and the lock backend"""

    def __init__(self, redis_client, session_factory):
        self.redis_client = redis_client
        self.session_factory = session_factory
        self.logger = logging.getLogger(__name__)

    async def check_redis_health(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            await self.redis_client.ping()
            response_time = time.time() - start_time
            return {
                "status": "healthy",
                "response_time_ms": response_time * 1000,
                "error": None
            }
        except Exception as e:
            self.logger.warning(f"Redis health check failed: {e}")
            return {
                "status": "unhealthy",
                "response_time_ms": None,
                "error": str(e)
            }

    async def check_database_health(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            response_time = time.time() - start_time
            return {
                "status": "healthy",
                "response_time_ms": response_time * 1000,
                "error": None
            }
        except Exception as e:
            self.logger.warning(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "response_time_ms": None,
                "error": str(e)
            }

    async def get_system_health(self) -> Dict[str, Any]:
        redis_health = await self.check_redis_health()
        db_health = await self.check_database_health()

        overall_status = "healthy"
        if redis_health["status"] != "healthy" or db_health["status"] != "healthy":
            overall_status = "unhealthy"

        return {
            "status": overall_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "redis": redis_health,
                "database": db_health
            }
        }
