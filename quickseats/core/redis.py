"""
Redis configuration and connection management
"""

import redis.asyncio as redis
from typing import Optional, AsyncIterator
import logging
import asyncio
import time
import uuid
from contextlib import asynccontextmanager

from quickseats.config import settings
from quickseats.core.exceptions import LockAcquisitionError

logger = logging.getLogger(__name__)

# Global Redis client
redis_client: Optional[redis.Redis] = None


ACQUIRE_LOCK_SCRIPT = """
local lock_key = KEYS[1]
local lock_value = ARGV[1]
local ttl = tonumber(ARGV[2])
local timestamp = ARGV[3]

-- Try to acquire lock
if redis.call("set", lock_key, lock_value, "NX", "EX", ttl) then
    -- Set metadata for lock debugging
    local meta_key = lock_key .. ":meta"
    redis.call("hset", meta_key, "owner", lock_value, "acquired_at", timestamp, "ttl", ttl)
    redis.call("expire", meta_key, ttl)
    return lock_value
else
    return nil
end
"""

RELEASE_LOCK_SCRIPT = """
local lock_key = KEYS[1]
local identifier = ARGV[1]
local meta_key = lock_key .. ":meta"

-- Only the owner may release
local current_owner = redis.call("get", lock_key)
if current_owner == identifier then
    redis.call("del", lock_key)
    redis.call("del", meta_key)
    return 1
else
    return 0
end
"""


async def init_redis():
    """
    Initialize Redis connection
    """
    global redis_client
    try:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            decode_responses=True
        )
        # Test connection
        await redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def close_redis():
    """
    Close Redis connection
    """
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis connection closed")


async def get_redis() -> redis.Redis:
    """
    Get Redis client
    """
    if not redis_client:
        await init_redis()
    return redis_client


class RedisManager:
    """
    Distributed locks for per-entity mutual exclusion.

    The client is injected so tests can hand in a fakeredis instance.
    """

    def __init__(self, client: redis.Redis):
        self.client = client
        self.logger = logging.getLogger(__name__)

    async def acquire_lock(
        self,
        resource: str,
        identifier: Optional[str] = None,
        ttl: int = 10
    ) -> Optional[str]:
        """
        Acquire a distributed lock using atomic Lua script

        Args:
            resource: Resource to lock (e.g., "event-inventory:12")
            identifier: Unique identifier for lock owner
            ttl: Time to live in seconds

        Returns:
            Lock identifier if successful, None otherwise
        """
        lock_key = f"lock:{resource}"
        lock_value = identifier or str(uuid.uuid4())
        timestamp = str(int(time.time()))

        result = await self.client.eval(
            ACQUIRE_LOCK_SCRIPT,
            1,
            lock_key,
            lock_value,
            ttl,
            timestamp
        )

        if result:
            self.logger.debug(f"Lock acquired for {resource} with identifier {lock_value}")
            return result.decode() if isinstance(result, bytes) else result
        return None

    async def release_lock(self, resource: str, identifier: str) -> bool:
        """
        Release a distributed lock using atomic Lua script

        Returns:
            True if lock was released, False otherwise
        """
        lock_key = f"lock:{resource}"
        try:
            result = await self.client.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, identifier)
        except redis.RedisError as e:
            # The TTL reclaims the key if the release round trip fails
            self.logger.error(f"Error releasing lock for {resource}: {e}")
            return False

        released = result == 1
        if released:
            self.logger.debug(f"Lock released for {resource}")
        else:
            self.logger.warning(f"Lock for {resource} expired before release")
        return released

    async def is_locked(self, resource: str) -> bool:
        return await self.client.exists(f"lock:{resource}") > 0

    @asynccontextmanager
    async def lock(
        self,
        resource: str,
        ttl: Optional[int] = None,
        wait: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """
        Hold ``resource`` for the duration of the block.

        Polls until the lock is free or ``wait`` seconds pass, then raises
        LockAcquisitionError.
        """
        ttl = ttl or settings.EVENT_LOCK_TTL_SECONDS
        wait = settings.EVENT_LOCK_WAIT_SECONDS if wait is None else wait
        deadline = time.monotonic() + wait
        delay = 0.01

        identifier = await self.acquire_lock(resource, ttl=ttl)
        while identifier is None:
            if time.monotonic() >= deadline:
                self.logger.warning(f"Timed out waiting for lock on {resource}")
                raise LockAcquisitionError(resource)
            await asyncio.sleep(delay)
            delay = min(delay * 2, 0.2)
            identifier = await self.acquire_lock(resource, ttl=ttl)

        try:
            yield identifier
        finally:
            await self.release_lock(resource, identifier)

    def event_lock(self, event_id: int):
        return self.lock(f"event-inventory:{event_id}")

    def order_lock(self, order_id: int):
        return self.lock(f"order:{order_id}")
