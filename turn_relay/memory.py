import logging
from typing import Dict, Optional

from redis.asyncio import Redis

from turn_relay.load_settings import memory_key, redis_db, redis_host, redis_port


class MemoryObject:
    """Agent memory kept in process and persisted to a Redis hash.

    Values are read from Redis once at startup and written back once, when the
    server shuts down.
    """

    def __init__(self, redis: Optional[Redis] = None, key: str = memory_key):
        self.redis: Redis = redis or Redis(
            host=redis_host,
            port=redis_port,
            db=redis_db,
            decode_responses=True,
            health_check_interval=30,
        )
        self.key: str = key
        self._values: Dict[str, str] = {}
        self._closed = False

    async def load(self) -> None:
        """Read the persisted memory into the in-process cache"""
        values = await self.redis.hgetall(self.key)
        self._values.update(values)
        logging.info(f"Loaded {len(values)} memory values from {self.key}")

    def get_value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(name, default)

    def set_value(self, name: str, value: str) -> None:
        if self._closed:
            # turns still draining after shutdown cannot be persisted anymore
            logging.warning(f"Memory already saved, dropping value for {name}")
            return
        self._values[name] = value

    async def save_and_close(self) -> None:
        """Write the cache back to Redis and close the connection

        Raises:
            RuntimeError: The memory was already saved and closed
        """
        if self._closed:
            raise RuntimeError("memory is already saved and closed")
        self._closed = True
        try:
            if self._values:
                await self.redis.hset(self.key, mapping=dict(self._values))
            else:
                await self.redis.delete(self.key)
            logging.info(f"Saved {len(self._values)} memory values to {self.key}")
        finally:
            await self.redis.aclose()
