"""
Process-wide Redis connection pool for the processing store.

The API and the Celery workers both reach Redis through redis.asyncio. A
pool belongs to the event loop that opened its connections, so Celery runs
(one asyncio.run per task) close it again via close_async_pool().
"""

from typing import Optional
from urllib.parse import urlsplit

import structlog
from redis.asyncio import ConnectionPool as AsyncConnectionPool
from redis.asyncio import Redis as AsyncRedis

from jobmail_pipeline.config import Settings

logger = structlog.get_logger(__name__)

# Seconds; a stalled Redis must surface as StorageError, not a hung sub-batch
SOCKET_TIMEOUT = 5
SOCKET_CONNECT_TIMEOUT = 5


def _redacted(url: str) -> str:
    parts = urlsplit(url)
    host = parts.hostname or ""
    port = f":{parts.port}" if parts.port else ""
    return f"{parts.scheme}://{host}{port}{parts.path}"


class RedisClient:
    """Factory for AsyncRedis clients sharing one connection pool."""

    _async_pool: Optional[AsyncConnectionPool] = None

    @classmethod
    def get_async_client(cls, settings: Settings) -> AsyncRedis:
        """
        Get an AsyncRedis client on the shared pool, creating it on first use.

        Responses are decoded to str; the store parses JSON payloads itself.

        Args:
            settings: Application settings (REDIS_URL, REDIS_MAX_CONNECTIONS)

        Returns:
            AsyncRedis client instance
        """
        if cls._async_pool is None:
            cls._async_pool = AsyncConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=SOCKET_TIMEOUT,
                socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
                retry_on_timeout=True,
            )
            logger.info(
                "Redis pool opened",
                url=_redacted(settings.REDIS_URL),
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )

        return AsyncRedis(connection_pool=cls._async_pool)

    @classmethod
    async def close_async_pool(cls) -> None:
        """Disconnect the pool. Safe to call when no pool was opened."""
        if cls._async_pool is None:
            return
        await cls._async_pool.disconnect()
        cls._async_pool = None
        logger.info("Redis pool closed")
