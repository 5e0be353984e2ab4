# storefront/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from storefront.config import settings
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled Redis client; list helpers back the upload ingestion queue."""

    def __init__(self, url: str | None = None, max_connections: int = 20):
        self.url = url
        self.max_connections = max_connections
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        redis_url = self.url or settings.REDIS_URL
        try:
            logger.info("Attempting Redis connection", url_preview=redis_url.split("@")[-1][:30])

            self.pool = ConnectionPool.from_url(
                redis_url,
                max_connections=self.max_connections,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                socket_connect_timeout=10,
                # Blocking pops wait up to UPLOAD_QUEUE_POP_TIMEOUT_S
                socket_timeout=settings.UPLOAD_QUEUE_POP_TIMEOUT_S + 10,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info(
                "Fast Redis client initialized successfully",
                max_connections=self.max_connections,
            )

        except (redis.RedisError, OSError) as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Fast Redis client closed")
        except redis.RedisError as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()
            if not self._initialized:
                raise ConnectionError("Redis client not available")

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            result = await self.client.ping()
            return bool(result)
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def push_to_list(self, key: str, value: str) -> bool:
        """LPUSH a value onto a list used as a queue."""
        try:
            await self._ensure_initialized()
            result = await self.client.lpush(key, value)
            return result > 0
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error(
                "Redis LIST push failed", key=key[:30], value_preview=value[:30], error=str(e)
            )
            return False

    async def pop_to_inflight(
        self, source_key: str, inflight_key: str, timeout: int = 0
    ) -> str | None:
        """
        Pop a value from a list and push to an in-flight list (acked queue).

        Uses BRPOPLPUSH for blocking behavior to avoid losing jobs on worker crash.
        """
        try:
            await self._ensure_initialized()
            if timeout > 0:
                payload = await self.client.brpoplpush(source_key, inflight_key, timeout=timeout)
            else:
                payload = await self.client.rpoplpush(source_key, inflight_key)
            return payload
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error(
                "Redis LIST inflight pop failed",
                source_key=source_key[:30],
                inflight_key=inflight_key[:30],
                error=str(e),
            )
            return None

    async def ack_from_inflight(self, inflight_key: str, value: str) -> bool:
        """Remove a processed item from the in-flight list."""
        try:
            await self._ensure_initialized()
            removed = await self.client.lrem(inflight_key, 0, value)
            return removed > 0
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error(
                "Redis inflight ack failed",
                inflight_key=inflight_key[:30],
                value_preview=value[:30],
                error=str(e),
            )
            return False

    async def requeue_from_inflight(
        self, inflight_key: str, destination_key: str, value: str
    ) -> bool:
        """Move an item from the in-flight list back to the main queue."""
        try:
            await self._ensure_initialized()
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lrem(inflight_key, 0, value)
                pipe.lpush(destination_key, value)
                results = await pipe.execute()
            return bool(results and results[-1] is not None)
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error(
                "Redis inflight requeue failed",
                inflight_key=inflight_key[:30],
                destination_key=destination_key[:30],
                value_preview=value[:30],
                error=str(e),
            )
            return False

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        """Return a range of values from a list."""
        try:
            await self._ensure_initialized()
            result = await self.client.lrange(key, start, end)
            return [str(item) for item in result] if result else []
        except (redis.RedisError, RuntimeError, ConnectionError) as e:
            logger.error("Redis LRANGE failed", key=key[:30], error=str(e))
            return []


# Global instance
fast_redis = FastRedisClient()
