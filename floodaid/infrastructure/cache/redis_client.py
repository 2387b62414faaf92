# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client for short-lived authentication state.

OTP challenges, password reset tokens and login failure counters live here.
Every key is namespaced with the configured prefix so the service can share
a Redis instance.

Example:
    from floodaid.infrastructure.cache import init_redis, get_redis

    await init_redis(settings)

    redis = get_redis()
    await redis.set("otp:a@b.org", {"code": "123456"}, expire_seconds=360)
"""

import json
from typing import TYPE_CHECKING, Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError as BaseRedisError

if TYPE_CHECKING:
    from floodaid.core.config.settings import Settings

_redis_client: Optional["RedisClient"] = None

_DELETE_IF_EQUAL = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class RedisError(Exception):
    """Exception raised for Redis operation failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying Redis error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Async Redis wrapper with key prefixing and JSON values.

    Args:
        settings: Application settings containing Redis configuration.
        redis: Already-connected client; skips connect() when given.
    """

    def __init__(self, settings: "Settings", redis: Optional[Redis] = None) -> None:
        self._settings = settings
        self._prefix = settings.redis.key_prefix
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = redis

    async def connect(self) -> None:
        """Create the Redis connection pool.

        Raises:
            RedisError: If connection fails.
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._settings.redis.url,
                max_connections=self._settings.redis.max_connections,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)
            await self._redis.ping()
        except BaseRedisError as e:
            raise RedisError("Failed to connect to Redis", e) from e

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    def _ensure_connected(self) -> Redis:
        if self._redis is None:
            raise RedisError("Redis client not connected. Call connect() first.")
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _serialize(value: Any) -> str:
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)

    @staticmethod
    def _deserialize(value: Optional[str]) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(self, key: str, value: Any, expire_seconds: Optional[int] = None) -> None:
        """Set a key, replacing any previous value.

        Args:
            key: The key (without prefix).
            value: The value (JSON serialized if not a string).
            expire_seconds: Optional expiration time in seconds.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            await redis.set(self._key(key), self._serialize(value), ex=expire_seconds)
        except BaseRedisError as e:
            raise RedisError(f"Failed to set key: {key}", e) from e

    async def get(self, key: str) -> Any:
        """Get a value by key, or None if absent.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return self._deserialize(await redis.get(self._key(key)))
        except BaseRedisError as e:
            raise RedisError(f"Failed to get key: {key}", e) from e

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Exactly one of several concurrent callers sees True for the same key,
        which makes delete usable as an atomic consume.

        Returns:
            True if this call removed the key, False if it didn't exist.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return await redis.delete(self._key(key)) > 0
        except BaseRedisError as e:
            raise RedisError(f"Failed to delete key: {key}", e) from e

    async def delete_if_equal(self, key: str, value: Any) -> bool:
        """Delete a key only if it still holds the given value.

        The comparison and the delete run as one server-side script, so a
        value written between a caller's get and this call is left alone.

        Args:
            key: The key (without prefix).
            value: The value previously read (serialized like set()).

        Returns:
            True if this call removed the key.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            removed = await redis.eval(_DELETE_IF_EQUAL, 1, self._key(key), self._serialize(value))
        except BaseRedisError as e:
            raise RedisError(f"Failed to delete key: {key}", e) from e
        return int(removed) > 0

    async def exists(self, key: str) -> bool:
        """Check if a key exists.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return await redis.exists(self._key(key)) > 0
        except BaseRedisError as e:
            raise RedisError(f"Failed to check key existence: {key}", e) from e

    async def ttl(self, key: str) -> int:
        """Get the time-to-live for a key.

        Returns:
            TTL in seconds, -1 if no expiry, -2 if key doesn't exist.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        try:
            return await redis.ttl(self._key(key))
        except BaseRedisError as e:
            raise RedisError(f"Failed to get TTL for key: {key}", e) from e

    async def increment(self, key: str, window_seconds: int) -> int:
        """Increment a counter, starting its expiry window on first increment.

        Args:
            key: Counter key.
            window_seconds: Lifetime of the counter from its first increment.

        Returns:
            The counter value after incrementing.

        Raises:
            RedisError: If the operation fails.
        """
        redis = self._ensure_connected()
        full_key = self._key(key)
        try:
            value = await redis.incr(full_key)
            if value == 1:
                await redis.expire(full_key, window_seconds)
            return value
        except BaseRedisError as e:
            raise RedisError(f"Failed to increment key: {key}", e) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            redis = self._ensure_connected()
            await redis.ping()
            return True
        except (RedisError, BaseRedisError):
            return False


async def init_redis(settings: "Settings") -> None:
    """Initialize the global Redis client.

    Raises:
        RedisError: If connection fails.
    """
    global _redis_client

    _redis_client = RedisClient(settings)
    await _redis_client.connect()


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


def get_redis() -> RedisClient:
    """Get the global Redis client.

    Raises:
        RedisError: If Redis has not been initialized.
    """
    if _redis_client is None:
        raise RedisError("Redis not initialized. Call init_redis() first.")
    return _redis_client
