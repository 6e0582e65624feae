# ABOUTME: Redis connection factory for the host runner with retry on transient connect errors.
# ABOUTME: Uses tenacity exponential backoff; only connection establishment is retried, never turn writes.

from loguru import logger
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


def create_redis_connection(redis_url: str, attempts: int = 5) -> Redis:
    """
    Create and ping a Redis connection, retrying while the server comes up.

    Args:
        redis_url: Redis connection URL (e.g. "redis://localhost:6379/0")
        attempts: Maximum connection attempts

    Returns:
        Connected Redis client (decode_responses=True)

    Raises:
        ConnectionError: When Redis is not reachable after all attempts
    """

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
        before_sleep=before_sleep_log(logger, "WARNING"),
        reraise=True,
    )
    def _connect() -> Redis:
        client = Redis.from_url(redis_url, decode_responses=True)
        client.ping()
        return client

    try:
        client = _connect()
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.error(f"Failed to connect to Redis at {redis_url}: {e}")
        raise ConnectionError(f"Redis connection failed: {e}") from e

    logger.info(f"Redis connection established: {redis_url}")
    return client
