import redis
from redis.exceptions import RedisError

from app.core.config import REDIS_URL, WRITE_LOCK_TTL_SECONDS
from app.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def get_redis_client():
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not REDIS_URL:
        return None

    try:
        client = redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        logger.info("Redis connected")
        _redis_client = client
        return _redis_client
    except RedisError as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


def _lock_key(booking_id: str, operation: str) -> str:
    return f"booking-lock:{booking_id}:{operation}"


def acquire_write_lock(booking_id: str, operation: str, ttl: int = WRITE_LOCK_TTL_SECONDS) -> bool:
    """Claim the single-writer slot for a booking operation.

    Without Redis this always succeeds and the database unique indexes are
    the only guard.
    """
    client = get_redis_client()
    if not client:
        return True
    try:
        return bool(client.set(_lock_key(booking_id, operation), "1", nx=True, ex=ttl))
    except RedisError:
        return True


def release_write_lock(booking_id: str, operation: str):
    client = get_redis_client()
    if not client:
        return
    try:
        client.delete(_lock_key(booking_id, operation))
    except RedisError:
        pass
