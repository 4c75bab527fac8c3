# shopeasy/core/infrastructure/redis_service.py

from datetime import timedelta
from typing import Optional

import redis

from ..config import settings
from ...logging import logger

_redis_client: Optional[redis.Redis] = None
_connected = False


def get_redis_client() -> Optional[redis.Redis]:
    """
    Returns a connected client, or None when REDIS_URL is unset or the server
    is unreachable. The first call pings the server; later calls reuse the result.
    """
    global _redis_client, _connected
    if _connected:
        return _redis_client
    _connected = True

    if not settings.REDIS_URL:
        logger.info("REDIS_URL not set; token denylist disabled.")
        return None

    try:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        client.ping()
        logger.info("Successfully connected to Redis.")
        _redis_client = client
    except redis.exceptions.RedisError as e:
        logger.error(f"Could not connect to Redis: {e}")
        _redis_client = None
    return _redis_client


def add_token_to_denylist(jti: str, expires: timedelta):
    """
    Adds a token's JTI to the denylist for the remaining lifetime of the token.
    """
    client = get_redis_client()
    if client is None:
        return
    seconds = max(int(expires.total_seconds()), 1)
    try:
        client.setex(f"denylist:{jti}", seconds, "denied")
    except redis.exceptions.RedisError as e:
        logger.error(f"Failed to denylist token {jti}: {e}")


def is_token_denylisted(jti: str) -> bool:
    client = get_redis_client()
    if client is None:
        # Fail open when Redis is unavailable
        return False
    try:
        return bool(client.exists(f"denylist:{jti}"))
    except redis.exceptions.RedisError as e:
        logger.error(f"Denylist lookup failed for {jti}: {e}")
        return False
