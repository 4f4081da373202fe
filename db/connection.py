from functools import lru_cache
from typing import Optional

from redis import Redis

from core.config import Settings, get_settings


def create_redis_client(settings: Optional[Settings] = None) -> Redis:
    """Build a redis client from settings. The connection pool opens lazily on first command."""

    settings = settings or get_settings()
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=settings.redis_health_check_interval,
    )


@lru_cache
def get_redis_client() -> Redis:
    return create_redis_client()
