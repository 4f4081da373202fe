"""Reusable FastAPI dependency functions."""
import logging
from functools import lru_cache

from core.config import get_settings
from db.connection import get_redis_client
from services.expiration import ExpirationPolicyRegistry
from services.kv_facade import KeyValueFacade


@lru_cache
def get_kv_facade() -> KeyValueFacade:
    """Return the process-wide facade bound to the shared redis client."""

    return KeyValueFacade(
        get_redis_client(),
        logger=logging.getLogger("kv_facade.store"),
        policies=ExpirationPolicyRegistry.from_settings(get_settings()),
    )
