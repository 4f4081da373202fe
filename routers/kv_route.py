import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from core.config import get_settings
from core.deps import get_kv_facade
from services.kv_facade import KeyValueFacade

router = APIRouter(prefix=f"{get_settings().api_prefix}/redis", tags=["redis"])
logger = logging.getLogger("KVRouter")


@router.get("/set", response_model=bool)
def redis_set(
    key: str = Query(..., min_length=1),
    value: str = Query(...),
    facade: KeyValueFacade = Depends(get_kv_facade),
) -> bool:
    """Store ``value`` under ``key`` with no expiration."""
    stored = facade.set(key, value)
    if not stored:
        logger.warning(f"Set for key {key!r} was not stored")
    return stored


@router.get("/get")
def redis_get(
    key: str = Query(..., min_length=1),
    facade: KeyValueFacade = Depends(get_kv_facade),
) -> Any:
    """Return the decoded value for ``key`` or null."""
    return facade.get(key)
