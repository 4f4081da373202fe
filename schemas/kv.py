"""Pydantic models for the key-value endpoints."""
from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    store: Literal["up", "down"]
