"""Value codecs used by the key-value facade.

Keys and hash field names travel as plain text; everything stored under them
goes through a serializer so callers can hand in dicts, lists and numbers.
"""
import json
from typing import Any, Protocol, runtime_checkable


class SerializationError(ValueError):
    """Raised when a value cannot be encoded or a stored payload cannot be decoded."""


@runtime_checkable
class Serializer(Protocol):
    def dumps(self, value: Any) -> str: ...

    def loads(self, payload: str) -> Any: ...


class JsonSerializer:
    """JSON codec with sorted keys, so equal dicts encode to the same payload.

    ``None`` payloads (missing entries) decode to ``None``.
    """

    def __init__(self, ensure_ascii: bool = False) -> None:
        self.ensure_ascii = ensure_ascii

    def dumps(self, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=self.ensure_ascii, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot encode value of type {type(value).__name__}") from exc

    def loads(self, payload: str) -> Any:
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except (json.JSONDecodeError, TypeError) as exc:
            raise SerializationError(f"Cannot decode stored payload {payload!r}") from exc
