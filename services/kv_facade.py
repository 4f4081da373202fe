"""Key-value facade over a redis-py client.

One call surface for five data shapes (scalar, hash, set, list and a publish
channel) with uniform TTL handling. Store failures never propagate: they are
logged and collapsed into a neutral return value (``False``, ``None``).

Precondition violations (for example a non-positive increment) are the only
errors a caller sees, and they are raised before the store is touched.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, TypeVar, Union

from redis.exceptions import RedisError

from services.expiration import ExpirationPolicy, ExpirationPolicyRegistry
from services.outcome import Ok, Outcome, StoreFailure
from utils.serialization import JsonSerializer, SerializationError, Serializer

T = TypeVar("T")

module_logger = logging.getLogger(__name__)

STORE_ERRORS = (RedisError, SerializationError, OSError)

# TTL replies from the store for "no expiration" and "no such key".
TTL_PERSISTENT = -1
TTL_MISSING = -2

PolicyRef = Union[ExpirationPolicy, str]


class InvalidDeltaError(ValueError):
    """Raised when an increment/decrement delta has the wrong sign."""


class _StoreAccess:
    """Shared plumbing for every operation group: the client, the codec and the guard."""

    def __init__(
        self,
        client: Any,
        serializer: Optional[Serializer] = None,
        logger: Optional[logging.Logger] = None,
        policies: Optional[ExpirationPolicyRegistry] = None,
    ) -> None:
        if client is None:
            raise ValueError("KeyValueFacade requires a store client")
        self._client = client
        self._serializer = serializer or JsonSerializer()
        self._logger = logger or module_logger
        self._policies = policies or ExpirationPolicyRegistry()

    @property
    def client(self) -> Any:
        return self._client

    @property
    def policies(self) -> ExpirationPolicyRegistry:
        return self._policies

    def _attempt(self, operation: str, key: Any, fn: Callable[[], T]) -> Outcome[T]:
        try:
            return Ok(fn())
        except STORE_ERRORS as exc:
            self._logger.error(f"Store operation {operation} failed for key {key!r}: {exc}", exc_info=True)
            return StoreFailure(operation=operation, cause=exc)

    def _encode(self, value: Any) -> str:
        return self._serializer.dumps(value)

    def _decode(self, payload: Optional[str]) -> Any:
        return self._serializer.loads(payload)

    def _decode_list(self, payloads: Optional[Iterable[str]]) -> Optional[List[Any]]:
        if payloads is None:
            return None
        return [self._decode(p) for p in payloads]

    def _apply_ttl(self, key: str, seconds: int) -> None:
        # Second round trip; a value written just before stays without TTL if this fails.
        if seconds > 0:
            self._client.expire(key, seconds)


class KeyOps(_StoreAccess):
    def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL in seconds. A non-positive value is a successful no-op."""
        outcome = self._attempt("expire", key, lambda: self._apply_ttl(key, seconds))
        return outcome.ok

    def get_expire(self, key: str) -> Optional[int]:
        """Remaining TTL in seconds; ``0`` means the key is permanent or does not exist."""

        def _ttl() -> int:
            remaining = self._client.ttl(key)
            if remaining is None or remaining in (TTL_PERSISTENT, TTL_MISSING):
                return 0
            return int(remaining)

        return self._attempt("ttl", key, _ttl).unwrap_or(None)

    def has_key(self, key: str) -> bool:
        return self._attempt("exists", key, lambda: self._client.exists(key) > 0).unwrap_or(False)

    def delete(self, *keys: str) -> bool:
        """Delete one or many keys in a single call. Missing keys are not an error."""
        keys = tuple(k for k in keys if k is not None)
        if not keys:
            return True
        return self._attempt("delete", keys, lambda: self._client.delete(*keys)).ok


class ScalarOps(_StoreAccess):
    def get(self, key: Optional[str]) -> Any:
        if key is None:
            return None
        return self._attempt("get", key, lambda: self._decode(self._client.get(key))).unwrap_or(None)

    def set(self, key: str, value: Any, seconds: int = 0) -> bool:
        """Write a value; ``seconds > 0`` also sets a TTL (write then expire, not atomic)."""

        def _write() -> None:
            self._client.set(key, self._encode(value))
            self._apply_ttl(key, seconds)

        return self._attempt("set", key, _write).ok

    def increment(self, key: str, delta: int) -> Optional[int]:
        if delta <= 0:
            raise InvalidDeltaError(f"increment delta must be greater than 0, got {delta}")
        return self._attempt("incrby", key, lambda: self._client.incrby(key, delta)).unwrap_or(None)

    def decrement(self, key: str, delta: int) -> Optional[int]:
        """Decrement by ``abs(delta)``. The delta must be negative."""
        if delta >= 0:
            raise InvalidDeltaError(f"decrement delta must be less than 0, got {delta}")
        return self._attempt("decrby", key, lambda: self._client.decrby(key, -delta)).unwrap_or(None)


class HashOps(_StoreAccess):
    def hash_get(self, key: str, field: str) -> Any:
        return self._attempt("hget", key, lambda: self._decode(self._client.hget(key, field))).unwrap_or(None)

    def hash_get_all(self, key: str) -> Optional[Dict[str, Any]]:
        def _entries() -> Dict[str, Any]:
            raw = self._client.hgetall(key) or {}
            return {field: self._decode(payload) for field, payload in raw.items()}

        return self._attempt("hgetall", key, _entries).unwrap_or(None)

    def hash_set_all(self, key: str, fields: Mapping[str, Any], seconds: int = 0) -> bool:
        def _write() -> None:
            if fields:
                self._client.hset(key, mapping={f: self._encode(v) for f, v in fields.items()})
            self._apply_ttl(key, seconds)

        return self._attempt("hset", key, _write).ok

    def hash_set(self, key: str, field: str, value: Any, seconds: int = 0) -> bool:
        """Set one field. A TTL replaces whatever expiration the hash had before."""

        def _write() -> None:
            self._client.hset(key, field, self._encode(value))
            self._apply_ttl(key, seconds)

        return self._attempt("hset", key, _write).ok

    def hash_delete(self, key: str, *fields: str) -> Optional[int]:
        if not fields:
            return 0
        return self._attempt("hdel", key, lambda: self._client.hdel(key, *fields)).unwrap_or(None)

    def hash_has_field(self, key: str, field: str) -> bool:
        return self._attempt("hexists", key, lambda: bool(self._client.hexists(key, field))).unwrap_or(False)

    def hash_increment(self, key: str, field: str, delta: float) -> Optional[float]:
        """Add ``delta`` to a hash field, creating it when missing."""
        return self._attempt(
            "hincrbyfloat", key, lambda: float(self._client.hincrbyfloat(key, field, delta))
        ).unwrap_or(None)

    def hash_decrement(self, key: str, field: str, delta: float) -> Optional[float]:
        # Callers pass the signed delta they want applied; it is not negated here.
        return self._attempt(
            "hincrbyfloat", key, lambda: float(self._client.hincrbyfloat(key, field, delta))
        ).unwrap_or(None)


class SetOps(_StoreAccess):
    def set_members(self, key: str) -> Optional[List[Any]]:
        """Decoded members, in no particular order."""
        return self._attempt("smembers", key, lambda: self._decode_list(self._client.smembers(key))).unwrap_or(
            None
        )

    def set_is_member(self, key: str, value: Any) -> bool:
        return self._attempt(
            "sismember", key, lambda: bool(self._client.sismember(key, self._encode(value)))
        ).unwrap_or(False)

    def set_size(self, key: str) -> Optional[int]:
        return self._attempt("scard", key, lambda: self._client.scard(key)).unwrap_or(None)

    def set_add(self, key: str, *values: Any, seconds: int = 0) -> Optional[int]:
        """Add values and return how many were new. Duplicates collapse in the store."""
        if not values:
            return 0

        def _add() -> int:
            added = self._client.sadd(key, *[self._encode(v) for v in values])
            self._apply_ttl(key, seconds)
            return added

        return self._attempt("sadd", key, _add).unwrap_or(None)

    def set_remove(self, key: str, *values: Any) -> Optional[int]:
        if not values:
            return 0
        return self._attempt(
            "srem", key, lambda: self._client.srem(key, *[self._encode(v) for v in values])
        ).unwrap_or(None)


class BoundList:
    """List operations pinned to one key."""

    def __init__(self, facade: "ListOps", key: str) -> None:
        self._facade = facade
        self.key = key

    def range(self, start: int = 0, end: int = -1) -> Optional[List[Any]]:
        return self._facade.list_range(self.key, start, end)

    def pop_right(self) -> Any:
        return self._facade.list_pop_right(self.key)

    def push_right_with_policy(self, policy: PolicyRef, *values: Any) -> bool:
        return self._facade.list_push_right_with_policy(self.key, policy, *values)

    def __repr__(self) -> str:
        return f"BoundList(key={self.key!r})"


class ListOps(_StoreAccess):
    def list_range(self, key: str, start: int = 0, end: int = -1) -> Optional[List[Any]]:
        """Elements from ``start`` to ``end`` inclusive; ``0, -1`` is the whole list."""
        return self._attempt(
            "lrange", key, lambda: self._decode_list(self._client.lrange(key, start, end))
        ).unwrap_or(None)

    def list_size(self, key: str) -> Optional[int]:
        return self._attempt("llen", key, lambda: self._client.llen(key)).unwrap_or(None)

    def list_index(self, key: str, index: int) -> Any:
        """Element at ``index``; negative indexes count from the tail (-1 is the last)."""
        return self._attempt("lindex", key, lambda: self._decode(self._client.lindex(key, index))).unwrap_or(None)

    def list_push_right(self, key: str, value: Any, seconds: int = 0) -> bool:
        def _push() -> None:
            self._client.rpush(key, self._encode(value))
            self._apply_ttl(key, seconds)

        return self._attempt("rpush", key, _push).ok

    def list_push_right_all(self, key: str, values: Iterable[Any], seconds: int = 0) -> bool:
        """Append a whole sequence to the tail, keeping its order."""
        values = list(values)
        if not values:
            return True

        def _push() -> None:
            self._client.rpush(key, *[self._encode(v) for v in values])
            self._apply_ttl(key, seconds)

        return self._attempt("rpush", key, _push).ok

    def list_set_at(self, key: str, index: int, value: Any) -> bool:
        return self._attempt("lset", key, lambda: self._client.lset(key, index, self._encode(value))).ok

    def list_remove(self, key: str, count: int, value: Any) -> Optional[int]:
        """Remove up to ``count`` occurrences; a negative count scans from the tail, 0 removes all."""
        return self._attempt(
            "lrem", key, lambda: self._client.lrem(key, count, self._encode(value))
        ).unwrap_or(None)

    def list_push_right_with_policy(self, key: str, policy: PolicyRef, *values: Any) -> bool:
        """Append values and (re)apply the policy's TTL to the key.

        The TTL is refreshed even when no values are given.
        Unknown policy names raise ``UnknownExpirationPolicy`` before the store is touched.
        """
        resolved = self._policies.resolve(policy)

        def _push() -> None:
            if values:
                self._client.rpush(key, *[self._encode(v) for v in values])
            self._client.expire(key, resolved.seconds)

        return self._attempt("rpush", key, _push).ok

    def list_pop_right(self, key: str) -> Any:
        """Remove and return the last element, or ``None`` when the list is empty."""
        return self._attempt("rpop", key, lambda: self._decode(self._client.rpop(key))).unwrap_or(None)

    def bound_list(self, key: str) -> BoundList:
        return BoundList(self, key)

    def list_range_bound(self, key: str, start: int = 0, end: int = -1) -> Optional[List[Any]]:
        return self.bound_list(key).range(start, end)

    def list_pop_right_bound(self, key: str) -> Any:
        return self.bound_list(key).pop_right()


class MessagingOps(_StoreAccess):
    def keys_matching(self, pattern: str) -> Optional[Set[str]]:
        """Glob-style scan over the whole keyspace. Expensive on large stores."""
        return self._attempt("keys", pattern, lambda: set(self._client.keys(pattern))).unwrap_or(None)

    def publish(self, channel: str, message: Any) -> bool:
        return self._attempt("publish", channel, lambda: self._client.publish(channel, self._encode(message))).ok


class KeyValueFacade(KeyOps, ScalarOps, HashOps, SetOps, ListOps, MessagingOps):
    """Uniform typed access to a shared key-value store.

    Holds no state besides the client reference, so one instance can be shared
    across threads as long as the client itself is thread-safe.
    """

    def ping(self) -> bool:
        return self._attempt("ping", None, lambda: bool(self._client.ping())).unwrap_or(False)

    def __repr__(self) -> str:
        return f"KeyValueFacade(client={self._client!r}, policies={self._policies!r})"
