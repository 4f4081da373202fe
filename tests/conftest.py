"""Shared fixtures for the key-value facade tests."""

import fnmatch
import math
import time
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from services.kv_facade import KeyValueFacade

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"

STORE_COMMANDS = (
    "get", "set", "expire", "ttl", "exists", "delete", "incrby", "decrby",
    "hget", "hgetall", "hset", "hdel", "hexists", "hincrbyfloat",
    "smembers", "sismember", "sadd", "srem", "scard",
    "lrange", "llen", "lindex", "rpush", "lset", "lrem", "rpop",
    "keys", "publish", "ping",
)


class FakeStoreClient:
    """In-memory stand-in for a ``redis.Redis(decode_responses=True)`` client.

    Covers the command subset the facade uses, with redis reply shapes:
    ``ttl`` answers -2 for a missing key and -1 for a key without expiry,
    ``lrange`` ends are inclusive, and so on. Expiry is checked lazily.
    """

    def __init__(self) -> None:
        self._data: dict = {}
        self._deadlines: dict = {}
        self.published: list = []
        self.calls: list = []

    # -- helpers --
    def _alive(self, key):
        deadline = self._deadlines.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._data.pop(key, None)
            self._deadlines.pop(key, None)
        return key in self._data

    def _typed(self, key, kind, create=False):
        if not self._alive(key):
            if not create:
                return None
            self._data[key] = kind()
        value = self._data[key]
        if not isinstance(value, kind):
            raise ResponseError(WRONGTYPE)
        return value

    def _record(self, name):
        self.calls.append(name)

    # -- keys --
    def exists(self, *keys):
        self._record("exists")
        return sum(1 for k in keys if self._alive(k))

    def delete(self, *keys):
        self._record("delete")
        removed = 0
        for key in keys:
            if self._alive(key):
                del self._data[key]
                self._deadlines.pop(key, None)
                removed += 1
        return removed

    def expire(self, key, seconds):
        self._record("expire")
        if not self._alive(key):
            return False
        self._deadlines[key] = time.monotonic() + seconds
        return True

    def ttl(self, key):
        self._record("ttl")
        if not self._alive(key):
            return -2
        deadline = self._deadlines.get(key)
        if deadline is None:
            return -1
        return int(math.ceil(deadline - time.monotonic()))

    def keys(self, pattern="*"):
        self._record("keys")
        return [k for k in list(self._data) if self._alive(k) and fnmatch.fnmatchcase(k, pattern)]

    # -- strings --
    def get(self, key):
        self._record("get")
        return self._typed(key, str)

    def set(self, key, value):
        self._record("set")
        self._data[key] = str(value)
        self._deadlines.pop(key, None)
        return True

    def _add_int(self, key, amount):
        current = self._typed(key, str) or "0"
        try:
            number = int(current) + amount
        except ValueError:
            raise ResponseError("value is not an integer or out of range") from None
        self._data[key] = str(number)
        return number

    def incrby(self, key, amount=1):
        self._record("incrby")
        return self._add_int(key, amount)

    def decrby(self, key, amount=1):
        self._record("decrby")
        return self._add_int(key, -amount)

    # -- hashes --
    def hget(self, key, field):
        self._record("hget")
        return (self._typed(key, dict) or {}).get(field)

    def hgetall(self, key):
        self._record("hgetall")
        return dict(self._typed(key, dict) or {})

    def hset(self, key, field=None, value=None, mapping=None):
        self._record("hset")
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        if not items:
            raise ResponseError("wrong number of arguments for 'hset' command")
        entry = self._typed(key, dict, create=True)
        added = sum(1 for f in items if f not in entry)
        entry.update({f: str(v) for f, v in items.items()})
        return added

    def hdel(self, key, *fields):
        self._record("hdel")
        entry = self._typed(key, dict) or {}
        removed = sum(1 for f in fields if entry.pop(f, None) is not None)
        if key in self._data and not entry:
            del self._data[key]
        return removed

    def hexists(self, key, field):
        self._record("hexists")
        return field in (self._typed(key, dict) or {})

    def hincrbyfloat(self, key, field, amount=1.0):
        self._record("hincrbyfloat")
        entry = self._typed(key, dict, create=True)
        number = float(entry.get(field, "0")) + amount
        entry[field] = repr(number)
        return number

    # -- sets --
    def smembers(self, key):
        self._record("smembers")
        return set(self._typed(key, set) or set())

    def sismember(self, key, value):
        self._record("sismember")
        return int(value in (self._typed(key, set) or set()))

    def sadd(self, key, *values):
        self._record("sadd")
        entry = self._typed(key, set, create=True)
        before = len(entry)
        entry.update(values)
        return len(entry) - before

    def srem(self, key, *values):
        self._record("srem")
        entry = self._typed(key, set) or set()
        removed = sum(1 for v in values if v in entry)
        entry.difference_update(values)
        return removed

    def scard(self, key):
        self._record("scard")
        return len(self._typed(key, set) or set())

    # -- lists --
    def lrange(self, key, start, end):
        self._record("lrange")
        items = self._typed(key, list) or []
        n = len(items)
        if start < 0:
            start = max(n + start, 0)
        if end < 0:
            end = n + end
        end = min(end, n - 1)
        return items[start:end + 1] if start <= end else []

    def llen(self, key):
        self._record("llen")
        return len(self._typed(key, list) or [])

    def lindex(self, key, index):
        self._record("lindex")
        items = self._typed(key, list) or []
        if -len(items) <= index < len(items):
            return items[index]
        return None

    def rpush(self, key, *values):
        self._record("rpush")
        entry = self._typed(key, list, create=True)
        entry.extend(values)
        return len(entry)

    def lset(self, key, index, value):
        self._record("lset")
        items = self._typed(key, list)
        if items is None:
            raise ResponseError("no such key")
        if not -len(items) <= index < len(items):
            raise ResponseError("index out of range")
        items[index] = value
        return True

    def lrem(self, key, count, value):
        self._record("lrem")
        items = self._typed(key, list) or []
        positions = [i for i, item in enumerate(items) if item == value]
        if count < 0:
            positions = positions[::-1][:-count]
        elif count > 0:
            positions = positions[:count]
        for i in sorted(positions, reverse=True):
            del items[i]
        return len(positions)

    def rpop(self, key):
        self._record("rpop")
        items = self._typed(key, list)
        if not items:
            return None
        value = items.pop()
        if not items:
            del self._data[key]
        return value

    # -- pub/sub & connection --
    def publish(self, channel, message):
        self._record("publish")
        self.published.append((channel, message))
        return 0

    def ping(self):
        return True

    def close(self):
        pass


@pytest.fixture
def store():
    return FakeStoreClient()


@pytest.fixture
def facade(store):
    return KeyValueFacade(store)


@pytest.fixture
def broken_client():
    """A client whose every command fails as if the store were unreachable."""
    client = MagicMock()
    for command in STORE_COMMANDS:
        getattr(client, command).side_effect = RedisConnectionError("Connection refused")
    return client


@pytest.fixture
def broken_facade(broken_client):
    return KeyValueFacade(broken_client)
