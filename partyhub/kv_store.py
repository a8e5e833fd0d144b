from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import redis

from partyhub.errors import InvalidRequest, VersionConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

DAY_SECONDS = 24 * 60 * 60

UUID4_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-4[0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
_UUID4_RE = re.compile(UUID4_PATTERN)


def is_valid_uuid4(value: str | None) -> bool:
    return value is not None and _UUID4_RE.match(value) is not None


def require_uuid4(value: str | None, *, code: str, label: str) -> str:
    """Reject anything that is not a UUID v4 before it becomes part of a storage key."""

    if not is_valid_uuid4(value):
        raise InvalidRequest(f"Invalid {label} format", code=code)
    return str(value).lower()


def key(*parts: object) -> str:
    return ":".join(str(p) for p in parts)


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class KVResult(Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None


class KVStore:
    """Thin JSON key-value adapter over redis.

    All values are JSON documents. `compare_and_set` closes the read-modify-write race by
    comparing the stored record's `version` with the version the caller read.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    def get(self, k: str) -> KVResult[Any]:
        try:
            raw = self.r.get(k)
        except redis.RedisError as e:
            logger.error("kv get failed key=%s: %s", k, e)
            return KVResult(success=False, error=f"Failed to get key {k}: {e}")
        if raw is None:
            return KVResult(success=True, data=None)
        return KVResult(success=True, data=json.loads(raw))

    def read(self, k: str) -> Any | None:
        """Like `get`, but a backend failure raises StorageError instead of reading as a miss."""

        res = self.get(k)
        if not res.success:
            raise StorageError(res.error or f"Failed to get key {k}")
        return res.data

    def set(self, k: str, value: Any, ttl_seconds: int | None = None) -> None:
        payload = json.dumps(value)
        if ttl_seconds and ttl_seconds > 0:
            self.r.set(k, payload, ex=ttl_seconds)
        else:
            self.r.set(k, payload)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self.r.delete(*keys))

    def exists(self, k: str) -> bool:
        return bool(self.r.exists(k))

    def ttl(self, k: str) -> int:
        return int(self.r.ttl(k))

    def compare_and_set(
        self,
        k: str,
        value: dict[str, Any],
        *,
        expected_version: int,
        ttl_seconds: int | None = None,
    ) -> int:
        """Write `value` only if the stored record still has `expected_version`.

        Returns the new version, which is also written into `value["version"]`.
        """

        with self.r.pipeline() as pipe:
            try:
                pipe.watch(k)
                raw = pipe.get(k)
                current = json.loads(raw).get("version", 0) if raw else None
                if current != expected_version:
                    raise VersionConflict(
                        "Record was modified concurrently",
                        details={"expected_version": expected_version, "current_version": current},
                    )
                new_version = expected_version + 1
                value["version"] = new_version
                payload = json.dumps(value)
                pipe.multi()
                if ttl_seconds and ttl_seconds > 0:
                    pipe.set(k, payload, ex=ttl_seconds)
                else:
                    pipe.set(k, payload)
                pipe.execute()
            except redis.WatchError as e:
                logger.warning("version conflict on key=%s (watch tripped)", k)
                raise VersionConflict("Record was modified concurrently") from e
        return new_version

    def delete_if_version(self, k: str, *others: str, expected_version: int) -> int:
        """Delete `k` and `others` only if `k` still holds `expected_version`.

        Returns the number of keys removed.
        """

        with self.r.pipeline() as pipe:
            try:
                pipe.watch(k)
                raw = pipe.get(k)
                current = json.loads(raw).get("version", 0) if raw else None
                if current != expected_version:
                    raise VersionConflict(
                        "Record was modified concurrently",
                        details={"expected_version": expected_version, "current_version": current},
                    )
                pipe.multi()
                pipe.delete(k, *others)
                removed = pipe.execute()[0]
            except redis.WatchError as e:
                logger.warning("version conflict on key=%s (watch tripped)", k)
                raise VersionConflict("Record was modified concurrently") from e
        return int(removed)
