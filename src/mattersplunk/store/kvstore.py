"""Byte-oriented key-value store over a pluggable backend.

``KVStore`` is the only place that talks to the raw backend. It turns an
absent value into ``NotFoundError`` and any backend failure into
``BackendError`` carrying the key and the operation, so the layers above
never see redis (or any other backend) exceptions.

Key schema (see ``make_key``):
    {prefix}:{namespace}:{len}:{segment}{len}:{segment}...

Segments are length-prefixed, so a username or server URL that itself
contains ``:`` or ``/`` can never make two different identities collide.

Usage::

    from mattersplunk.store.kvstore import KVStore, RedisBackend

    kv = KVStore(RedisBackend(url="redis://localhost:6379/0"))
    kv.store("greeting", b"hello")
    kv.load("greeting")  # b"hello"
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from ..errors import BackendError, NotFoundError

logger = logging.getLogger(__name__)


def make_key(prefix: str, namespace: str, *segments: str) -> str:
    """Compose a collision-free key from a namespace and identity segments."""
    body = "".join(f"{len(s)}:{s}" for s in segments)
    return f"{prefix}:{namespace}:{body}"


@runtime_checkable
class KVBackend(Protocol):
    """Raw key-value primitive beneath ``KVStore``.

    ``get`` returns ``None`` when nothing is stored under the key. Any
    failure is signalled by raising.
    """

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class RedisBackend:
    """KVBackend on top of a Redis server.

    Args:
        url:     Redis connection URL (redis://host:port/db).
        client:  Pre-built redis client; when given, ``url`` is ignored.
    """

    def __init__(self, url: str = "redis://localhost:6379/0", client: Any = None) -> None:
        self._url = url
        self._client = client if client is not None else self._connect()

    def _connect(self) -> Any:
        import redis  # type: ignore[import-untyped]

        logger.debug("Redis backend configured: %s", self._url)
        return redis.Redis.from_url(self._url)

    def get(self, key: str) -> bytes | None:
        return self._client.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)


class KVStore:
    """Load/store/delete raw bytes with uniform error translation.

    No locking is done here: every call is a single backend operation and
    the backend is trusted to make single-key writes atomic. Sequences of
    calls are not transactional.
    """

    def __init__(self, backend: KVBackend) -> None:
        self._backend = backend

    def load(self, key: str) -> bytes:
        """Return the bytes stored under key.

        Raises NotFoundError when the key is absent and BackendError when
        the backend fails.
        """
        try:
            data = self._backend.get(key)
        except Exception as exc:
            raise BackendError(f"failed to load key {key!r}: {exc}") from exc
        if data is None:
            raise NotFoundError(f"no value stored under key {key!r}")
        logger.debug("Loaded %d bytes from %r", len(data), key)
        return data

    def store(self, key: str, data: bytes) -> None:
        """Store data under key, overwriting any existing value."""
        try:
            self._backend.set(key, data)
        except Exception as exc:
            raise BackendError(f"failed to store key {key!r}: {exc}") from exc
        logger.debug("Stored %d bytes under %r", len(data), key)

    def delete(self, key: str) -> None:
        """Delete key. Deleting a key that does not exist is not an error."""
        try:
            self._backend.delete(key)
        except Exception as exc:
            raise BackendError(f"failed to delete key {key!r}: {exc}") from exc
        logger.debug("Deleted %r", key)
