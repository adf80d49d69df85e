"""Typed JSON codec between pydantic-describable values and stored bytes."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from ..errors import SerializationError
from .kvstore import KVStore

T = TypeVar("T")


@lru_cache(maxsize=None)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def encode(value: Any) -> bytes:
    """Serialize value to JSON bytes.

    Output is deterministic for a given value: model fields are emitted in
    declaration order.
    """
    try:
        return _adapter(type(value)).dump_json(value)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise SerializationError(f"cannot encode {type(value).__name__}: {exc}") from exc


def decode(data: bytes, type_: type[T]) -> T:
    """Parse JSON bytes into an instance of type_.

    Raises SerializationError for truncated or malformed input, or input
    whose shape does not match type_.
    """
    try:
        return _adapter(type_).validate_json(data)
    except (ValidationError, TypeError, ValueError) as exc:
        name = getattr(type_, "__name__", str(type_))
        raise SerializationError(f"cannot decode {name}: {exc}") from exc


def load_value(store: KVStore, key: str, type_: type[T]) -> T:
    """Load and decode the value stored under key."""
    data = store.load(key)
    try:
        return decode(data, type_)
    except SerializationError as exc:
        raise SerializationError(f"corrupt value under key {key!r}: {exc}") from exc


def store_value(store: KVStore, key: str, value: Any) -> None:
    """Encode value and store it under key."""
    try:
        data = encode(value)
    except SerializationError as exc:
        raise SerializationError(f"refusing to store key {key!r}: {exc}") from exc
    store.store(key, data)
