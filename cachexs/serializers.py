"""JSON serialization utilities for cached values."""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from .exceptions import SerializationError

try:
    from pydantic import BaseModel  # type: ignore
except ImportError:
    BaseModel = None


class _Missing:
    """Marker for "the store holds no entry"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer that handles:
    - Pydantic BaseModel objects
    - Enum members
    - datetime and date objects
    - sets and frozensets
    - Type objects
    """
    if BaseModel is not None and isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, datetime | date):
        return obj.isoformat()
    elif isinstance(obj, set | frozenset):
        return sorted(obj, key=repr)
    elif isinstance(obj, type):
        return f"<Type:{obj.__module__}.{obj.__name__}>"
    raise TypeError(f"Cannot serialize object {obj} of type {type(obj)}")


def serialize(value: Any) -> str:
    """
    Encode a value for the store.

    Strings are written as-is, other scalars as their JSON text and everything
    else as canonical JSON. Because strings are not quoted, any string that is
    itself valid JSON (`"123"`, `"null"`, `'{"a": 1}'`, `"[1]"`) reads back
    as the decoded value rather than as a string.
    """
    if value is MISSING:
        raise SerializationError("MISSING cannot be written to the cache")

    if isinstance(value, Enum):
        value = value.value

    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"Cannot serialize non UTF-8 bytes: {e}") from e

    try:
        return json.dumps(value, default=json_serializer)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(
            f"Cannot serialize value of type {type(value).__name__}: {e}"
        ) from e


def deserialize(raw: str | bytes | None) -> Any:
    """
    Decode a value read from the store.

    Returns ``MISSING`` when the store had no entry. Payloads that are not
    valid JSON come back as the raw string.
    """
    if raw is None:
        return MISSING

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        return json.loads(raw)
    except ValueError:
        return raw
