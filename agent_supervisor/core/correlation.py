"""Correlation identifiers used to trace events and requests."""
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Mapping, Optional, Sequence, Union

CORRELATION_HEADER = "X-Correlation-ID"

_UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_current: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

HeaderValue = Union[str, Sequence[str], None]


def create_correlation_id() -> str:
    """Generate a fresh correlation identifier."""
    return str(uuid.uuid4())


def is_valid_correlation_id(value: str) -> bool:
    return bool(_UUID4_RE.match(value))


def extract_correlation_id(headers: Mapping[str, HeaderValue]) -> Optional[str]:
    """Return the correlation id carried by ``headers``, if any.

    Header names are matched case-insensitively; for multi-valued headers the
    first value wins.
    """
    wanted = CORRELATION_HEADER.lower()
    for name, value in headers.items():
        if name.lower() != wanted or value is None:
            continue
        if isinstance(value, str):
            return value or None
        if value:
            return value[0]
    return None


def get_correlation_id() -> Optional[str]:
    """Correlation id bound to the current task/context."""
    return _current.get()


def set_correlation_id(correlation_id: str) -> None:
    _current.set(correlation_id)


def clear_correlation_id() -> None:
    _current.set(None)


def get_or_create_correlation_id() -> str:
    existing = _current.get()
    if existing:
        return existing
    correlation_id = create_correlation_id()
    _current.set(correlation_id)
    return correlation_id
