"""Correlation data for log lines: the request ID and the place being processed."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("tacitus_request_id", default="")
place_var: ContextVar[str] = ContextVar("tacitus_place", default="")


def generate_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str:
    """Return the correlation ID of the request being handled, or ``""``."""
    return request_id_var.get()


def get_place() -> str:
    return place_var.get()


@contextmanager
def processing_place(place_name: str) -> Iterator[None]:
    """Tag log lines emitted inside the block with *place_name*."""
    token = place_var.set(place_name)
    try:
        yield
    finally:
        place_var.reset(token)
