"""Trace ids for log lines.

The id lives in a contextvar, so each asyncio task sees its own. Commands use
``req-<id>`` while they are in flight; a CLI run gets a random id.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "generate_trace_id",
    "get_trace_id",
    "set_trace_id",
    "trace_context",
]

_trace_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)


def generate_trace_id() -> str:
    return uuid.uuid4().hex


def get_trace_id() -> str | None:
    return _trace_id.get()


def set_trace_id(trace_id: str | None) -> None:
    _trace_id.set(trace_id)


@contextmanager
def trace_context(trace_id: str | None = None) -> Generator[str]:
    """Run the block under trace_id (a fresh one if None), then restore the previous id.

    Example:
        with trace_context("req-12"):
            logger.info("Sending command")  # tagged [req-12]
    """
    trace_id = trace_id or generate_trace_id()
    token = _trace_id.set(trace_id)
    try:
        yield trace_id
    finally:
        _trace_id.reset(token)
