"""Correlation IDs for requests and scheduled job runs.

Every log line written while handling one request (or one run of a
background job) carries the same correlationId, taken from the
X-Correlation-ID header when the caller sends one.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

CORRELATION_ID_HEADER = "X-Correlation-ID"

_current: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def job_correlation_id(job_name: str) -> str:
    """ID for one run of a background job, prefixed with the job name."""
    return f"{job_name}:{uuid.uuid4()}"


def get_correlation_id() -> str:
    """Correlation ID of the current request or job run ("" outside one)."""
    return _current.get()


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Bind cid (or a fresh ID) for the duration of the block.

    The previous value is restored on exit, so scopes nest and never leak
    between requests served by the same thread.
    """
    cid = cid or generate_correlation_id()
    token = _current.set(cid)
    try:
        yield cid
    finally:
        _current.reset(token)
