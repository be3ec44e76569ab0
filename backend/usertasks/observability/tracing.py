"""Lightweight tracing around service calls."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from usertasks.observability.client import get_opik_client

logger = logging.getLogger(__name__)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Any]:
    """Record a span for the wrapped block.

    Always logs the duration at DEBUG. When an Opik client is configured the
    span is also sent as an Opik trace, tagged with the error type on failure.
    """
    payload: Dict[str, Any] = dict(metadata or {})
    if user_id is not None:
        payload.setdefault("user_id", user_id)
    if request_id is not None:
        payload.setdefault("request_id", request_id)

    client = get_opik_client()
    handle = client.trace(name=name, metadata=payload) if client is not None else None
    start = perf_counter()
    error: str | None = None
    try:
        yield handle
    except Exception as exc:
        error = type(exc).__name__
        raise
    finally:
        duration_ms = (perf_counter() - start) * 1000
        if handle is not None:
            handle.end(metadata={**payload, "duration_ms": duration_ms, "error": error})
        logger.debug("trace %s finished in %.2fms (error=%s)", name, duration_ms, error)
