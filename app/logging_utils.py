"""
Structured logging helpers for agent workflows.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


@contextmanager
def timed_event(
    logger: logging.Logger,
    event: str,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Log ``event`` with its elapsed milliseconds once the block exits.

    The yielded dict can be updated inside the block to add fields.
    """

    extra: dict[str, Any] = dict(fields)
    started = time.perf_counter()
    try:
        yield extra
    finally:
        extra["elapsed_ms"] = round((time.perf_counter() - started) * 1000, 3)
        log_event(logger, logging.INFO, event, **extra)
