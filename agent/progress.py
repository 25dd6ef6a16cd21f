"""
agent/progress.py

Per-query step-progress tracking and cooperative cancellation.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from llm_synthesis.schema import AnalysisStep

logger = logging.getLogger(__name__)

StepCallback = Callable[[AnalysisStep], None]


class QueryCancelledError(RuntimeError):
    """Raised at a stage transition after the caller cancelled the query."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Query cancelled before stage '{stage}'.")
        self.stage = stage


class CancellationToken:
    """
    Caller-owned cancellation flag, checked between pipeline stages.

    An in-flight model or web-search call is never interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise QueryCancelledError(stage)


class StepRecorder:
    """
    Collects progress events for one query and forwards each to ``on_step``.
    """

    def __init__(self, on_step: Optional[StepCallback] = None) -> None:
        self._lock = threading.Lock()
        self._steps: list[AnalysisStep] = []
        self._on_step = on_step

    def record(
        self,
        step: str,
        action: str,
        progress: int,
        result: Any = None,
    ) -> AnalysisStep:
        event = AnalysisStep(
            step=step,
            action=action,
            progress=max(0, min(100, progress)),
            result=result,
        )
        with self._lock:
            self._steps.append(event)

        if self._on_step is not None:
            try:
                self._on_step(event)
            except Exception:  # noqa: BLE001
                logger.exception("Step callback failed for step=%s", step)
        return event

    @property
    def steps(self) -> list[AnalysisStep]:
        with self._lock:
            return list(self._steps)
