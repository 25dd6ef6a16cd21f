"""
tests/test_progress_memory.py

Step recorder, cancellation token and conversation memory.
"""

from __future__ import annotations

import threading

import pytest

from agent.memory import ConversationMemory
from agent.progress import CancellationToken, QueryCancelledError, StepRecorder


def test_recorder_clamps_progress() -> None:
    recorder = StepRecorder()
    recorder.record("a", "under", -5)
    recorder.record("b", "over", 140)
    assert [step.progress for step in recorder.steps] == [0, 100]


def test_recorder_survives_callback_failure(caplog: pytest.LogCaptureFixture) -> None:
    def _broken(step) -> None:
        raise ValueError("listener gone")

    recorder = StepRecorder(on_step=_broken)
    recorder.record("intent_analysis", "Planning", 10)

    assert [step.step for step in recorder.steps] == ["intent_analysis"]
    assert "Step callback failed" in caplog.text


def test_recorder_steps_are_a_copy() -> None:
    recorder = StepRecorder()
    recorder.record("a", "first", 10)
    recorder.steps.clear()
    assert len(recorder.steps) == 1


def test_cancellation_token() -> None:
    token = CancellationToken()
    token.raise_if_cancelled("synthesis")
    token.cancel()

    assert token.cancelled is True
    with pytest.raises(QueryCancelledError) as exc_info:
        token.raise_if_cancelled("synthesis")
    assert exc_info.value.stage == "synthesis"


def test_memory_drops_oldest() -> None:
    memory = ConversationMemory(max_entries=2)
    for query in ("one", "two", "three"):
        memory.append(query, "sales_analysis", {})

    assert [entry.query for entry in memory.entries] == ["two", "three"]
    assert [entry.query for entry in memory.recent(1)] == ["three"]
    assert memory.recent(0) == []


def test_memory_concurrent_appends() -> None:
    memory = ConversationMemory(max_entries=500)

    def _append(worker: int) -> None:
        for i in range(50):
            memory.append(f"q{worker}-{i}", "inventory_management", None)

    threads = [threading.Thread(target=_append, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(memory) == 200
