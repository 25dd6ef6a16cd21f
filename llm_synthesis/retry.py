"""Re-prompting for malformed model replies.

Only JSON parse and schema failures trigger another attempt; each retry
appends a correction note naming what was wrong with the previous reply.
Adapter transport errors propagate to the caller, which owns the fallback
path.
"""

import logging
from typing import Callable, List, TypeVar

from app.logging_utils import log_event
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.validator import LLMOutputValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_STAGES = frozenset({"json_parse", "schema"})

_CORRECTION_TEMPLATE = (
    "\n\nYOUR PREVIOUS REPLY WAS REJECTED ({stage}): {problems}\n"
    "Reply again with ONLY the JSON object described above. No markdown fences, no prose."
)


class LLMRetryExhaustedError(Exception):
    """Every attempt produced a reply the decoder rejected.

    Attributes:
        attempts: Total number of attempts made.
        last_error: The decoder error from the final attempt.
        history: Decoder errors from every failed attempt, oldest first.
    """

    def __init__(
        self,
        attempts: int,
        last_error: LLMOutputValidationError,
        history: List[LLMOutputValidationError],
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(f"Model reply rejected {attempts} time(s); last error: {last_error}")


def correction_prompt(prompt: str, error: LLMOutputValidationError) -> str:
    problems = "; ".join(error.errors[:3]) or str(error)
    return prompt + _CORRECTION_TEMPLATE.format(stage=error.stage, problems=problems)


def generate_with_retry(
    adapter: BaseLLMAdapter,
    prompt: str,
    validate: Callable[[str], T],
    max_retries: int = 1,
) -> T:
    """Generate and strictly decode a model reply.

    Args:
        adapter: Model adapter implementing ``generate(prompt) -> str``.
        prompt: The fully formatted prompt.
        validate: Strict decoder such as ``validate_plan_output``.
        max_retries: Extra attempts after the first rejected reply.

    Raises:
        LLMOutputValidationError: The decoder failed at a non-retryable stage.
        LLMRetryExhaustedError: Every attempt was rejected.
    """
    errors: List[LLMOutputValidationError] = []
    total_attempts = 1 + max(0, max_retries)
    current_prompt = prompt

    for attempt in range(1, total_attempts + 1):
        raw = adapter.generate(current_prompt)
        try:
            result = validate(raw)
        except LLMOutputValidationError as exc:
            if exc.stage not in _RETRYABLE_STAGES:
                raise
            errors.append(exc)
            log_event(
                logger,
                logging.WARNING,
                "model_reply_rejected",
                attempt=attempt,
                total_attempts=total_attempts,
                stage=exc.stage,
                errors=exc.errors[:3],
            )
            current_prompt = correction_prompt(prompt, exc)
            continue

        if attempt > 1:
            log_event(logger, logging.INFO, "model_reply_accepted", attempt=attempt)
        return result

    raise LLMRetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1],
        history=errors,
    )
