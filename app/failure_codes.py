"""Shared failure code constants for pipeline error handling."""

DATA_UNAVAILABLE = "data_unavailable"
TOOL_NOT_FOUND = "tool_not_found"
EXTERNAL_CALL_FAILURE = "external_call_failure"
PLAN_PARSE_ERROR = "plan_parse_error"
SYNTHESIS_PARSE_ERROR = "synthesis_parse_error"
UNEXPECTED_ERROR = "unexpected_error"

# Recovered inside the failing layer; the pipeline continues with reduced quality.
RECOVERABLE_FAILURES = [
    DATA_UNAVAILABLE,
    TOOL_NOT_FOUND,
    EXTERNAL_CALL_FAILURE,
    PLAN_PARSE_ERROR,
    SYNTHESIS_PARSE_ERROR,
]

# Absorbed only at the orchestrator boundary.
TERMINAL_FAILURES = [
    UNEXPECTED_ERROR,
]
