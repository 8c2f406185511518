"""Fallback/retry orchestration across a chain of models."""

from wingman.ai.orchestration.fallback import (
    AttemptOutcome,
    FallbackOrchestrator,
    GenerationAttempt,
    OrchestrationResult,
    backoff_delay,
    classify_error,
)
from wingman.ai.orchestration.stats import RunningStats

__all__ = [
    "AttemptOutcome",
    "FallbackOrchestrator",
    "GenerationAttempt",
    "OrchestrationResult",
    "RunningStats",
    "backoff_delay",
    "classify_error",
]
