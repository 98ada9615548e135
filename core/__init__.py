"""Core contracts and shared types for the generation pipeline."""

from .contracts import (
    AttemptOutcome,
    AttemptPhase,
    GenerationAttempt,
    ItemStatus,
    RateLimitSignal,
    RunResult,
    SimilarityMatch,
    StopReason,
    TriviaItem,
)

__all__ = [
    "AttemptOutcome",
    "AttemptPhase",
    "GenerationAttempt",
    "ItemStatus",
    "RateLimitSignal",
    "RunResult",
    "SimilarityMatch",
    "StopReason",
    "TriviaItem",
]
