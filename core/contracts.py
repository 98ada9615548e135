"""Canonical data contracts for the trivia generation pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ItemStatus(str, Enum):
    """Lifecycle status of a persisted item."""

    ACTIVE = "active"
    RETIRED = "retired"


class AttemptPhase(str, Enum):
    """Generator phase an attempt finished in."""

    SUMMARY = "summary"
    FULL = "full"


class AttemptOutcome(str, Enum):
    """Classified result of one generation attempt."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    RATE_LIMITED = "rate-limited"
    INVALID = "invalid"
    PROVIDER_ERROR = "provider-error"


class StopReason(str, Enum):
    """Why the scheduler ended a run."""

    ALREADY_SATISFIED = "already_satisfied"
    TARGET_REACHED = "target_reached"
    DAILY_LIMIT = "daily_limit"
    BUDGET_EXHAUSTED = "budget_exhausted"


class TriviaItem(BaseModel):
    """A numerically-answerable trivia item, as accepted and persisted."""

    id: str
    question: str
    answer: Union[StrictInt, StrictFloat]
    unit: str
    category: str
    summary: str
    source_name: str
    source_url: str
    creator: str
    status: ItemStatus = ItemStatus.ACTIVE
    embedding: Optional[List[float]] = None
    created_at: datetime = Field(default_factory=_utc_now)

    @field_validator("answer", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("answer must be a number, not a boolean")
        return value

    @field_validator("question", "unit", "category", "summary", "source_name", "source_url", "creator", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return str(value if value is not None else "").strip()

    def to_row(self) -> Dict[str, Any]:
        """Persisted row shape (`id, question, answer, ... , embedding?`)."""
        row: Dict[str, Any] = {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "unit": self.unit,
            "category": self.category,
            "summary": self.summary,
            "source_name": self.source_name,
            "source_url": self.source_url,
            "creator": self.creator,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
        if self.embedding is not None:
            row["embedding"] = list(self.embedding)
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TriviaItem":
        return cls(**{key: value for key, value in row.items() if key in cls.model_fields})


class SimilarityMatch(BaseModel):
    """One stored item similar to a candidate summary."""

    id: str
    summary: str
    score: float
    method: str = "trigram"


class RateLimitSignal(BaseModel):
    """Classification of a provider failure message."""

    model_config = ConfigDict(frozen=True)

    is_rate_limit: bool = False
    wait_ms: float = 0.0
    is_daily: bool = False


class GenerationAttempt(BaseModel):
    """Ephemeral record of one scheduler iteration."""

    number: int
    phase: AttemptPhase = AttemptPhase.SUMMARY
    outcome: AttemptOutcome
    item: Optional[TriviaItem] = None
    error: Optional[str] = None
    rate_limit: Optional[RateLimitSignal] = None
    match: Optional[SimilarityMatch] = None

    @property
    def wait_ms(self) -> float:
        return self.rate_limit.wait_ms if self.rate_limit else 0.0


class RunResult(BaseModel):
    """Accumulated outcome of one scheduler run, returned to the caller."""

    target: int
    initial_count: int = 0
    final_count: int = 0
    generated: int = 0
    duplicates: int = 0
    attempts: int = 0
    errors: List[str] = Field(default_factory=list)
    rate_limit_waits: List[float] = Field(default_factory=list)
    daily_limit_hit: bool = False
    stop_reason: Optional[StopReason] = None
    message: str = ""
    started_at: datetime = Field(default_factory=_utc_now)
    elapsed_seconds: float = 0.0
