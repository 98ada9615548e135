"""Tests for the budgeted generation scheduler."""
from __future__ import annotations

from typing import List

import pytest

from core import AttemptOutcome, AttemptPhase, GenerationAttempt, RateLimitSignal, StopReason
from generation.rate_limit import classify_rate_limit
from generation.scheduler import GenerationScheduler
from utils.exceptions import StorageError

from conftest import ScriptedLLM, item_json, stored_item


MARIANA = "average depth of the Mariana Trench"
BOILING = "boiling point of water at sea level"
BOILING_QUESTION = "At what temperature does water boil at sea level in degrees Celsius?"


class StubGenerator:
    """Generator double that replays attempt outcomes, optionally advancing a clock."""

    def __init__(self, outcomes: List[GenerationAttempt], clock=None, cost_seconds: float = 0.0):
        self.outcomes = list(outcomes)
        self.clock = clock
        self.cost_seconds = cost_seconds
        self.calls = 0

    async def generate_one(self, number: int = 1) -> GenerationAttempt:
        self.calls += 1
        if self.clock is not None:
            self.clock.advance(self.cost_seconds)
        attempt = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        return attempt.model_copy(update={"number": number})


def _error(message: str = "upstream 500") -> GenerationAttempt:
    return GenerationAttempt(number=0, phase=AttemptPhase.FULL, outcome=AttemptOutcome.PROVIDER_ERROR, error=message)


def _rate_limited(message: str) -> GenerationAttempt:
    return GenerationAttempt(
        number=0,
        phase=AttemptPhase.SUMMARY,
        outcome=AttemptOutcome.RATE_LIMITED,
        error=message,
        rate_limit=classify_rate_limit(message),
    )


def _scheduler(generator, store, clock, **kwargs) -> GenerationScheduler:
    kwargs.setdefault("budget_seconds", 55)
    kwargs.setdefault("pause_seconds", 1)
    return GenerationScheduler(generator, store, clock=clock, sleep=clock.sleep, **kwargs)


@pytest.mark.asyncio
async def test_single_item_on_empty_corpus(make_generator, store, clock):
    llm = ScriptedLLM(summaries=[MARIANA], items=[item_json(MARIANA)])
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(1)

    assert result.generated == 1
    assert result.duplicates == 0
    assert result.errors == []
    assert result.initial_count == 0
    assert result.final_count == 1
    assert result.stop_reason == StopReason.TARGET_REACHED
    assert result.message == "Generated 1 items (1/1)"
    assert store.count_active() == 1
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_pause_between_successful_attempts(make_generator, store, clock):
    llm = ScriptedLLM(
        summaries=[MARIANA, BOILING],
        items=[
            item_json(MARIANA),
            item_json(BOILING, question=BOILING_QUESTION, answer=100, unit="°C"),
        ],
    )
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(2)

    assert result.generated == 2
    assert result.final_count == 2
    assert clock.sleeps == [1.0]


@pytest.mark.asyncio
async def test_target_already_satisfied_makes_no_calls(make_generator, store, clock):
    store.insert(stored_item("seed-1", MARIANA))
    store.insert(stored_item("seed-2", BOILING))
    llm = ScriptedLLM()
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(2)

    assert result.generated == 0
    assert result.attempts == 0
    assert result.stop_reason == StopReason.ALREADY_SATISFIED
    assert result.message == "Target reached (2/2), no generation needed"
    assert llm.calls == []


@pytest.mark.asyncio
async def test_retired_items_do_not_count_towards_target(make_generator, store, clock):
    store.insert(stored_item("seed-1", BOILING, status="retired"))
    llm = ScriptedLLM(summaries=[MARIANA], items=[item_json(MARIANA)])
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(1)

    assert result.initial_count == 0
    assert result.generated == 1


@pytest.mark.asyncio
async def test_duplicates_are_tallied_and_retried_immediately(make_generator, store, clock, embedder):
    store.insert(stored_item("seed-1", BOILING, embedding=embedder.embed_query(BOILING)))
    llm = ScriptedLLM(summaries=[BOILING, MARIANA], items=[item_json(MARIANA)])
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(2)

    assert result.generated == 1
    assert result.duplicates == 1
    assert result.attempts == 2
    assert result.errors == []
    assert clock.sleeps == []
    assert len(llm.full_calls) == 1


@pytest.mark.asyncio
async def test_daily_limit_halts_run(make_generator, store, clock):
    llm = ScriptedLLM(summaries=[RuntimeError("429 RESOURCE_EXHAUSTED: daily quota exceeded")])
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(5)

    assert result.daily_limit_hit is True
    assert result.stop_reason == StopReason.DAILY_LIMIT
    assert result.generated == 0
    assert result.attempts == 1
    assert result.errors[0].startswith("Daily limit:")
    assert result.message == "Daily limit hit after generating 0 items"
    assert clock.sleeps == []
    assert llm.full_calls == []


@pytest.mark.asyncio
async def test_long_explicit_wait_counts_as_daily(store, clock):
    generator = StubGenerator([_rate_limited("Rate limit reached. Please try again in 2 hours")])
    scheduler = _scheduler(generator, store, clock)

    result = await scheduler.run(3)

    assert result.daily_limit_hit is True
    assert generator.calls == 1


@pytest.mark.asyncio
async def test_rate_limit_wait_is_honoured_then_generation_resumes(make_generator, store, clock):
    llm = ScriptedLLM(
        summaries=[RuntimeError("429 Too Many Requests, retry after 20s"), MARIANA],
        items=[item_json(MARIANA)],
    )
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(1)

    assert result.generated == 1
    assert result.rate_limit_waits == [20000]
    assert clock.sleeps == [20.0]
    assert result.errors == []


@pytest.mark.asyncio
async def test_wait_past_deadline_is_not_started(store, clock):
    generator = StubGenerator([_rate_limited("rate limit exceeded, retry after 30s")])
    scheduler = _scheduler(generator, store, clock, budget_seconds=55)

    result = await scheduler.run(3)

    assert clock.sleeps == [30.0]
    assert generator.calls == 2
    assert result.stop_reason == StopReason.BUDGET_EXHAUSTED
    assert result.rate_limit_waits == [30000, 30000]
    assert clock.now <= 55


@pytest.mark.asyncio
async def test_budget_exhaustion_stops_loop(store, clock):
    generator = StubGenerator([_error()], clock=clock, cost_seconds=20)
    scheduler = _scheduler(generator, store, clock, budget_seconds=55)

    result = await scheduler.run(3)

    assert generator.calls == 3
    assert result.attempts == 3
    assert result.errors == ["upstream 500"] * 3
    assert result.stop_reason == StopReason.BUDGET_EXHAUSTED
    assert clock.sleeps == [1.0, 1.0]
    assert result.generated == 0


@pytest.mark.asyncio
async def test_invalid_and_provider_errors_are_recorded(make_generator, store, clock):
    llm = ScriptedLLM(
        summaries=[MARIANA, MARIANA],
        items=[item_json(MARIANA, source_url="https://example.org/missing"), item_json(MARIANA)],
    )
    scheduler = _scheduler(make_generator(llm), store, clock)

    result = await scheduler.run(1)

    assert result.generated == 1
    assert len(result.errors) == 1
    assert "Invalid source URL" in result.errors[0]
    assert clock.sleeps == [1.0]


class FailingInsertStore:
    """Store wrapper whose inserts always fail."""

    def __init__(self, inner):
        self.inner = inner
        self.insert_calls = 0

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def insert(self, item):
        self.insert_calls += 1
        raise StorageError("disk full")


@pytest.mark.asyncio
async def test_persist_failure_is_recorded_and_loop_continues(make_generator, store, clock):
    flaky = FailingInsertStore(store)
    success = GenerationAttempt(
        number=0,
        phase=AttemptPhase.FULL,
        outcome=AttemptOutcome.SUCCESS,
        item=stored_item("new-1", MARIANA),
    )
    generator = StubGenerator([success], clock=clock, cost_seconds=20)
    scheduler = _scheduler(generator, flaky, clock, budget_seconds=30)

    result = await scheduler.run(1)

    assert result.generated == 0
    assert flaky.insert_calls == 2
    assert result.errors == ["Persist failed: disk full"] * 2
    assert result.final_count == 0


@pytest.mark.asyncio
async def test_initial_count_failure_escapes(store, clock):
    class BrokenStore:
        def count_active(self):
            raise StorageError("connection refused")

    scheduler = _scheduler(StubGenerator([_error()]), BrokenStore(), clock)

    with pytest.raises(StorageError):
        await scheduler.run(1)


@pytest.mark.asyncio
async def test_final_count_failure_falls_back_to_estimate(clock):
    class CountOnceStore:
        def __init__(self):
            self.counts = 0
            self.items = []

        def count_active(self):
            self.counts += 1
            if self.counts > 1:
                raise StorageError("connection dropped")
            return 4

        def insert(self, item):
            self.items.append(item)
            return True

    success = GenerationAttempt(
        number=0,
        phase=AttemptPhase.FULL,
        outcome=AttemptOutcome.SUCCESS,
        item=stored_item("new-1", MARIANA),
    )
    scheduler = _scheduler(StubGenerator([success]), CountOnceStore(), clock)

    result = await scheduler.run(5)

    assert result.generated == 1
    assert result.final_count == 5


def test_rate_limit_signal_wait_property():
    attempt = GenerationAttempt(
        number=1,
        phase=AttemptPhase.SUMMARY,
        outcome=AttemptOutcome.RATE_LIMITED,
        rate_limit=RateLimitSignal(is_rate_limit=True, wait_ms=1500, is_daily=False),
    )
    assert attempt.wait_ms == 1500
