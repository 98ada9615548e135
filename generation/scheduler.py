"""Budgeted scheduler: the orchestrating loop of a generation run."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from core import AttemptOutcome, GenerationAttempt, RunResult, StopReason
from generation.generator import TwoPhaseGenerator
from generation.sink import ItemSink


logger = logging.getLogger(__name__)


class GenerationScheduler:
    """
    Drive the generator until the target is met, a daily limit is hit, or
    the wall-clock budget runs out.

    The loop is strictly sequential: each attempt's outcome is observed
    before the next one starts. No sleep is started whose wake-up time would
    fall after the deadline. Outcomes are accumulated into the RunResult;
    only a failure to count the corpus at the start escapes ``run``.
    """

    def __init__(
        self,
        generator: TwoPhaseGenerator,
        store,
        sink: Optional[ItemSink] = None,
        budget_seconds: float = 55.0,
        pause_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.generator = generator
        self.store = store
        self.sink = sink or ItemSink(store)
        self.budget_seconds = float(budget_seconds)
        self.pause_seconds = float(pause_seconds)
        self._clock = clock
        self._sleep = sleep

    async def run(self, target: int) -> RunResult:
        """
        Generate until ``target`` active items exist.

        Raises:
            StorageError: the current corpus size could not be determined
        """
        started = self._clock()
        result = RunResult(target=target)

        def elapsed() -> float:
            return self._clock() - started

        def fits(seconds: float) -> bool:
            return elapsed() + seconds <= self.budget_seconds

        result.initial_count = self.store.count_active()
        logger.info("run_start target=%d initial=%d budget=%.0fs", target, result.initial_count, self.budget_seconds)

        if result.initial_count >= target:
            result.final_count = result.initial_count
            result.stop_reason = StopReason.ALREADY_SATISFIED
            result.message = f"Target reached ({result.initial_count}/{target}), no generation needed"
            result.elapsed_seconds = elapsed()
            return result

        needed = target - result.initial_count
        result.stop_reason = StopReason.TARGET_REACHED

        while result.generated < needed:
            if elapsed() >= self.budget_seconds:
                logger.info("Approaching timeout, stopping")
                result.stop_reason = StopReason.BUDGET_EXHAUSTED
                break

            result.attempts += 1
            attempt = await self.generator.generate_one(result.attempts)
            pause = self._record(attempt, result)

            if attempt.outcome == AttemptOutcome.RATE_LIMITED:
                signal = attempt.rate_limit
                if signal is not None and signal.is_daily:
                    result.daily_limit_hit = True
                    result.stop_reason = StopReason.DAILY_LIMIT
                    logger.warning("Daily rate limit hit, stopping")
                    break
                wait_seconds = attempt.wait_ms / 1000.0
                result.rate_limit_waits.append(attempt.wait_ms)
                if not fits(wait_seconds):
                    logger.info("Not enough time to wait %.1fs, stopping", wait_seconds)
                    result.stop_reason = StopReason.BUDGET_EXHAUSTED
                    break
                logger.info("Per-minute limit, waiting %.1fs", wait_seconds)
                await self._sleep(wait_seconds)
                continue

            if pause and result.generated < needed:
                if not fits(self.pause_seconds):
                    result.stop_reason = StopReason.BUDGET_EXHAUSTED
                    break
                await self._sleep(self.pause_seconds)

        result.final_count = self._final_count(result)
        result.elapsed_seconds = elapsed()
        if result.daily_limit_hit:
            result.message = f"Daily limit hit after generating {result.generated} items"
        else:
            result.message = f"Generated {result.generated} items ({result.final_count}/{target})"
        logger.info(
            "run_end generated=%d duplicates=%d errors=%d stop=%s elapsed=%.1fs",
            result.generated,
            result.duplicates,
            len(result.errors),
            result.stop_reason.value,
            result.elapsed_seconds,
        )
        return result

    def _record(self, attempt: GenerationAttempt, result: RunResult) -> bool:
        """Fold one outcome into ``result``; returns whether to pause before the next call."""
        outcome = attempt.outcome
        logger.info("attempt=%d phase=%s outcome=%s", attempt.number, attempt.phase.value, outcome.value)

        if outcome == AttemptOutcome.SUCCESS and attempt.item is not None:
            persisted = self.sink.persist(attempt.item)
            if persisted.stored:
                result.generated += 1
                logger.info(f"Generated: {attempt.item.summary}")
            elif persisted.error:
                result.errors.append(persisted.error)
            return True

        if outcome == AttemptOutcome.DUPLICATE:
            result.duplicates += 1
            logger.info(attempt.error or "Duplicate")
            return False

        if outcome == AttemptOutcome.RATE_LIMITED:
            if attempt.rate_limit is not None and attempt.rate_limit.is_daily:
                result.errors.append(f"Daily limit: {attempt.error}")
            return False

        result.errors.append(attempt.error or outcome.value)
        logger.error(f"Error: {attempt.error}")
        return True

    def _final_count(self, result: RunResult) -> int:
        try:
            return self.store.count_active()
        except Exception as exc:
            logger.warning(f"Final count failed, estimating from run: {exc}")
            return result.initial_count + result.generated
