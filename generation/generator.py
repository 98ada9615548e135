"""Two-phase item generation: cheap topic summary first, full item second."""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from tenacity import AsyncRetrying, before_sleep_log, retry_if_result, stop_after_attempt

from core import AttemptOutcome, AttemptPhase, GenerationAttempt, TriviaItem
from generation.duplicates import DuplicateDetector
from generation.prompts import PromptSet
from generation.rate_limit import RateLimitClassifier
from generation.source_check import SourceUrlChecker
from generation.validator import SummaryValidator, extract_json_object, validate_item_payload
from intelligence.llm.base import BaseLLM
from processing.embedder import BaseEmbedder
from utils.exceptions import (
    DuplicateTopicError,
    EmbeddingError,
    ItemValidationError,
    SourceUrlError,
    TruncatedResponseError,
)


logger = logging.getLogger(__name__)


def _new_item_id() -> str:
    return str(uuid.uuid4())


class TwoPhaseGenerator:
    """
    Produce one accepted item per call, or a classified failure.

    Phase 1 asks the provider for a short topic summary (low token budget)
    and rejects duplicate topics before the expensive call. Phase 2 requests
    the full item, seeded with the summary. An item is accepted only when its
    payload validates, its source URL is live, and its final summary is not
    a duplicate.
    """

    def __init__(
        self,
        llm: BaseLLM,
        embedder: BaseEmbedder,
        detector: DuplicateDetector,
        url_checker: SourceUrlChecker,
        prompts: PromptSet,
        classifier: Optional[RateLimitClassifier] = None,
        summary_validator: Optional[SummaryValidator] = None,
        summary_attempts: int = 3,
        summary_temperature: float = 0.8,
        summary_max_tokens: int = 64,
        question_temperature: float = 1.0,
        question_max_tokens: int = 2048,
        require_unit_in_question: bool = True,
        question_search_grounding: bool = True,
        id_factory: Callable[[], str] = _new_item_id,
    ) -> None:
        self.llm = llm
        self.embedder = embedder
        self.detector = detector
        self.url_checker = url_checker
        self.prompts = prompts
        self.classifier = classifier or RateLimitClassifier()
        self.summary_validator = summary_validator or SummaryValidator()
        self.summary_attempts = max(1, int(summary_attempts))
        self.summary_temperature = summary_temperature
        self.summary_max_tokens = summary_max_tokens
        self.question_temperature = question_temperature
        self.question_max_tokens = question_max_tokens
        self.require_unit_in_question = require_unit_in_question
        self.question_search_grounding = question_search_grounding
        self.id_factory = id_factory

    @property
    def creator(self) -> str:
        return self.llm.model

    async def _summary_once(self) -> Optional[str]:
        response = await self.llm.aprompt(
            self.prompts.summary,
            temperature=self.summary_temperature,
            max_tokens=self.summary_max_tokens,
        )
        return self.summary_validator.clean(response.content)

    async def generate_summary(self) -> Optional[str]:
        """Phase 1: a validated topic summary, or None after all attempts were invalid.

        Only invalid summaries are retried; provider errors propagate.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.summary_attempts),
            retry=retry_if_result(lambda summary: summary is None),
            retry_error_callback=lambda retry_state: None,
            before_sleep=before_sleep_log(logger, logging.INFO),
        )
        summary = await retrying(self._summary_once)
        if summary is None:
            logger.warning("All summary attempts invalid, skipping to phase 2")
        return summary

    async def generate_item(self, summary: Optional[str] = None) -> TriviaItem:
        """Phase 2: request, parse and validate a full item (without embedding).

        Raises:
            TruncatedResponseError: the response hit its token ceiling
            ItemValidationError: malformed payload or unreachable source URL
        """
        response = await self.llm.aprompt(
            self.prompts.question_prompt(summary),
            temperature=self.question_temperature,
            max_tokens=self.question_max_tokens,
            search_grounding=self.question_search_grounding,
        )
        if response.truncated:
            raise TruncatedResponseError("Response truncated", provider=self.llm.provider)

        data = extract_json_object(response.content)
        validate_item_payload(
            data,
            require_unit_in_question=self.require_unit_in_question,
            max_summary_chars=self.summary_validator.max_chars,
            max_summary_words=self.summary_validator.max_words,
        )

        source_url = data["sourceUrl"].strip()
        if not await self.url_checker.is_reachable(source_url):
            raise SourceUrlError(f"Invalid source URL: {source_url}", url=source_url)

        return TriviaItem(
            id=self.id_factory(),
            question=data["question"],
            answer=data["answer"],
            unit=data["unit"],
            category=data["category"],
            summary=data.get("summary") or summary or "",
            source_name=data["sourceName"],
            source_url=source_url,
            creator=self.creator,
        )

    async def _check_topic(self, summary: str):
        """Duplicate gate for one summary; returns its embedding (None if embedding failed)."""
        try:
            embedding = await self.embedder.aembed_query(summary)
        except EmbeddingError as exc:
            if self.classifier.classify(exc).is_rate_limit:
                raise
            logger.warning(f"Embedding failed, falling back to lexical check: {exc}")
            embedding = None
        check = self.detector.check(summary, embedding)
        if check.duplicate:
            raise DuplicateTopicError(check.describe(summary), match=check.match)
        return embedding

    async def generate_one(self, number: int = 1) -> GenerationAttempt:
        """Run one attempt through both phases and classify its outcome."""
        phase = AttemptPhase.SUMMARY
        summary: Optional[str] = None
        embedding = None

        try:
            try:
                summary = await self.generate_summary()
                if summary:
                    embedding = await self._check_topic(summary)
                    logger.info(f"Phase 1 passed, unique summary: {summary!r}")
            except DuplicateTopicError:
                raise
            except Exception as exc:
                signal = self.classifier.classify(exc)
                if signal.is_rate_limit:
                    return GenerationAttempt(
                        number=number,
                        phase=phase,
                        outcome=AttemptOutcome.RATE_LIMITED,
                        error=str(exc),
                        rate_limit=signal,
                    )
                logger.warning(f"Phase 1 failed, continuing without summary: {exc}")
                summary, embedding = None, None

            phase = AttemptPhase.FULL
            item = await self.generate_item(summary)

            if item.summary != (summary or ""):
                embedding = await self._check_topic(item.summary)

            item = item.model_copy(update={"embedding": embedding})
            return GenerationAttempt(number=number, phase=phase, outcome=AttemptOutcome.SUCCESS, item=item)

        except DuplicateTopicError as exc:
            return GenerationAttempt(
                number=number,
                phase=phase,
                outcome=AttemptOutcome.DUPLICATE,
                error=exc.message,
                match=exc.match,
            )
        except ItemValidationError as exc:
            return GenerationAttempt(
                number=number,
                phase=phase,
                outcome=AttemptOutcome.INVALID,
                error=str(exc),
            )
        except Exception as exc:
            signal = self.classifier.classify(exc)
            outcome = AttemptOutcome.RATE_LIMITED if signal.is_rate_limit else AttemptOutcome.PROVIDER_ERROR
            return GenerationAttempt(
                number=number,
                phase=phase,
                outcome=outcome,
                error=str(exc),
                rate_limit=signal if signal.is_rate_limit else None,
            )
