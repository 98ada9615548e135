"""Wiring of pipeline collaborators from settings.

The invocation boundary (CLI, cron entry) owns the lifecycle: it builds a
``GenerationPipeline``, runs it, and closes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from config import Settings, get_settings
from core import RunResult
from generation.duplicates import DuplicateDetector
from generation.generator import TwoPhaseGenerator
from generation.prompts import load_prompts
from generation.rate_limit import RateLimitClassifier
from generation.scheduler import GenerationScheduler
from generation.sink import ItemSink
from generation.source_check import SourceUrlChecker
from generation.validator import SummaryValidator
from intelligence.llm import BaseLLM, get_llm
from processing.embedder import BaseEmbedder, get_embedder
from storage.item_store import QdrantItemStore, get_item_store


logger = logging.getLogger(__name__)


@dataclass
class GenerationPipeline:
    """All collaborators of one run, built once and injected explicitly."""

    settings: Settings
    llm: BaseLLM
    embedder: BaseEmbedder
    store: QdrantItemStore
    detector: DuplicateDetector
    classifier: RateLimitClassifier
    generator: TwoPhaseGenerator
    scheduler: GenerationScheduler

    async def run(self, target: Optional[int] = None) -> RunResult:
        return await self.scheduler.run(target if target is not None else self.settings.generation.target_active_items)

    async def aclose(self) -> None:
        await self.llm.aclose()
        self.store.close()


def build_pipeline(
    settings: Optional[Settings] = None,
    *,
    llm: Optional[BaseLLM] = None,
    embedder: Optional[BaseEmbedder] = None,
    store: Optional[QdrantItemStore] = None,
    url_checker: Optional[SourceUrlChecker] = None,
    budget_seconds: Optional[float] = None,
) -> GenerationPipeline:
    """Build a pipeline from settings; explicit collaborators override the configured ones."""
    settings = settings or get_settings()
    gen = settings.generation

    llm = llm or get_llm()
    embedder = embedder or get_embedder()
    store = store or get_item_store(dimension=embedder.dimension)

    detector = DuplicateDetector(
        store,
        lexical_threshold=gen.lexical_threshold,
        embedding_threshold=gen.embedding_threshold,
    )
    classifier = RateLimitClassifier.from_settings(settings.rate_limit)
    generator = TwoPhaseGenerator(
        llm=llm,
        embedder=embedder,
        detector=detector,
        url_checker=url_checker or SourceUrlChecker(
            timeout=gen.source_check_timeout,
            user_agent=gen.source_check_user_agent,
        ),
        prompts=load_prompts(gen.prompts_dir),
        classifier=classifier,
        summary_validator=SummaryValidator(
            max_chars=gen.summary_max_chars,
            min_chars=gen.summary_min_chars,
            min_words=gen.summary_min_words,
            max_words=gen.summary_max_words,
        ),
        summary_attempts=gen.summary_attempts,
        summary_temperature=settings.llm.summary_temperature,
        summary_max_tokens=settings.llm.summary_max_tokens,
        question_temperature=settings.llm.question_temperature,
        question_max_tokens=settings.llm.question_max_tokens,
        question_search_grounding=settings.llm.question_search_grounding,
        require_unit_in_question=gen.require_unit_in_question,
    )
    scheduler = GenerationScheduler(
        generator,
        store,
        sink=ItemSink(store),
        budget_seconds=budget_seconds if budget_seconds is not None else gen.budget_seconds,
        pause_seconds=gen.pause_seconds,
    )
    logger.info(f"Pipeline ready: llm={llm!r} embedder={embedder.model_name} collection={store.collection_name}")
    return GenerationPipeline(
        settings=settings,
        llm=llm,
        embedder=embedder,
        store=store,
        detector=detector,
        classifier=classifier,
        generator=generator,
        scheduler=scheduler,
    )
