"""Shared fakes and fixtures for pipeline tests."""
from __future__ import annotations

import json
import math
from typing import Dict, List, Optional, Union

import httpx
import numpy as np
import pytest

from core import TriviaItem
from generation.duplicates import DuplicateDetector
from generation.generator import TwoPhaseGenerator
from generation.prompts import PromptSet
from generation.source_check import SourceUrlChecker
from intelligence.llm.base import BaseLLM, LLMResponse, Message
from processing.embedder import HashingEmbedder
from storage.item_store import QdrantItemStore


DIMENSION = 64
SUMMARY_PROMPT = "SUMMARY PROMPT"
QUESTION_PROMPT = "QUESTION PROMPT"


Reply = Union[str, LLMResponse, BaseException]


class ScriptedLLM(BaseLLM):
    """LLM double that replays scripted replies per phase."""

    def __init__(
        self,
        summaries: Optional[List[Reply]] = None,
        items: Optional[List[Reply]] = None,
        summary_prompt: str = SUMMARY_PROMPT,
    ):
        super().__init__(model="fake-model")
        self.summary_prompt = summary_prompt
        self.summary_replies = list(summaries or [])
        self.item_replies = list(items or [])
        self.calls: List[tuple] = []

    @property
    def provider(self) -> str:
        return "fake"

    @property
    def full_calls(self) -> List[tuple]:
        return [call for call in self.calls if call[0] == "full"]

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        prompt = messages[-1].content
        phase = "summary" if prompt == self.summary_prompt else "full"
        self.calls.append((phase, prompt, kwargs))
        queue = self.summary_replies if phase == "summary" else self.item_replies
        if not queue:
            raise AssertionError(f"unexpected {phase} call")
        reply = queue.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, LLMResponse):
            return reply
        return LLMResponse(content=reply, model=self.model, finish_reason="STOP")


class MappedEmbedder(HashingEmbedder):
    """Hashing embedder with fixed vectors for chosen texts."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, dimension: int = DIMENSION):
        super().__init__(dimension=dimension)
        self.vectors = dict(vectors or {})

    def embed(self, texts):
        texts = [texts] if isinstance(texts, str) else list(texts)
        base = super().embed(texts)
        for idx, text in enumerate(texts):
            if text in self.vectors:
                base[idx] = np.array(self.vectors[text], dtype=float)
        return base


class FakeClock:
    """Monotonic clock that only advances when slept on."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def unit_vector(index: int, dimension: int = DIMENSION) -> List[float]:
    vec = [0.0] * dimension
    vec[index] = 1.0
    return vec


def vector_with_cosine(similarity: float, dimension: int = DIMENSION) -> List[float]:
    """A unit vector whose cosine with ``unit_vector(0)`` is ``similarity``."""
    vec = [0.0] * dimension
    vec[0] = similarity
    vec[1] = math.sqrt(1.0 - similarity * similarity)
    return vec


def item_json(
    summary: str = "average depth of the Mariana Trench",
    *,
    question: str = "What is the maximum depth of the Mariana Trench in meters?",
    answer=10935,
    unit: str = "m",
    source_url: str = "https://example.org/mariana",
    wrap: bool = True,
    **overrides,
) -> str:
    data = {
        "question": question,
        "answer": answer,
        "unit": unit,
        "category": "geography",
        "summary": summary,
        "sourceName": "NOAA",
        "sourceUrl": source_url,
    }
    data.update(overrides)
    body = json.dumps(data)
    return f"Here is your question:\n```json\n{body}\n```\nEnjoy!" if wrap else body


def stored_item(
    item_id: str,
    summary: str,
    embedding: Optional[List[float]] = None,
    **overrides,
) -> TriviaItem:
    fields = dict(
        id=item_id,
        question=f"What is the {summary} in meters?",
        answer=42,
        unit="m",
        category="geography",
        summary=summary,
        source_name="Wikipedia",
        source_url="https://example.org/wiki",
        creator="seed",
        embedding=embedding,
    )
    fields.update(overrides)
    return TriviaItem(**fields)


def _url_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if "missing" in path:
        return httpx.Response(404, text="not found")
    if "broken" in path:
        return httpx.Response(500, text="server error")
    if path == "/old":
        return httpx.Response(301, headers={"Location": "https://example.org/new"})
    return httpx.Response(200, text="<html>" + "x" * 1000 + "</html>")


@pytest.fixture
def prompts() -> PromptSet:
    return PromptSet(summary=SUMMARY_PROMPT, question=QUESTION_PROMPT)


@pytest.fixture
def store() -> QdrantItemStore:
    item_store = QdrantItemStore(collection_name="test_items", dimension=DIMENSION)
    yield item_store
    item_store.close()


@pytest.fixture
def embedder() -> MappedEmbedder:
    return MappedEmbedder()


@pytest.fixture
def url_checker() -> SourceUrlChecker:
    return SourceUrlChecker(timeout=1.0, transport=httpx.MockTransport(_url_handler))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_generator(store, embedder, url_checker, prompts):
    """Factory: generator over the in-memory store with a scripted LLM."""

    def _make(llm: BaseLLM, **kwargs) -> TwoPhaseGenerator:
        detector = kwargs.pop("detector", None) or DuplicateDetector(
            store,
            lexical_threshold=kwargs.pop("lexical_threshold", 0.4),
            embedding_threshold=kwargs.pop("embedding_threshold", 0.85),
        )
        return TwoPhaseGenerator(
            llm=llm,
            embedder=kwargs.pop("embedder", embedder),
            detector=detector,
            url_checker=url_checker,
            prompts=prompts,
            **kwargs,
        )

    return _make
