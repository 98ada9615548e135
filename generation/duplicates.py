"""Duplicate-topic detection against the persistent corpus."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from core import SimilarityMatch


logger = logging.getLogger(__name__)


@dataclass
class DuplicateCheck:
    """Result of a duplicate check; ``match`` is the closest stored item."""

    duplicate: bool
    match: Optional[SimilarityMatch] = None

    def describe(self, candidate: str) -> str:
        if not self.duplicate or self.match is None:
            return f"Unique: {candidate!r}"
        return (
            f"Duplicate: {candidate!r} ≈ {self.match.summary!r} "
            f"({self.match.score * 100:.0f}% {self.match.method})"
        )


NO_DUPLICATE = DuplicateCheck(duplicate=False)


class DuplicateDetector:
    """
    Two complementary similarity checks against stored summaries.

    - embedding: cosine similarity of summary vectors (``embedding_threshold``),
      authoritative whenever the candidate has an embedding
    - lexical: trigram similarity of the summary text (``lexical_threshold``,
      None disables it), used only when no embedding is available

    Trigrams never override an embedding verdict. A match at or above the
    threshold of the check in use marks the candidate as a duplicate.
    Query failures never block generation: they are logged and read as
    "no duplicate".
    """

    def __init__(
        self,
        store,
        lexical_threshold: Optional[float] = 0.4,
        embedding_threshold: float = 0.85,
    ) -> None:
        self.store = store
        self.lexical_threshold = lexical_threshold
        self.embedding_threshold = embedding_threshold

    @staticmethod
    def _first(matches: List[SimilarityMatch]) -> DuplicateCheck:
        if matches:
            return DuplicateCheck(duplicate=True, match=matches[0])
        return NO_DUPLICATE

    def check_lexical(self, summary: str) -> DuplicateCheck:
        if self.lexical_threshold is None or not str(summary or "").strip():
            return NO_DUPLICATE
        try:
            matches = self.store.find_similar_summaries(summary, threshold=self.lexical_threshold, limit=1)
        except Exception as exc:
            logger.warning(f"Lexical duplicate check failed, assuming unique: {exc}")
            return NO_DUPLICATE
        return self._first(matches)

    def check_embedding(self, embedding: Optional[Sequence[float]]) -> DuplicateCheck:
        if not embedding:
            return NO_DUPLICATE
        try:
            matches = self.store.find_similar_embeddings(
                list(embedding),
                threshold=self.embedding_threshold,
                limit=1,
            )
        except Exception as exc:
            logger.warning(f"Embedding duplicate check failed, assuming unique: {exc}")
            return NO_DUPLICATE
        return self._first(matches)

    def check(self, summary: str, embedding: Optional[Sequence[float]] = None) -> DuplicateCheck:
        """Embedding check when an embedding is given, lexical check otherwise."""
        if embedding is not None and len(embedding) > 0:
            return self.check_embedding(embedding)
        return self.check_lexical(summary)
