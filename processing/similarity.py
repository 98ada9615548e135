"""Trigram text similarity for lexical duplicate detection.

Trigram scores follow PostgreSQL ``pg_trgm`` semantics: text is lower-cased,
split into alphanumeric words, each word is padded with two leading blanks and
one trailing blank, and the set of three-character windows is compared.
"""

from __future__ import annotations

import re
from typing import List, Set


_WORD_RE = re.compile(r"[^\W_]+", re.UNICODE)


def _words(text: str) -> List[str]:
    return _WORD_RE.findall(str(text or "").lower())


def _word_trigrams(word: str) -> List[str]:
    padded = f"  {word} "
    return [padded[i : i + 3] for i in range(len(padded) - 2)]


def trigrams(text: str) -> Set[str]:
    """Trigram set of ``text``."""
    grams: Set[str] = set()
    for word in _words(text):
        grams.update(_word_trigrams(word))
    return grams


def _ordered_trigrams(text: str) -> List[str]:
    ordered: List[str] = []
    for word in _words(text):
        ordered.extend(_word_trigrams(word))
    return ordered


def trigram_similarity(a: str, b: str) -> float:
    """Shared trigrams over the union of both trigram sets."""
    ta, tb = trigrams(a), trigrams(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def word_similarity(a: str, b: str) -> float:
    """Best similarity between ``a`` and any contiguous trigram extent of ``b``.

    ``word_similarity("word", "two words")`` is 0.8: the extent of ``b``
    covering "word" shares four of the five trigrams of ``a``.
    """
    ta = trigrams(a)
    ordered = _ordered_trigrams(b)
    if not ta or not ordered:
        return 0.0

    best = 0.0
    for start in range(len(ordered)):
        if ordered[start] not in ta:
            continue
        extent: Set[str] = set()
        shared = 0
        for gram in ordered[start:]:
            if gram not in extent:
                extent.add(gram)
                if gram in ta:
                    shared += 1
            score = shared / (len(ta) + len(extent) - shared)
            if score > best:
                best = score
    return best


def combined_trigram_score(candidate: str, stored: str, floor: float = 0.0) -> float:
    """Greatest of ``similarity`` and both ``word_similarity`` directions.

    ``floor`` lets callers skip the extent scan when the shared-trigram upper
    bound cannot reach it.
    """
    tc, ts = trigrams(candidate), trigrams(stored)
    if not tc or not ts:
        return 0.0
    shared = len(tc & ts)
    if shared == 0:
        return 0.0

    best = shared / len(tc | ts)
    if shared / min(len(tc), len(ts)) < max(floor, best):
        return best
    return max(best, word_similarity(candidate, stored), word_similarity(stored, candidate))
