"""Rate-limit classification of provider failure messages.

Providers report throttling as free text with no fixed schema, so the
classification is heuristic. Ambiguous messages lean toward the short
(per-minute) horizon so a run is not abandoned early.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Pattern, Sequence, Union

from core import RateLimitSignal


logger = logging.getLogger(__name__)


_UNIT = r"(hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)\b"

RATE_LIMIT_MARKERS: Pattern[str] = re.compile(
    r"\b429\b|resource[_ ]exhausted|quota|rate[ _-]?limit|\brate\b|too many requests|retry[ -]after",
    re.IGNORECASE,
)

WAIT_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"retry\s*(?:after|in)\s*([\d.]+)\s*" + _UNIT, re.IGNORECASE),
    re.compile(r"wait\s*([\d.]+)\s*" + _UNIT, re.IGNORECASE),
    re.compile(r"try\s*again\s*in\s*([\d.]+)\s*" + _UNIT, re.IGNORECASE),
    re.compile(r"([\d.]+)\s*" + _UNIT + r"\s*(?:remaining|left|until)", re.IGNORECASE),
    # Gemini: "retryDelay": "37s" / retry_delay { seconds: 37 }
    re.compile(r"retry[_ ]?delay[\"'\s:{]*(?:seconds[\s:]*)?\"?([\d.]+)\s*(s)?", re.IGNORECASE),
)

DAILY_MARKERS: Pattern[str] = re.compile(
    r"daily|per.?day|24.?h|\bRPD\b|requests?.?per.?day",
    re.IGNORECASE,
)

NOT_RATE_LIMITED = RateLimitSignal(is_rate_limit=False, wait_ms=0.0, is_daily=False)


def _to_ms(value: float, unit: Optional[str]) -> float:
    unit = (unit or "s").lower()
    if unit.startswith("h"):
        return value * 60 * 60 * 1000
    if unit.startswith("m"):
        return value * 60 * 1000
    return value * 1000


class RateLimitClassifier:
    """
    Decide whether a failure is a rate limit and how long to back off.

    An explicit duration in the message wins; the run is treated as
    daily-limited when that duration exceeds ``daily_threshold_ms``.
    Without a duration, daily keywords tag the failure with
    ``daily_wait_ms`` (a signal for the scheduler to halt), anything else
    waits ``default_wait_ms``.
    """

    def __init__(
        self,
        daily_threshold_ms: float = 5 * 60 * 1000,
        default_wait_ms: float = 60 * 1000,
        daily_wait_ms: float = 60 * 60 * 1000,
        wait_patterns: Optional[Iterable[Pattern[str]]] = None,
    ) -> None:
        self.daily_threshold_ms = float(daily_threshold_ms)
        self.default_wait_ms = float(default_wait_ms)
        self.daily_wait_ms = float(daily_wait_ms)
        self.wait_patterns = tuple(wait_patterns) if wait_patterns is not None else tuple(WAIT_PATTERNS)

    @classmethod
    def from_settings(cls, settings) -> "RateLimitClassifier":
        return cls(
            daily_threshold_ms=settings.daily_threshold_seconds * 1000,
            default_wait_ms=settings.default_wait_seconds * 1000,
            daily_wait_ms=settings.daily_wait_seconds * 1000,
        )

    def extract_wait_ms(self, message: str) -> Optional[float]:
        for pattern in self.wait_patterns:
            match = pattern.search(message)
            if not match:
                continue
            try:
                value = float(match.group(1))
            except ValueError:
                continue
            return _to_ms(value, match.group(2))
        return None

    def classify(self, error: Union[BaseException, str, None]) -> RateLimitSignal:
        """Classify an exception or message. Pure: same input, same output."""
        message = str(error or "")
        if not RATE_LIMIT_MARKERS.search(message):
            return NOT_RATE_LIMITED

        wait_ms = self.extract_wait_ms(message)
        if wait_ms is not None:
            is_daily = wait_ms > self.daily_threshold_ms
            logger.debug("rate_limit parsed wait_ms=%.0f daily=%s", wait_ms, is_daily)
            return RateLimitSignal(is_rate_limit=True, wait_ms=wait_ms, is_daily=is_daily)

        is_daily = bool(DAILY_MARKERS.search(message))
        wait_ms = self.daily_wait_ms if is_daily else self.default_wait_ms
        logger.debug("rate_limit default wait_ms=%.0f daily=%s", wait_ms, is_daily)
        return RateLimitSignal(is_rate_limit=True, wait_ms=wait_ms, is_daily=is_daily)


_default_classifier = RateLimitClassifier()


def classify_rate_limit(error: Union[BaseException, str, None]) -> RateLimitSignal:
    """Classify with the default thresholds."""
    return _default_classifier.classify(error)
