"""Structural and content validation for generated candidates."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, Iterable, Optional

from utils.exceptions import ItemValidationError


logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ("question", "answer", "unit", "category", "summary", "sourceName", "sourceUrl")

_TRAILING_FRAGMENT_RE = re.compile(r"\s(the|a|an|of|in|on|at|to|for|with|'s)\s*$", re.IGNORECASE)
_TRUNCATED_RE = re.compile(r"['\"]\s*$")
_QUOTES_RE = re.compile(r"^[\"']|[\"']$")

# Unit labels and the spellings a question may use instead of the label.
UNIT_ALIASES: Dict[str, tuple] = {
    "km": ("kilomet",),
    "m": ("meter", "metre"),
    "cm": ("centimet",),
    "mm": ("millimet",),
    "kg": ("kilogram",),
    "g": ("gram",),
    "t": ("tonne", "ton"),
    "l": ("liter", "litre"),
    "km2": ("square kilomet", "km²", "km^2"),
    "km²": ("square kilomet", "km2"),
    "m2": ("square met", "m²"),
    "mph": ("miles per hour",),
    "km/h": ("kilometers per hour", "kilometres per hour"),
    "km/s": ("kilometers per second", "kilometres per second"),
    "m/s": ("meters per second", "metres per second"),
    "celsius": ("°c", "degrees c"),
    "°c": ("celsius", "degrees c"),
    "fahrenheit": ("°f", "degrees f"),
    "°f": ("fahrenheit", "degrees f"),
    "k": ("kelvin",),
    "usd": ("dollar", "us$", "$"),
    "eur": ("euro", "€"),
    "gbp": ("pound", "£"),
    "%": ("percent", "per cent", "percentage"),
    "percent": ("%", "percentage"),
    "years": ("year",),
    "yrs": ("year",),
    "people": ("population", "persons", "inhabitants", "residents"),
}


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first balanced JSON object embedded in ``text``.

    Providers may wrap the object in commentary or code fences; every ``{`` is
    tried in order and the first one that decodes to an object wins.
    """
    raw = str(text or "")
    decoder = json.JSONDecoder()
    start = raw.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = raw.find("{", start + 1)
    raise ItemValidationError("No JSON object in response", field="response")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def question_mentions_unit(question: str, unit: str) -> bool:
    """Whether the question text names the unit (label or a known spelling)."""
    text = str(question or "").lower()
    label = str(unit or "").strip().lower()
    if not label:
        return False
    if re.search(r"(?<![a-z0-9])" + re.escape(label) + r"(?![a-z0-9])", text):
        return True
    singular = label[:-1] if label.endswith("s") and len(label) > 3 else label
    if len(singular) > 2 and singular in text:
        return True
    return any(alias in text for alias in UNIT_ALIASES.get(label, ()))


def validate_item_payload(
    data: Dict[str, Any],
    required: Iterable[str] = REQUIRED_FIELDS,
    require_unit_in_question: bool = True,
    max_summary_chars: int = 200,
    max_summary_words: int = 10,
) -> Dict[str, Any]:
    """
    Check a parsed full-item payload.

    Raises:
        ItemValidationError: on a missing field, non-numeric answer (numeric
            strings included), unit missing from the question text, or an
            empty summary, one longer than ``max_summary_chars`` characters or
            ``max_summary_words`` words.
    """
    if not isinstance(data, dict):
        raise ItemValidationError("Payload must be a JSON object", field="response")

    for field in required:
        if field not in data:
            raise ItemValidationError(f"Missing field: {field}", field=field)

    if not is_number(data["answer"]):
        raise ItemValidationError(
            f"Answer must be a number, got: {type(data['answer']).__name__}",
            field="answer",
        )

    for field in ("question", "unit", "category", "sourceName", "sourceUrl"):
        if not isinstance(data[field], str) or not data[field].strip():
            raise ItemValidationError(f"Field must be a non-empty string: {field}", field=field)

    summary = data["summary"]
    if not isinstance(summary, str) or not summary.strip():
        raise ItemValidationError("Summary must be a non-empty string", field="summary")
    if len(summary.strip()) > max_summary_chars or summary.strip().startswith("{"):
        raise ItemValidationError(f"Summary has an invalid shape: {summary[:80]!r}", field="summary")
    if len(summary.split()) > max_summary_words:
        raise ItemValidationError(
            f"Summary has more than {max_summary_words} words: {summary[:80]!r}",
            field="summary",
        )

    if require_unit_in_question and not question_mentions_unit(data["question"], data["unit"]):
        raise ItemValidationError(
            f"Question does not mention unit {data['unit']!r}",
            field="question",
        )

    return data


class SummaryValidator:
    """
    Shape checks for a standalone topic summary (Phase 1 output).

    ``clean`` returns the cleaned summary or None; it never raises.
    """

    def __init__(
        self,
        max_chars: int = 200,
        min_chars: int = 10,
        min_words: int = 3,
        max_words: int = 10,
    ):
        self.max_chars = max_chars
        self.min_chars = min_chars
        self.min_words = min_words
        self.max_words = max_words

    def clean(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None

        cleaned = _QUOTES_RE.sub("", str(text).strip()).strip()

        if len(cleaned) > self.max_chars or cleaned.startswith("{"):
            logger.warning(f"Summary rejected as oversized or structured: {cleaned[:60]!r}")
            return None

        # "speed of light" = 14 chars
        if len(cleaned) < self.min_chars:
            logger.warning(f"Summary too short: {cleaned!r}")
            return None

        if _TRUNCATED_RE.search(cleaned) or cleaned.endswith("..."):
            logger.warning(f"Summary looks truncated: {cleaned!r}")
            return None

        if _TRAILING_FRAGMENT_RE.search(cleaned):
            logger.warning(f"Summary ends with incomplete phrase: {cleaned!r}")
            return None

        word_count = len(cleaned.split())
        if word_count < self.min_words:
            logger.warning(f"Summary has too few words ({word_count}): {cleaned!r}")
            return None
        if word_count > self.max_words:
            logger.warning(f"Summary has too many words ({word_count}): {cleaned!r}")
            return None

        return cleaned
