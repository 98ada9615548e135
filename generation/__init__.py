"""Adaptive trivia generation pipeline."""

from .duplicates import DuplicateCheck, DuplicateDetector
from .generator import TwoPhaseGenerator
from .prompts import PromptSet, load_prompts
from .rate_limit import RateLimitClassifier, classify_rate_limit
from .scheduler import GenerationScheduler
from .sink import ItemSink, PersistResult
from .source_check import SourceUrlChecker
from .validator import SummaryValidator, extract_json_object, validate_item_payload

__all__ = [
    "DuplicateCheck",
    "DuplicateDetector",
    "TwoPhaseGenerator",
    "PromptSet",
    "load_prompts",
    "RateLimitClassifier",
    "classify_rate_limit",
    "GenerationScheduler",
    "ItemSink",
    "PersistResult",
    "SourceUrlChecker",
    "SummaryValidator",
    "extract_json_object",
    "validate_item_payload",
]
