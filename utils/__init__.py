"""
Utils Module
通用工具函数
"""
from .logger import setup_logger
from .exceptions import (
    TriviaPipelineError,
    ConfigurationError,
    StorageError,
    ItemConflictError,
    EmbeddingError,
    LLMError,
    TruncatedResponseError,
    ItemValidationError,
    SourceUrlError,
    DuplicateTopicError,
)

__all__ = [
    "setup_logger",
    "TriviaPipelineError",
    "ConfigurationError",
    "StorageError",
    "ItemConflictError",
    "EmbeddingError",
    "LLMError",
    "TruncatedResponseError",
    "ItemValidationError",
    "SourceUrlError",
    "DuplicateTopicError",
]
