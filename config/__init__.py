"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    Settings,
    LLMSettings,
    EmbeddingSettings,
    StorageSettings,
    GenerationSettings,
    RateLimitSettings,
    get_settings,
    get_llm_settings,
    get_embedding_settings,
    get_storage_settings,
    get_generation_settings,
    get_rate_limit_settings,
)

__all__ = [
    "Settings",
    "LLMSettings",
    "EmbeddingSettings",
    "StorageSettings",
    "GenerationSettings",
    "RateLimitSettings",
    "get_settings",
    "get_llm_settings",
    "get_embedding_settings",
    "get_storage_settings",
    "get_generation_settings",
    "get_rate_limit_settings",
]
