"""
Intelligence Module
智能层 - LLM 抽象
"""
from .llm import (
    BaseLLM,
    LLMResponse,
    Message,
    GeminiLLM,
    OpenAILLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "GeminiLLM",
    "OpenAILLM",
    "get_llm",
]
