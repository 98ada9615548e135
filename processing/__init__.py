"""
Processing Module
文本处理模块 - 三元组相似度、向量化
"""
from .similarity import (
    trigrams,
    trigram_similarity,
    word_similarity,
    combined_trigram_score,
)
from .embedder import (
    BaseEmbedder,
    GeminiEmbedder,
    OpenAIEmbedder,
    HashingEmbedder,
    get_embedder,
)

__all__ = [
    # Similarity
    "trigrams",
    "trigram_similarity",
    "word_similarity",
    "combined_trigram_score",
    # Embedder
    "BaseEmbedder",
    "GeminiEmbedder",
    "OpenAIEmbedder",
    "HashingEmbedder",
    "get_embedder",
]
