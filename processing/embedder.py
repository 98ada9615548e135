"""
Embedder
文本向量化模块 - 支持多种 Embedding 提供商
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Union
import asyncio
import hashlib
import logging
import os
import re

import numpy as np

from utils.exceptions import EmbeddingError


logger = logging.getLogger(__name__)


def _ensure_text_list(texts: Union[str, List[str]]) -> List[str]:
    return [texts] if isinstance(texts, str) else list(texts)


def _batched(items: List[str], batch_size: int):
    for i in range(0, len(items), batch_size):
        yield items[i : i + batch_size]


class BaseEmbedder(ABC):
    """
    Embedder 抽象基类
    """

    def __init__(self, model_name: str):
        self.model_name = model_name
        self._model = None

    @property
    @abstractmethod
    def dimension(self) -> int:
        """返回向量维度"""

    @abstractmethod
    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        """
        同步嵌入文本

        Args:
            texts: 单个文本或文本列表

        Returns:
            向量数组 (n_texts, dimension)
        """

    async def aembed(self, texts: Union[str, List[str]]) -> np.ndarray:
        """
        异步嵌入文本 (在线程池中执行同步实现)

        Args:
            texts: 单个文本或文本列表

        Returns:
            向量数组
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.embed, texts)

    def embed_query(self, query: str) -> List[float]:
        """嵌入单条文本并返回 list (用于存储和向量检索)"""
        return self.embed(query)[0].tolist()

    async def aembed_query(self, query: str) -> List[float]:
        vectors = await self.aembed(query)
        return vectors[0].tolist()


class GeminiEmbedder(BaseEmbedder):
    """
    Google Gemini Embeddings
    默认 gemini-embedding-001, 输出维度截断为 768 以匹配存储 schema
    """

    def __init__(
        self,
        model_name: str = "gemini-embedding-001",
        api_key: Optional[str] = None,
        dimension: int = 768,
        task_type: str = "SEMANTIC_SIMILARITY",
    ):
        super().__init__(model_name)
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self._dimension = dimension
        self.task_type = task_type

    @property
    def dimension(self) -> int:
        return self._dimension

    def _model_path(self) -> str:
        return self.model_name if self.model_name.startswith("models/") else f"models/{self.model_name}"

    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        """嵌入文本"""
        if not self.api_key:
            raise EmbeddingError(
                "Gemini API key not set. Set EMBEDDING_GEMINI_API_KEY or GEMINI_API_KEY.",
                model=self.model_name,
            )

        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        text_list = _ensure_text_list(texts)
        try:
            result = genai.embed_content(
                model=self._model_path(),
                content=text_list,
                task_type=self.task_type,
                output_dimensionality=self._dimension,
            )
        except Exception as exc:
            raise EmbeddingError(f"Gemini embedding error: {exc}", model=self.model_name)

        vectors = result["embedding"]
        if text_list and vectors and not isinstance(vectors[0], (list, tuple)):
            vectors = [vectors]
        return np.array(vectors, dtype=float)


class OpenAIEmbedder(BaseEmbedder):
    """
    OpenAI Embeddings API
    """

    def __init__(
        self,
        model_name: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimension: int = 768,
        batch_size: int = 100,
    ):
        """
        初始化 OpenAI Embedder

        Args:
            model_name: 模型名称
            api_key: API Key (不传则从环境变量读取)
            base_url: API Base URL (支持兼容 API)
            dimension: 请求的输出维度 (text-embedding-3 系列支持截断)
            batch_size: 批处理大小
        """
        super().__init__(model_name)
        self.api_key = api_key
        self.base_url = base_url
        self._dimension = dimension
        self.batch_size = batch_size
        self._client = None

    def _get_client(self):
        """获取 OpenAI 客户端"""
        if self._client is None:
            from openai import OpenAI

            kwargs = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = OpenAI(**kwargs)

        return self._client

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        """嵌入文本"""
        client = self._get_client()
        text_list = _ensure_text_list(texts)
        all_embeddings: List[List[float]] = []

        for batch in _batched(text_list, self.batch_size):
            try:
                response = client.embeddings.create(
                    input=batch,
                    model=self.model_name,
                    dimensions=self._dimension,
                )
                all_embeddings.extend([item.embedding for item in response.data])
            except Exception as exc:
                raise EmbeddingError(
                    f"OpenAI API error: {exc}",
                    model=self.model_name,
                )

        return np.array(all_embeddings)


class HashingEmbedder(BaseEmbedder):
    """
    本地确定性 Embedder: 哈希词袋 + L2 归一化
    无需网络, 用于离线开发与测试; 相同文本总是得到相同向量
    """

    def __init__(self, model_name: str = "hashing-bow", dimension: int = 768):
        super().__init__(model_name)
        self._dimension = max(8, int(dimension))

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> List[float]:
        vec = [0.0] * self._dimension
        for token in re.findall(r"[a-z0-9]+", str(text or "").lower()):
            digest = hashlib.sha1(token.encode("utf-8")).hexdigest()
            vec[int(digest[:8], 16) % self._dimension] += 1.0
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec = [value / norm for value in vec]
        return vec

    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        return np.array([self._vector(text) for text in _ensure_text_list(texts)], dtype=float)


# 工厂函数
def get_embedder(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    **kwargs,
) -> BaseEmbedder:
    """
    获取 Embedder 实例

    优先级: 函数参数 > .env 配置 > 默认值

    Args:
        provider: 提供商 (不传则从 .env 读取 EMBEDDING_PROVIDER)
            - "gemini": Google Gemini (默认, 768 维)
            - "openai": OpenAI API
            - "hashing": 本地哈希词袋 (离线)
        model_name: 模型名称 (不传则从 .env 读取 EMBEDDING_MODEL_NAME)
        **kwargs: 额外参数

    Returns:
        Embedder 实例
    """
    from config import get_embedding_settings

    settings = get_embedding_settings()
    provider_name = (provider or settings.provider or "gemini").strip().lower()
    kwargs.setdefault("dimension", settings.dimension)

    if provider_name == "gemini":
        kwargs.setdefault("api_key", settings.gemini_api_key)
        return GeminiEmbedder(model_name or settings.model_name or "gemini-embedding-001", **kwargs)
    if provider_name == "openai":
        kwargs.setdefault("api_key", settings.openai_api_key)
        return OpenAIEmbedder(model_name or settings.model_name or "text-embedding-3-small", **kwargs)
    if provider_name == "hashing":
        return HashingEmbedder(model_name or settings.model_name or "hashing-bow", **kwargs)

    raise ValueError(f"Unknown provider: {provider_name}. Supported: gemini, openai, hashing")
