"""
Base LLM
LLM 抽象基类 - 单轮补全 + finish_reason (用于截断检测)
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


# 各供应商表示 "达到 token 上限" 的 finish_reason
TRUNCATION_REASONS = {"max_tokens", "length"}


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass
class Message:
    """提示消息"""
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)


@dataclass
class LLMResponse:
    """LLM 响应"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None

    @property
    def truncated(self) -> bool:
        """是否因 token 上限被截断 (Gemini: MAX_TOKENS, OpenAI 兼容: length)"""
        return str(self.finish_reason or "").strip().lower() in TRUNCATION_REASONS


class BaseLLM(ABC):
    """
    LLM 抽象基类

    供应商实现只需提供 acomplete; 失败直接抛出供应商异常,
    由调用方 (RateLimitClassifier) 根据异常文本分类
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @property
    @abstractmethod
    def provider(self) -> str:
        """返回供应商名称"""

    @abstractmethod
    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        """
        异步生成响应

        Args:
            messages: 消息列表 (可选 system + user)
            **kwargs: temperature, max_tokens 覆盖默认值;
                search_grounding 请求检索增强 (不支持的供应商忽略)
        """

    async def aprompt(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> LLMResponse:
        """单轮提示接口, 返回完整响应 (含 finish_reason)"""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(prompt))
        return await self.acomplete(messages, **kwargs)

    async def aclose(self) -> None:
        """释放底层客户端 (默认 no-op)"""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"
