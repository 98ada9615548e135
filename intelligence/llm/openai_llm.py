"""
OpenAI-compatible LLM
OpenAI 及兼容接口 (Moonshot Kimi 等, 通过 base_url)
"""
from typing import List, Optional
import logging

from .base import BaseLLM, Message, LLMResponse


logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """
    OpenAI Chat Completions 单轮补全

    SDK 自带重试关闭 (max_retries=0): 429 等错误原样抛出,
    由流水线的限流分类器决定等待还是停止
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        provider_name: str = "openai",
    ):
        super().__init__(model, temperature, max_tokens, timeout)
        self.api_key = api_key
        self.base_url = base_url
        self._provider_name = provider_name
        self._client = None

    @property
    def provider(self) -> str:
        return self._provider_name

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[m.to_dict() for m in messages],
            temperature=kwargs.get("temperature", self.temperature),
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
        )

        choice = response.choices[0]
        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model or self.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            raw_response=response,
        )

    async def aclose(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.close()
        except Exception as exc:
            logger.debug(f"Failed to close {self.provider} client: {exc}")
        self._client = None
