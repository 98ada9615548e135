"""
Google Gemini LLM
"""
from typing import List, Optional, Tuple
import logging

from .base import BaseLLM, Message, MessageRole, LLMResponse


logger = logging.getLogger(__name__)

# Google Search 检索工具 (google-generativeai 的内置工具名)
SEARCH_GROUNDING_TOOL = "google_search_retrieval"


class GeminiLLM(BaseLLM):
    """
    Google Gemini 单轮补全

    finish_reason 取枚举名 (STOP / MAX_TOKENS / SAFETY ...);
    search_grounding=True 时挂载 Google Search 检索工具 (完整题目生成, 答案可经检索核实);
    被截断或拦截的响应没有文本 parts, content 置为空串
    """

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
    ):
        super().__init__(model, temperature, max_tokens, timeout)
        self.api_key = api_key

    @property
    def provider(self) -> str:
        return "gemini"

    @staticmethod
    def _split_messages(messages: List[Message]) -> Tuple[Optional[str], str]:
        """(system_instruction, 拼接后的 user 文本)"""
        system = [m.content for m in messages if m.role == MessageRole.SYSTEM]
        user = [m.content for m in messages if m.role == MessageRole.USER]
        return ("\n\n".join(system) or None), "\n\n".join(user)

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        system_instruction, prompt = self._split_messages(messages)

        model = genai.GenerativeModel(
            model_name=self.model,
            generation_config={
                "temperature": kwargs.get("temperature", self.temperature),
                "max_output_tokens": kwargs.get("max_tokens", self.max_tokens),
            },
            system_instruction=system_instruction,
            tools=SEARCH_GROUNDING_TOOL if kwargs.get("search_grounding") else None,
        )
        response = await model.generate_content_async(
            prompt,
            request_options={"timeout": self.timeout},
        )

        # response.text 在没有 parts 时 (截断/安全拦截) 抛出 ValueError
        try:
            content = response.text or ""
        except ValueError:
            content = ""

        finish_reason = None
        if response.candidates:
            reason = response.candidates[0].finish_reason
            finish_reason = getattr(reason, "name", str(reason))
        if not content:
            logger.warning(f"Gemini returned no text (finish_reason={finish_reason})")

        usage = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata:
            usage = {
                "prompt_tokens": metadata.prompt_token_count,
                "completion_tokens": metadata.candidates_token_count,
                "total_tokens": metadata.total_token_count,
            }

        return LLMResponse(
            content=content,
            model=self.model,
            usage=usage,
            finish_reason=finish_reason,
            raw_response=response,
        )
