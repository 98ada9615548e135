"""
LLM Factory
工厂函数 - 根据配置自动创建 LLM 实例
"""
from typing import Optional
import logging

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .gemini_llm import GeminiLLM


logger = logging.getLogger(__name__)


# 默认模型配置
DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "kimi": "kimi-k2.5",
}

KIMI_API_BASE = "https://api.moonshot.cn/v1"


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例
    
    自动从 .env 读取配置，也可手动指定
    
    Args:
        provider: LLM 供应商 (gemini, openai, kimi)
        model: 模型名称 (不传则使用默认)
        **kwargs: 额外参数 (api_key, base_url, timeout 等)
        
    Returns:
        BaseLLM 实例
        
    Example:
        # 使用 .env 配置
        llm = get_llm()
        
        # Moonshot Kimi (OpenAI 兼容)
        llm = get_llm(provider="kimi")
    """
    from config import get_llm_settings
    
    settings = get_llm_settings()
    
    provider = (provider or settings.provider).strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)
    
    api_keys = {
        "gemini": settings.gemini_api_key,
        "openai": settings.openai_api_key,
        "kimi": settings.kimi_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)
    kwargs.setdefault("timeout", settings.timeout)
    
    if provider == "gemini":
        return GeminiLLM(model=model, api_key=api_key, **kwargs)
    elif provider == "openai":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None) or settings.base_url,
            **kwargs,
        )
    elif provider == "kimi":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None) or settings.base_url or KIMI_API_BASE,
            provider_name="kimi",
            **kwargs,
        )
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
