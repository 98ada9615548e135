"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


PROJECT_ROOT = Path(__file__).parent.parent


class LLMSettings(BaseSettings):
    """LLM 配置"""
    provider: str = Field(default="gemini", description="LLM提供商: gemini, openai, kimi")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    base_url: Optional[str] = Field(default=None, description="OpenAI 兼容 API 地址")
    timeout: float = Field(default=60.0, description="请求超时时间(秒)")
    
    # 两阶段生成参数
    summary_temperature: float = Field(default=0.8, description="主题摘要生成温度")
    summary_max_tokens: int = Field(default=64, description="主题摘要最大token数")
    question_temperature: float = Field(default=1.0, description="完整题目生成温度")
    question_max_tokens: int = Field(default=2048, description="完整题目最大token数")
    question_search_grounding: bool = Field(default=True, description="完整题目生成启用 Google Search 检索 (仅 Gemini)")
    
    # API Keys
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    kimi_api_key: Optional[str] = Field(default=None, description="Moonshot Kimi API Key")
    
    class Config:
        env_prefix = "LLM_"


class EmbeddingSettings(BaseSettings):
    """Embedding 服务配置"""
    provider: str = Field(default="gemini", description="Embedding提供商: gemini, openai, hashing")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    dimension: int = Field(default=768, description="向量维度")
    
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    
    class Config:
        env_prefix = "EMBEDDING_"


class StorageSettings(BaseSettings):
    """存储配置"""
    qdrant_path: Optional[str] = Field(default="./data/qdrant_db", description="本地持久化目录")
    qdrant_url: Optional[str] = Field(default=None, description="Qdrant Cloud URL")
    qdrant_api_key: Optional[str] = Field(default=None, description="Qdrant Cloud API Key")
    collection_name: str = Field(default="trivia_items", description="题目集合名称")
    scan_batch_size: int = Field(default=256, description="三元组相似度扫描的分页大小")
    
    class Config:
        env_prefix = "STORAGE_"


class GenerationSettings(BaseSettings):
    """生成流水线配置"""
    target_active_items: int = Field(default=100, description="目标 active 题目数量")
    budget_seconds: float = Field(default=55.0, description="单次运行的墙钟预算(秒)")
    pause_seconds: float = Field(default=1.0, description="两次生成之间的间隔(秒)")
    
    # 去重阈值 (经验值)
    lexical_threshold: float = Field(default=0.4, description="三元组相似度阈值")
    embedding_threshold: float = Field(default=0.85, description="向量余弦相似度阈值")
    
    # 摘要校验
    summary_attempts: int = Field(default=3, description="摘要生成最大尝试次数")
    summary_max_chars: int = Field(default=200, description="摘要最大长度")
    summary_min_chars: int = Field(default=10, description="摘要最小长度")
    summary_min_words: int = Field(default=3, description="摘要最少单词数")
    summary_max_words: int = Field(default=10, description="摘要最多单词数")
    
    # 来源链接校验
    source_check_timeout: float = Field(default=5.0, description="来源链接检查超时(秒)")
    source_check_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; TriviaPipeline-Bot/1.0)",
        description="来源链接检查 User-Agent",
    )
    
    require_unit_in_question: bool = Field(default=True, description="题干必须包含单位")
    prompts_dir: str = Field(default=str(PROJECT_ROOT / "prompts"), description="提示词目录")
    
    class Config:
        env_prefix = "GENERATION_"


class RateLimitSettings(BaseSettings):
    """限流识别配置"""
    daily_threshold_seconds: float = Field(default=300.0, description="超过该等待时间视为日限额")
    default_wait_seconds: float = Field(default=60.0, description="无明确时长时的分钟级等待")
    daily_wait_seconds: float = Field(default=3600.0, description="日限额的标记等待时长")
    
    class Config:
        env_prefix = "RATE_LIMIT_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""
    
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
    
    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"
        
        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)
        
        return cls(
            llm=LLMSettings(),
            embedding=EmbeddingSettings(),
            storage=StorageSettings(),
            generation=GenerationSettings(),
            rate_limit=RateLimitSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_embedding_settings() -> EmbeddingSettings:
    return get_settings().embedding


def get_storage_settings() -> StorageSettings:
    return get_settings().storage


def get_generation_settings() -> GenerationSettings:
    return get_settings().generation


def get_rate_limit_settings() -> RateLimitSettings:
    return get_settings().rate_limit
