"""
Custom Exceptions
自定义异常类
"""


class TriviaPipelineError(Exception):
    """题目生成流水线基础异常类"""
    
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)
    
    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(TriviaPipelineError):
    """配置错误"""
    pass


class StorageError(TriviaPipelineError):
    """存储错误"""
    pass


class ItemConflictError(StorageError):
    """同一 ID 已存在且内容不同"""
    
    def __init__(self, message: str, item_id: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.item_id = item_id


class EmbeddingError(TriviaPipelineError):
    """向量化错误"""
    
    def __init__(self, message: str, model: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.model = model


class LLMError(TriviaPipelineError):
    """LLM 调用错误"""
    
    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class TruncatedResponseError(LLMError):
    """响应因 token 上限被截断"""
    pass


class ItemValidationError(TriviaPipelineError):
    """候选题目校验失败"""
    
    def __init__(self, message: str, field: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.field = field


class SourceUrlError(ItemValidationError):
    """来源链接不可达"""
    
    def __init__(self, message: str, url: str = None, **kwargs):
        super().__init__(message, field="sourceUrl", **kwargs)
        self.url = url


class DuplicateTopicError(TriviaPipelineError):
    """主题与已有题目重复"""
    
    def __init__(self, message: str, match=None):
        super().__init__(message)
        self.match = match
