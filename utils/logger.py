"""
Logger Configuration
统一日志配置 - 各模块使用 logging.getLogger(__name__), 由入口调用 setup_logger 配置 root
"""
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from rich.logging import RichHandler
from rich.console import Console


console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_DIR = Path(__file__).parent.parent / "logs"

# 每个请求都会打 INFO 的第三方库
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "qdrant_client", "google")


def setup_logger(
    name: Optional[str] = None,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称 (None = root)
        level: 日志级别
        log_file: 日志文件名, 写入 logs/ 目录 (可选)
        use_rich: 是否使用 Rich 美化输出
        quiet: 降到 WARNING 的第三方日志器
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for noisy in quiet:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    # 避免重复添加 handler
    if any(getattr(h, "_trivia_handler", False) for h in logger.handlers):
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler.setLevel(level)
    console_handler._trivia_handler = True
    logger.addHandler(console_handler)

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        file_handler._trivia_handler = True
        logger.addHandler(file_handler)

    return logger
