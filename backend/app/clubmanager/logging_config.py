import logging
import re
import sys
from pathlib import Path
from typing import Optional

from clubmanager.core.config import settings

# 登录链接中的令牌和 Bearer 凭证不能完整写入日志
_SECRET_PATTERNS = [
    re.compile(r"(token=)([A-Za-z0-9_\-]{6})[A-Za-z0-9_\-]*"),
    re.compile(r"(Bearer )([A-Za-z0-9_\-]{6})[A-Za-z0-9_\-.]*"),
]


class RedactSecretsFilter(logging.Filter):
    """只保留令牌 / 凭证的前 6 个字符"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(r"\1\2...", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(level: Optional[int] = None, log_dir: Optional[str] = None):
    """配置日志"""
    level = level if level is not None else logging.getLevelName(settings.LOG_LEVEL.upper())
    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    redact = RedactSecretsFilter()
    file_handler = logging.FileHandler(log_path / "app.log", encoding="utf-8")
    stream_handler = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, stream_handler):
        handler.addFilter(redact)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[file_handler, stream_handler],
        force=True,
    )

    # 设置第三方库的日志级别
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger("clubmanager")
    logger.info(f"日志已写入 {log_path / 'app.log'}")
    return logger
