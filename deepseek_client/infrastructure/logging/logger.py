import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from deepseek_client.config.settings import settings


class JsonFormatter(logging.Formatter):
    """把日志记录格式化为单行 JSON，`extra={"extra": {...}}` 中的字段会并入输出。"""

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if settings.log_redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("deepseek_client")
    logger.setLevel(settings.log_level)
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "client.log", encoding="utf-8")
    fh.setLevel(settings.log_level)
    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


def redact(text: str, limit: int = 64) -> str:
    """按配置截断写入日志的正文内容。"""

    if settings.log_redact_content:
        return text[:limit]
    return text


logger = setup_logger()
