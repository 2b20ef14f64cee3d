"""
Structlog 日志配置模块

DEBUG 时输出彩色控制台日志，其余环境输出 JSON；标准库 logging 通过
ProcessorFormatter 汇入同一处理链。支付相关的敏感键在渲染前统一脱敏。
"""
import json
import logging
from typing import Any, List, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


# 第三方库中过于啰嗦的 logger
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")

# 任意层级出现即替换为 ***
REDACTED_KEYS = frozenset({
    "channel_secret",
    "test_channel_secret",
    "live_channel_secret",
    "x-line-authorization",
    "authorization",
    "secret",
    "token",
    "api_key",
})


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: "***" if str(k).lower() in REDACTED_KEYS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor：渠道密钥与签名头永不落盘。"""
    return _redact(event_dict)


def get_renderer(debug: bool) -> Any:
    if debug:
        return ConsoleRenderer(colors=True)

    # structlog 会向 serializer 传入 default 等参数
    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)
    return JSONRenderer(serializer=_dumps)


def configure_logging(debug: Optional[bool] = None) -> None:
    """配置 structlog 并桥接标准库 logging；可重复调用。"""
    debug = settings.DEBUG if debug is None else debug

    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=shared_pre_chain,
            processors=[ProcessorFormatter.remove_processors_meta, get_renderer(debug)],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)


configure_logging()
