"""
访问日志中间件

每个请求记录一条开始事件和一条结束事件（含耗时与状态码）。
JSON 请求体按配置截断记录，敏感键由 core.logging_config 的脱敏处理器统一替换。
"""
import json
import time
from typing import Any, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
TRUTHY = frozenset({"1", "true", "yes"})
FALSY = frozenset({"0", "false", "no"})


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        fields: dict[str, Any] = {"query_params": dict(request.query_params)}
        body = await self._body_for_log(request)
        if body is not None:
            fields["body"] = body
        logger.info("request_started", **fields)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - started, 4),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - started
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        # 支付回调以 303 结束，属于正常完成
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("request_finished", status_code=response.status_code, duration=round(duration, 4))
        return response

    async def _body_for_log(self, request: Request) -> Optional[Any]:
        if request.method not in BODY_METHODS or not _body_logging_enabled(request):
            return None
        raw = await request.body()
        if not raw:
            return None
        text = raw[: settings.LOG_REQUEST_BODY_MAX_BYTES].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return text
        try:
            return json.loads(text)
        except ValueError:
            return text


def _body_logging_enabled(request: Request) -> bool:
    """X-Log-Body 请求头优先，其次看 DEBUG 与默认开关"""
    override = (request.headers.get("X-Log-Body") or "").lower()
    if override in TRUTHY:
        return True
    if override in FALSY:
        return False
    return settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT and settings.DEBUG
