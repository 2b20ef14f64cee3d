"""
AuditLog adapter writing to a dedicated structlog logger.
"""
from __future__ import annotations

from typing import Any, Optional

from application.ports.audit_log import AuditLog
from core.logging_config import get_logger


_LEVELS = {"debug", "info", "warning", "error", "critical"}


class StructlogAuditLog(AuditLog):
    def __init__(self, name: str = "audit.payments") -> None:
        self._logger = get_logger(name)

    def record(
        self,
        event: str,
        payload: Any,
        level: str = "info",
        tags: Optional[dict[str, Any]] = None,
    ) -> None:
        method = level if level in _LEVELS else "info"
        getattr(self._logger, method)(event, payload=payload, **(tags or {}))
