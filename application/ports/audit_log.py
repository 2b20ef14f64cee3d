"""
Audit trail port. Fire-and-forget: a failing sink never changes a payment result.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class AuditLog(Protocol):
    def record(
        self,
        event: str,
        payload: Any,
        level: str = "info",
        tags: Optional[dict[str, Any]] = None,
    ) -> None: ...
