"""
Shared HTTP plumbing for provider clients: one pooled httpx.AsyncClient per
client instance with bounded timeouts. No retries: a payment request that
timed out may still have been accepted upstream.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from core.settings import PaymentTimeouts


logger = get_logger(__name__)


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        timeouts: Optional[PaymentTimeouts] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeouts = timeouts or PaymentTimeouts()
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        cfg = self._timeouts
        return httpx.Timeout(cfg.total, connect=cfg.connect, read=cfg.read, write=cfg.write)

    @property
    def http(self) -> httpx.AsyncClient:
        """Lazily created; reused across calls until aclose()."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeouts, transport=self._transport)
        return self._http

    async def _send(self, url: str, *, content: bytes, headers: dict[str, str]) -> httpx.Response:
        return await self.http.post(url, content=content, headers=headers)

    async def aclose(self) -> None:
        if self._http is not None:
            http, self._http = self._http, None
            await http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _log(self, event: str, **kwargs: Any) -> None:
        logger.info(event, provider=self.provider, **kwargs)
