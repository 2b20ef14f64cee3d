"""
LINE Pay v3 adapter over httpx.

Implements the three calls of the redirect flow (request, confirm, refund).
Every call is HMAC-signed with a fresh nonce and classified into exactly one
of: success ("0000"), ProviderError (any other returnCode or a malformed
body) or TransportError (the HTTP call did not complete).
"""
from __future__ import annotations

from typing import Any, Callable, Optional

import httpx

from application.dtos.payments import (
    PaymentRequest,
    PaymentRequestResult,
    ProviderResponse,
)
from application.ports.audit_log import AuditLog
from application.ports.credentials import CredentialStore
from application.ports.payment_gateway import PaymentGateway
from core.settings import payment_settings
from core.logging_config import get_logger
from infrastructure.adapters.audit_log import StructlogAuditLog
from infrastructure.adapters.credential_store import SettingsCredentialStore
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    ConfigurationError,
    ProviderError,
    TransportError,
)
from infrastructure.external.payments.signing import canonical_json, new_nonce, sign
from shared.codes.payment_codes import LINEPAY_RETURN_CODES


logger = get_logger(__name__)

REQUEST_URI = "/v3/payments/request"
CONFIRM_URI = "/v3/payments/{transaction_id}/confirm"
REFUND_URI = "/v3/payments/{transaction_id}/refund"


class LinePayClient(BasePaymentClient, PaymentGateway):
    provider = "linepay"

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        *,
        audit_log: Optional[AuditLog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        nonce_factory: Callable[[], str] = new_nonce,
    ):
        super().__init__(
            timeouts=payment_settings.timeouts,
            transport=transport,
        )
        self.credentials = credentials or SettingsCredentialStore()
        self.audit_log = audit_log or StructlogAuditLog()
        self._nonce_factory = nonce_factory

    async def request_payment(self, req: PaymentRequest) -> PaymentRequestResult:
        payload: dict[str, Any] = {
            "amount": req.amount,
            "currency": req.currency,
            "orderId": req.order_id,
            "packages": [
                {
                    "id": f"pkg_{req.order_id}",
                    "amount": req.amount,
                    "products": [p.to_payload() for p in req.products],
                }
            ],
            "redirectUrls": {
                "confirmUrl": req.confirm_url,
                "cancelUrl": req.cancel_url,
            },
        }
        if req.auto_capture:
            payload["options"] = {"payment": {"capture": True}}

        response = await self._post(REQUEST_URI, payload, operation="request")
        info = response.info or {}
        transaction_id = info.get("transactionId")
        payment_url = (info.get("paymentUrl") or {}).get("web")
        if not transaction_id or not payment_url:
            raise ProviderError(
                "LINE Pay response is missing transactionId or paymentUrl",
                provider=self.provider,
                provider_code=response.return_code,
            )
        self._log("linepay_payment_requested", order_id=req.order_id, transaction_id=str(transaction_id))
        return PaymentRequestResult(
            transaction_id=str(transaction_id),
            payment_url=str(payment_url),
            response=response,
        )

    async def confirm_payment(self, transaction_id: str, amount: int, currency: str) -> ProviderResponse:
        uri = CONFIRM_URI.format(transaction_id=transaction_id)
        return await self._post(uri, {"amount": amount, "currency": currency}, operation="confirm")

    async def refund_payment(self, transaction_id: str, refund_amount: Optional[int] = None) -> ProviderResponse:
        uri = REFUND_URI.format(transaction_id=transaction_id)
        payload: dict[str, Any] = {}
        # No refundAmount means "refund everything" to LINE Pay
        if refund_amount is not None:
            payload["refundAmount"] = refund_amount
        return await self._post(uri, payload, operation="refund")

    # Helpers
    def _require_credentials(self) -> tuple[str, str, str]:
        mode = self.credentials.get_mode()
        channel_id = self.credentials.get_channel_id(mode)
        channel_secret = self.credentials.get_channel_secret(mode)
        if not channel_id or not channel_secret:
            self._audit("linepay_config_error", {"mode": mode, "error": "Channel ID or Secret is missing"}, level="error")
            raise ConfigurationError("LINE Pay settings are incomplete", provider=self.provider, mode=mode)
        return channel_id, channel_secret, self.credentials.get_api_base_url(mode)

    def _build_headers(self, channel_id: str, channel_secret: str, uri: str, body: bytes) -> dict[str, str]:
        nonce = self._nonce_factory()
        return {
            "Content-Type": "application/json",
            "X-LINE-ChannelId": channel_id,
            "X-LINE-Authorization-Nonce": nonce,
            "X-LINE-Authorization": sign(channel_secret, uri, body, nonce),
        }

    async def _post(self, uri: str, payload: dict[str, Any], *, operation: str) -> ProviderResponse:
        channel_id, channel_secret, base_url = self._require_credentials()
        body = canonical_json(payload)
        headers = self._build_headers(channel_id, channel_secret, uri, body)
        url = base_url.rstrip("/") + uri

        self._audit(
            "linepay_api_request",
            {
                "operation": operation,
                "url": url,
                "nonce": headers["X-LINE-Authorization-Nonce"],
                "body": payload,
            },
        )

        try:
            resp = await self._send(url, content=body, headers=headers)
        except httpx.TransportError as exc:
            message = str(exc) or type(exc).__name__
            self._audit("linepay_api_error", {"operation": operation, "url": url, "error": message}, level="error")
            logger.error("linepay_transport_error", operation=operation, error=message)
            raise TransportError(message, provider=self.provider, details={"operation": operation}) from exc

        try:
            data = resp.json()
        except ValueError:
            data = None

        self._audit(
            "linepay_api_response",
            {
                "operation": operation,
                "status_code": resp.status_code,
                "return_code": data.get("returnCode") if isinstance(data, dict) else None,
                "return_message": data.get("returnMessage") if isinstance(data, dict) else None,
                "full_response": data if data is not None else resp.text,
            },
            level="info" if resp.is_success else "error",
        )

        if not isinstance(data, dict) or "returnCode" not in data:
            raise ProviderError(
                f"Unexpected LINE Pay response (HTTP {resp.status_code})",
                provider=self.provider,
                details={"operation": operation, "status_code": resp.status_code},
            )

        info = data.get("info")
        parsed = ProviderResponse(
            return_code=str(data["returnCode"]),
            return_message=str(data.get("returnMessage") or ""),
            info=info if isinstance(info, dict) else None,
            raw=data,
        )
        if not parsed.is_success:
            logger.warning(
                "linepay_provider_error",
                operation=operation,
                return_code=parsed.return_code,
                return_message=parsed.return_message,
                description=LINEPAY_RETURN_CODES.get(parsed.return_code, "Unknown"),
            )
            raise ProviderError(
                parsed.return_message or "LINE Pay request failed",
                provider=self.provider,
                provider_code=parsed.return_code,
                details={"operation": operation},
            )
        return parsed

    def _audit(self, event: str, payload: dict[str, Any], *, level: str = "info") -> None:
        try:
            self.audit_log.record(event, payload, level, {"log_type": "payment", "provider": self.provider})
        except Exception as exc:
            logger.warning("audit_record_failed", audit_event=event, error=str(exc))
