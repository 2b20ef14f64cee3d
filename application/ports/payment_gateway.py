"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from application.dtos.payments import (
    PaymentRequest,
    PaymentRequestResult,
    ProviderResponse,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the redirect-based provider (request/confirm/refund).

    Implementations raise ConfigurationError, TransportError or ProviderError;
    anything returned is a provider success ("0000").
    """

    provider: str

    async def request_payment(self, req: PaymentRequest) -> PaymentRequestResult: ...

    async def confirm_payment(self, transaction_id: str, amount: int, currency: str) -> ProviderResponse: ...

    async def refund_payment(self, transaction_id: str, refund_amount: Optional[int] = None) -> ProviderResponse: ...
