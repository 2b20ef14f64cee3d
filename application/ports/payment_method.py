"""
Host-facing payment method protocol.

The host commerce engine talks to a payment method through this fixed set of
operations; none of them raise for business failures.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from application.dtos.payments import (
    InitiationResult,
    RedirectInstruction,
    RefundOutcome,
    SettingsValidation,
)
from domain.payment.entity import Order, Transaction


@runtime_checkable
class PaymentMethod(Protocol):
    slug: str
    supported_features: frozenset[str]

    def meta(self) -> dict[str, Any]: ...

    def is_currency_supported(self, currency: Optional[str]) -> bool: ...

    def validate_settings(self) -> SettingsValidation: ...

    async def initiate_payment(self, order: Order, transaction: Transaction) -> InitiationResult: ...

    async def handle_confirmation_callback(self, params: Mapping[str, Any]) -> RedirectInstruction: ...

    async def handle_cancel(self, params: Mapping[str, Any]) -> RedirectInstruction: ...

    async def refund(self, transaction: Transaction, amount: Optional[int] = None) -> RefundOutcome: ...
