"""
Application service exposing LINE Pay as a host payment method.

This class depends only on application ports and DTOs. Gateway, credential
store and unit-of-work implementations are provided by infrastructure and
must be injected from the composition root (API), keeping dependencies
one-way.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from application.dtos.payments import (
    CheckoutUrls,
    InitiationResult,
    RedirectInstruction,
    RefundOutcome,
    SettingsValidation,
)
from application.ports.credentials import CredentialStore
from application.ports.payment_gateway import PaymentGateway
from application.services.cancellation_handler import CancellationHandler
from application.services.confirmation_handler import ConfirmationHandler
from application.services.payment_initiator import PaymentInitiator
from application.services.refund_handler import RefundHandler
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import Order, Transaction
from domain.payment.money import SUPPORTED_CURRENCY, is_supported_currency


logger = get_logger(__name__)


class PaymentService:
    slug = "linepay"
    supported_features = frozenset({"payment", "refund"})

    def __init__(
        self,
        gateway: PaymentGateway,
        uow_factory: Callable[..., AbstractUnitOfWork],
        urls: CheckoutUrls,
        credentials: CredentialStore,
    ) -> None:
        self.gateway = gateway
        self.credentials = credentials
        self.initiator = PaymentInitiator(gateway, uow_factory, urls, credentials)
        self.confirmation = ConfirmationHandler(gateway, uow_factory, urls)
        self.cancellation = CancellationHandler(uow_factory, urls)
        self.refunds = RefundHandler(gateway)

    def meta(self) -> dict[str, Any]:
        return {
            "title": "LINE Pay",
            "slug": self.slug,
            "route": self.slug,
            "description": "Pay securely with LINE Pay",
            "brand_color": "#00C300",
            "status": bool(self.credentials.get("is_active")),
            "mode": self.credentials.get_mode(),
            "payment_language": self.credentials.get("payment_language"),
            "supported_features": sorted(self.supported_features),
            "supported_currency": SUPPORTED_CURRENCY,
            "settings_valid": self.validate_settings().status == "success",
        }

    def is_currency_supported(self, currency: Optional[str]) -> bool:
        """Only a TWD store may offer LINE Pay."""
        return is_supported_currency(currency)

    def validate_settings(self) -> SettingsValidation:
        mode = self.credentials.get_mode()
        missing = [
            name
            for name, value in (
                (f"{mode}_channel_id", self.credentials.get_channel_id(mode)),
                (f"{mode}_channel_secret", self.credentials.get_channel_secret(mode)),
            )
            if not value
        ]
        if missing:
            logger.warning("linepay_settings_incomplete", mode=mode, missing=missing)
            return SettingsValidation(
                status="failed",
                message="Please enter the Channel ID and Channel Secret",
                mode=mode,
                missing=missing,
            )
        return SettingsValidation(status="success", message="LINE Pay credentials are configured", mode=mode)

    async def initiate_payment(self, order: Order, transaction: Transaction) -> InitiationResult:
        return await self.initiator.initiate(order, transaction)

    async def handle_confirmation_callback(self, params: Mapping[str, Any]) -> RedirectInstruction:
        return await self.confirmation.handle(params)

    async def handle_cancel(self, params: Mapping[str, Any]) -> RedirectInstruction:
        return await self.cancellation.handle(params)

    async def refund(self, transaction: Transaction, amount: Optional[int] = None) -> RefundOutcome:
        return await self.refunds.refund(transaction, amount)

    async def aclose(self) -> None:
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
