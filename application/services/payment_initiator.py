"""
Outbound leg of the LINE Pay redirect flow.

Validates the order currency, re-prices line items into provider units,
requests a payment and stores the provider transaction id on the local
Transaction. Failures come back as InitiationResult(status="failed").
"""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from application.dtos.payments import (
    CheckoutUrls,
    InitiationResult,
    LinePayProduct,
    PaymentRequest,
)
from application.ports.credentials import CredentialStore
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    InvalidTransactionStateError,
    UnsupportedCurrencyError,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import LineItem, Order, Transaction, TransactionStatus
from domain.payment.money import SUPPORTED_CURRENCY, is_supported_currency, to_provider_units


logger = get_logger(__name__)

MAX_PRODUCT_NAME_LENGTH = 4000
PLACEHOLDER_PRODUCT_NAME = "Item"


def _placeholder_product() -> LinePayProduct:
    return LinePayProduct(id="1", name=PLACEHOLDER_PRODUCT_NAME, quantity=1, price=1)


def format_products(items: Optional[Iterable[LineItem]]) -> list[LinePayProduct]:
    """Map line items to LINE Pay products; never returns an empty list."""
    products: list[LinePayProduct] = []
    for item in items or ():
        name = (item.title or PLACEHOLDER_PRODUCT_NAME)[:MAX_PRODUCT_NAME_LENGTH]
        products.append(
            LinePayProduct(
                id=str(item.id or "1"),
                name=name,
                quantity=item.quantity,
                price=to_provider_units(item.unit_price),
            )
        )
    # LINE Pay requires at least one product
    if not products:
        products.append(_placeholder_product())
    return products


class PaymentInitiator:
    def __init__(
        self,
        gateway: PaymentGateway,
        uow_factory: Callable[..., AbstractUnitOfWork],
        urls: CheckoutUrls,
        credentials: CredentialStore,
    ) -> None:
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.urls = urls
        self.credentials = credentials

    def build_request(self, order: Order, transaction: Transaction) -> PaymentRequest:
        if not is_supported_currency(order.currency):
            raise UnsupportedCurrencyError(order.currency, supported=SUPPORTED_CURRENCY)
        return PaymentRequest(
            amount=to_provider_units(order.total_amount),
            currency=SUPPORTED_CURRENCY,
            order_id=str(order.id),
            products=format_products(order.items),
            confirm_url=self.urls.confirm_url(transaction.uuid),
            cancel_url=self.urls.cancel_url(transaction.uuid),
            auto_capture=bool(self.credentials.get("auto_capture")),
        )

    async def initiate(self, order: Order, transaction: Transaction) -> InitiationResult:
        logger.info(
            "linepay_payment_started",
            order_id=order.id,
            transaction_uuid=transaction.uuid,
            amount=order.total_amount,
            currency=order.currency,
        )
        try:
            if transaction.status != TransactionStatus.PENDING:
                raise InvalidTransactionStateError(
                    transaction.uuid, transaction.status.value, TransactionStatus.PENDING.value
                )
            req = self.build_request(order, transaction)
            result = await self.gateway.request_payment(req)
            async with self.uow_factory() as uow:
                transaction.attach_charge_reference(result.transaction_id)
                await uow.transaction_repository.update(transaction)
        except BusinessException as exc:
            logger.error(
                "linepay_payment_request_failed",
                order_id=order.id,
                transaction_uuid=transaction.uuid,
                error_type=exc.error_type,
                error=exc.message,
            )
            return InitiationResult(status="failed", message=exc.message, error_type=exc.error_type)
        except Exception:
            logger.exception("linepay_payment_exception", order_id=order.id, transaction_uuid=transaction.uuid)
            return InitiationResult(status="failed", message="Payment request failed", error_type="SystemError")

        logger.info(
            "linepay_payment_request_success",
            order_id=order.id,
            transaction_uuid=transaction.uuid,
            vendor_charge_id=result.transaction_id,
            payment_url=result.payment_url,
        )
        return InitiationResult(
            status="success",
            redirect_to=result.payment_url,
            message="Redirecting to LINE Pay...",
        )
