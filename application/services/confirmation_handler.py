"""
Inbound leg: the browser comes back from LINE Pay to the confirm URL.

The handler confirms the payment with LINE Pay and moves the Transaction to
succeeded exactly once. A transaction that already succeeded is answered with
the receipt redirect without calling LINE Pay again (page refresh, double
navigation). Every failure ends in a checkout error redirect and leaves the
transaction pending. A transaction the shopper canceled is still confirmed
when LINE Pay reports the charge as captured.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from application.dtos.payments import CheckoutUrls, ConfirmationCallback, RedirectInstruction
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    DomainValidationException,
    InvalidCallbackError,
    InvalidTransactionStateError,
    TransactionNotFoundError,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import Order, Transaction, TransactionStatus
from domain.payment.money import SUPPORTED_CURRENCY, to_provider_units
from domain.payment.service import TransactionStateMachine


logger = get_logger(__name__)

PAYMENT_SUCCEEDED_NOTE = "LINE Pay payment succeeded"
GENERIC_FAILURE_MESSAGE = "Payment confirmation failed"


class ConfirmationHandler:
    def __init__(
        self,
        gateway: PaymentGateway,
        uow_factory: Callable[..., AbstractUnitOfWork],
        urls: CheckoutUrls,
    ) -> None:
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.urls = urls

    async def handle(self, params: Mapping[str, Any]) -> RedirectInstruction:
        callback = ConfirmationCallback.from_query(params)
        logger.info(
            "linepay_confirmation_started",
            transaction_uuid=callback.transaction_uuid,
            linepay_transaction_id=callback.provider_transaction_id,
        )
        try:
            return await self._confirm(callback)
        except BusinessException as exc:
            logger.error(
                "linepay_confirmation_failed",
                transaction_uuid=callback.transaction_uuid,
                linepay_transaction_id=callback.provider_transaction_id,
                error_type=exc.error_type,
                error=exc.message,
            )
            return self._error(exc.message)
        except Exception:
            logger.exception(
                "linepay_confirmation_exception",
                transaction_uuid=callback.transaction_uuid,
                linepay_transaction_id=callback.provider_transaction_id,
            )
            return self._error(GENERIC_FAILURE_MESSAGE)

    async def _confirm(self, callback: ConfirmationCallback) -> RedirectInstruction:
        missing = [
            name
            for name, value in (
                ("transactionId", callback.provider_transaction_id),
                ("transaction_id", callback.transaction_uuid),
            )
            if not value
        ]
        if missing:
            raise InvalidCallbackError(missing)
        transaction_uuid = callback.transaction_uuid
        provider_transaction_id = callback.provider_transaction_id

        async with self.uow_factory(readonly=True) as uow:
            transaction = await uow.transaction_repository.get_by_uuid(transaction_uuid)
            if transaction is None:
                raise TransactionNotFoundError(transaction_uuid)
            order = await uow.order_repository.get_by_id(transaction.order_id)

        if transaction.status == TransactionStatus.SUCCEEDED:
            logger.info("linepay_confirmation_skipped", transaction_uuid=transaction_uuid, reason="already_processed")
            return self._success(transaction)
        if not transaction.can_transition_to(TransactionStatus.SUCCEEDED):
            raise InvalidTransactionStateError(
                transaction_uuid, transaction.status.value, TransactionStatus.SUCCEEDED.value
            )
        # The redirect must belong to the charge created for this transaction
        if transaction.vendor_charge_id and transaction.vendor_charge_id != provider_transaction_id:
            raise InvalidCallbackError(["transactionId"])
        if order is None:
            raise DomainValidationException(f"Order {transaction.order_id} not found", field="order_id")

        amount = to_provider_units(order.total_amount)
        try:
            response = await self.gateway.confirm_payment(provider_transaction_id, amount, SUPPORTED_CURRENCY)
        except BusinessException:
            # A concurrent callback may have confirmed it in the meantime
            current = await self._reload(transaction_uuid)
            if current is not None and current.status == TransactionStatus.SUCCEEDED:
                logger.info("linepay_confirmation_already_confirmed", transaction_uuid=transaction_uuid)
                return self._success(current)
            raise

        updated = await self._settle(transaction, order, provider_transaction_id, response.raw)
        if updated is None:
            current = await self._reload(transaction_uuid)
            if current is not None and current.is_canceled_by_user:
                # LINE Pay already captured the money; the cancel redirect lost the race
                logger.warning("linepay_confirmation_overrides_cancel", transaction_uuid=transaction_uuid)
                updated = await self._settle(current, order, provider_transaction_id, response.raw)
                if updated is None:
                    current = await self._reload(transaction_uuid)

        if updated is None:
            if current is not None and current.status == TransactionStatus.SUCCEEDED:
                logger.info("linepay_confirmation_race_lost", transaction_uuid=transaction_uuid)
                return self._success(current)
            status = current.status.value if current is not None else "missing"
            raise InvalidTransactionStateError(transaction_uuid, status, TransactionStatus.SUCCEEDED.value)

        logger.info(
            "linepay_payment_confirmed",
            order_id=order.id,
            transaction_uuid=transaction_uuid,
            vendor_charge_id=updated.vendor_charge_id,
            amount=order.total_amount,
        )
        return self._success(updated)

    async def _settle(
        self,
        transaction: Transaction,
        order: Order,
        provider_transaction_id: str,
        provider_response: dict,
    ) -> Optional[Transaction]:
        """CAS plus settlement in one unit of work; None when the CAS lost."""
        async with self.uow_factory() as uow:
            machine = TransactionStateMachine(uow.transaction_repository)
            updated = await machine.mark_succeeded(
                transaction,
                vendor_charge_id=provider_transaction_id,
                provider_response=provider_response,
                note=PAYMENT_SUCCEEDED_NOTE,
            )
            if updated is not None:
                await uow.settlement_notifier.mark_paid(order, order.total_amount)
                await uow.settlement_notifier.sync_status_from(updated)
        return updated

    async def _reload(self, transaction_uuid: str) -> Optional[Transaction]:
        async with self.uow_factory(readonly=True) as uow:
            return await uow.transaction_repository.get_by_uuid(transaction_uuid)

    def _success(self, transaction: Transaction) -> RedirectInstruction:
        return RedirectInstruction(url=self.urls.receipt_url(transaction.uuid), success=True)

    def _error(self, message: str) -> RedirectInstruction:
        return RedirectInstruction(url=self.urls.checkout_error_url(message), success=False, message=message)
