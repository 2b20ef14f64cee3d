from __future__ import annotations

from typing import Optional

from application.dtos.payments import RefundOutcome
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    DomainValidationException,
    MissingChargeReferenceError,
)
from domain.payment.entity import Transaction
from domain.payment.money import to_provider_units


logger = get_logger(__name__)


def provider_refund_amount(amount: Optional[int]) -> Optional[int]:
    """None 表示全额退款；否则换算为 LINE Pay 的整数单位，换算结果必须大于 0。"""
    if amount is None:
        return None
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise DomainValidationException("Refund amount must be a positive integer", field="amount")
    units = to_provider_units(amount)
    if units == 0:
        raise DomainValidationException("Refund amount is less than 1 TWD", field="amount")
    return units


class RefundHandler:
    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    async def refund(self, transaction: Transaction, amount: Optional[int] = None) -> RefundOutcome:
        logger.info(
            "linepay_refund_started",
            transaction_uuid=transaction.uuid,
            order_id=transaction.order_id,
            vendor_charge_id=transaction.vendor_charge_id,
            amount=amount,
        )
        try:
            if not transaction.vendor_charge_id:
                raise MissingChargeReferenceError(transaction.uuid)
            refund_amount = provider_refund_amount(amount)
            response = await self.gateway.refund_payment(transaction.vendor_charge_id, refund_amount)
        except BusinessException as exc:
            logger.error(
                "linepay_refund_failed",
                transaction_uuid=transaction.uuid,
                error_type=exc.error_type,
                error=exc.message,
            )
            return RefundOutcome(success=False, message=exc.message, error_type=exc.error_type)
        except Exception:
            logger.exception("linepay_refund_exception", transaction_uuid=transaction.uuid)
            return RefundOutcome(success=False, message="Refund failed", error_type="SystemError")

        refund_transaction_id = (response.info or {}).get("refundTransactionId")
        logger.info(
            "linepay_refund_success",
            transaction_uuid=transaction.uuid,
            refund_transaction_id=refund_transaction_id,
            refund_amount=refund_amount,
        )
        return RefundOutcome(
            success=True,
            message="Refund succeeded",
            refund_transaction_id=str(refund_transaction_id) if refund_transaction_id is not None else None,
            refund_amount=refund_amount,
        )
