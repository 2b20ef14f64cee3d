"""支付领域异常

每个异常携带业务码与 error_type，由 core.exceptions 统一映射为 HTTP 响应；
领域层不依赖 core。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class UnsupportedCurrencyError(BusinessException):
    def __init__(self, currency: str, *, supported: str):
        super().__init__(
            code=PaymentCode.UNSUPPORTED_CURRENCY,
            message=f"LINE Pay only supports {supported} payments",
            error_type="UnsupportedCurrency",
            details={"currency": currency, "supported": supported},
            field="currency",
        )


class InvalidCallbackError(BusinessException):
    def __init__(self, missing: list[str]):
        super().__init__(
            code=PaymentCode.INVALID_CALLBACK,
            message="Invalid transaction information",
            error_type="InvalidCallback",
            details={"missing": missing},
        )


class TransactionNotFoundError(BusinessException):
    def __init__(self, transaction_uuid: str):
        super().__init__(
            code=PaymentCode.TRANSACTION_NOT_FOUND,
            message="Transaction record not found",
            error_type="TransactionNotFound",
            details={"transaction_uuid": transaction_uuid},
        )


class OrderNotFoundError(BusinessException):
    def __init__(self, order_id: int):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details={"order_id": order_id},
        )


class MissingChargeReferenceError(BusinessException):
    def __init__(self, transaction_uuid: str):
        super().__init__(
            code=PaymentCode.MISSING_CHARGE_REFERENCE,
            message="Cannot refund: LINE Pay transaction id is missing",
            error_type="MissingChargeReference",
            details={"transaction_uuid": transaction_uuid},
        )


class InvalidTransactionStateError(BusinessException):
    def __init__(self, transaction_uuid: str, status: str, target: str):
        super().__init__(
            code=PaymentCode.INVALID_TRANSACTION_STATE,
            message=f"Cannot move transaction from {status} to {target}",
            error_type="InvalidTransactionState",
            details={"transaction_uuid": transaction_uuid, "status": status, "target": target},
            field="status",
        )


class RefundAmountExceededError(BusinessException):
    def __init__(self, transaction_uuid: str, amount: int, refundable: int):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message="Refund amount exceeds the refundable balance",
            error_type="RefundAmountExceeded",
            details={"transaction_uuid": transaction_uuid, "amount": amount, "refundable": refundable},
            field="amount",
        )
