from __future__ import annotations

from typing import Any, Callable, Mapping

from application.dtos.payments import CheckoutUrls, RedirectInstruction
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import CANCELED_BY_USER, TransactionStatus
from domain.payment.service import TransactionStateMachine


logger = get_logger(__name__)

CANCEL_MESSAGE = "Payment canceled"


class CancellationHandler:
    """
    用户在 LINE Pay 页面取消支付后的回跳处理：待支付交易标记为 failed，其他状态不变。

    若渠道确认随后成功，确认流程会把该交易恢复为 succeeded。
    """

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork], urls: CheckoutUrls) -> None:
        self.uow_factory = uow_factory
        self.urls = urls

    async def handle(self, params: Mapping[str, Any]) -> RedirectInstruction:
        raw = params.get("transaction_id")
        transaction_uuid = str(raw).strip() if raw is not None else ""
        logger.info("linepay_payment_canceled", transaction_uuid=transaction_uuid or None)

        if transaction_uuid:
            try:
                await self._mark_failed(transaction_uuid)
            except Exception:
                logger.exception("linepay_cancel_update_failed", transaction_uuid=transaction_uuid)

        return RedirectInstruction(
            url=self.urls.checkout_error_url(CANCEL_MESSAGE),
            success=False,
            message=CANCEL_MESSAGE,
        )

    async def _mark_failed(self, transaction_uuid: str) -> None:
        async with self.uow_factory() as uow:
            transaction = await uow.transaction_repository.get_by_uuid(transaction_uuid)
            if transaction is None:
                logger.warning("linepay_cancel_unknown_transaction", transaction_uuid=transaction_uuid)
                return
            if transaction.status != TransactionStatus.PENDING:
                logger.info(
                    "linepay_cancel_ignored",
                    transaction_uuid=transaction_uuid,
                    status=transaction.status.value,
                )
                return
            machine = TransactionStateMachine(uow.transaction_repository)
            await machine.mark_failed(transaction, reason=CANCELED_BY_USER)
