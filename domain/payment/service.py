"""
支付领域服务 - 交易状态机（单一权威的状态转换入口）
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from .entity import Transaction, TransactionStatus
from .repository import TransactionRepository
from domain.common.exceptions import InvalidTransactionStateError


class TransactionStateMachine:
    """
    交易状态机

    职责：
    1. 校验转换是否合法（ALLOWED_TRANSITIONS）
    2. 以 compare-and-set 持久化，保证 succeeded 至多进入一次
    3. 并发失败时不修改调用方持有的实体
    """

    def __init__(self, transaction_repository: TransactionRepository):
        self.transaction_repository = transaction_repository

    async def transition(
        self,
        transaction: Transaction,
        target: TransactionStatus,
        *,
        vendor_charge_id: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> Optional[Transaction]:
        """
        执行状态转换

        Returns:
            转换后的交易；若存储中的状态已被其他请求改变则返回 None

        Raises:
            InvalidTransactionStateError: 当前状态不允许转换到 target
        """
        if not transaction.can_transition_to(target):
            raise InvalidTransactionStateError(transaction.uuid, transaction.status.value, target.value)

        expected = transaction.status
        candidate = replace(transaction, meta=dict(transaction.meta))
        candidate.apply_transition(target, vendor_charge_id=vendor_charge_id, meta=meta)

        won = await self.transaction_repository.compare_and_set(candidate, expected)
        if not won:
            return None
        return candidate

    async def mark_succeeded(
        self,
        transaction: Transaction,
        *,
        vendor_charge_id: str,
        provider_response: dict,
        note: str,
    ) -> Optional[Transaction]:
        return await self.transition(
            transaction,
            TransactionStatus.SUCCEEDED,
            vendor_charge_id=vendor_charge_id,
            meta={"payment_note": note, "linepay_response": provider_response},
        )

    async def mark_failed(self, transaction: Transaction, *, reason: str) -> Optional[Transaction]:
        return await self.transition(
            transaction,
            TransactionStatus.FAILED,
            meta={"failure_reason": reason},
        )

    async def record_refund(
        self,
        transaction: Transaction,
        *,
        amount: Optional[int],
        refund_info: dict,
    ) -> Optional[Transaction]:
        """
        记录一次退款（amount 为实际退款的最小单位金额，None 表示退还剩余全部）

        累计退款达到交易金额时进入 refunded；否则保持 succeeded，仅累加 refunded_amount。
        """
        if transaction.status != TransactionStatus.SUCCEEDED:
            raise InvalidTransactionStateError(
                transaction.uuid, transaction.status.value, TransactionStatus.REFUNDED.value
            )
        if amount is None:
            refunded = transaction.total
        else:
            refunded = min(transaction.refunded_amount + amount, transaction.total)
        meta = {
            "refunded_amount": refunded,
            "linepay_refund": refund_info,
            "linepay_refunds": [*transaction.meta.get("linepay_refunds", []), refund_info],
        }
        if refunded >= transaction.total:
            return await self.transition(transaction, TransactionStatus.REFUNDED, meta=meta)

        candidate = replace(
            transaction,
            meta={**transaction.meta, **meta},
            updated_at=datetime.now(timezone.utc),
        )
        won = await self.transaction_repository.compare_and_set(candidate, TransactionStatus.SUCCEEDED)
        return candidate if won else None


def order_statuses_for(transaction: Transaction) -> Optional[tuple[str, str]]:
    """交易状态 -> (订单 payment_status, 订单 status)；无需同步时返回 None"""
    if transaction.status == TransactionStatus.SUCCEEDED:
        if transaction.refunded_amount > 0:
            return "partially_refunded", "processing"
        return "paid", "processing"
    if transaction.status == TransactionStatus.REFUNDED:
        return "refunded", "refunded"
    return None
