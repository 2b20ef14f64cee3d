"""
支付领域实体 - 订单（只读）与交易聚合根
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException, InvalidTransactionStateError


class TransactionStatus(str, Enum):
    """交易状态枚举"""
    PENDING = "pending"       # 待确认
    SUCCEEDED = "succeeded"   # 付款成功
    FAILED = "failed"         # 本次尝试失败（需重新结账）
    REFUNDED = "refunded"     # 已退款


# 用户在 LINE Pay 页面取消时记录的失败原因
CANCELED_BY_USER = "canceled_by_user"

# 状态机：仅允许以下转换
ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.SUCCEEDED, TransactionStatus.FAILED}),
    TransactionStatus.SUCCEEDED: frozenset({TransactionStatus.REFUNDED}),
    TransactionStatus.FAILED: frozenset(),
    TransactionStatus.REFUNDED: frozenset(),
}


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class LineItem:
    """订单明细（金额单位：最小记账单位，即 1/100 元）"""

    id: str
    title: str
    quantity: int
    unit_price: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise DomainValidationException(
                f"Quantity must be positive: {self.quantity}",
                field="quantity",
            )


@dataclass(frozen=True)
class Order:
    """
    订单 - 由宿主订单系统拥有，支付核心只读取

    total_amount 以 1/100 为单位存储（800 = NT$8）。
    """

    id: int
    total_amount: int
    currency: str
    items: tuple[LineItem, ...] = ()


@dataclass
class Transaction:
    """
    交易聚合根 - 一次付款尝试

    业务规则：
    1. uuid 为本地稳定标识，用于回调 URL（不使用渠道交易号）
    2. 状态转换必须遵循 ALLOWED_TRANSITIONS
    3. succeeded 至多进入一次
    """

    id: Optional[int]
    uuid: str
    order_id: int
    total: int
    currency: str
    status: TransactionStatus = TransactionStatus.PENDING
    payment_method: str = "linepay"
    vendor_charge_id: str = ""
    meta: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.uuid:
            raise DomainValidationException("Transaction uuid is required", field="uuid")
        if self.meta is None:
            self.meta = {}
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

    @property
    def is_canceled_by_user(self) -> bool:
        return self.status == TransactionStatus.FAILED and self.meta.get("failure_reason") == CANCELED_BY_USER

    @property
    def refunded_amount(self) -> int:
        """已退款金额（最小记账单位），部分退款累计"""
        return int(self.meta.get("refunded_amount") or 0)

    @property
    def refundable_amount(self) -> int:
        return max(self.total - self.refunded_amount, 0)

    def can_transition_to(self, target: TransactionStatus) -> bool:
        if target in ALLOWED_TRANSITIONS[self.status]:
            return True
        # 取消回跳与渠道确认可能交错：渠道已扣款时以扣款为准
        return target == TransactionStatus.SUCCEEDED and self.is_canceled_by_user

    def apply_transition(
        self,
        target: TransactionStatus,
        *,
        vendor_charge_id: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> None:
        """在内存中执行状态转换；持久化由状态机负责（CAS）"""
        if not self.can_transition_to(target):
            raise InvalidTransactionStateError(self.uuid, self.status.value, target.value)
        recovered = self.is_canceled_by_user and target == TransactionStatus.SUCCEEDED
        self.status = target
        # 已有渠道交易号时不覆盖
        if vendor_charge_id and not self.vendor_charge_id:
            self.vendor_charge_id = vendor_charge_id
        if meta:
            self.meta = {**self.meta, **meta}
        if recovered:
            self.meta = {k: v for k, v in self.meta.items() if k != "failure_reason"}
            self.meta["recovered_from"] = CANCELED_BY_USER
        self.updated_at = datetime.now(timezone.utc)

    def attach_charge_reference(self, vendor_charge_id: str) -> None:
        """记录渠道交易号（发起付款成功后）"""
        if not vendor_charge_id:
            raise DomainValidationException("vendor_charge_id must not be empty", field="vendor_charge_id")
        self.vendor_charge_id = vendor_charge_id
        self.updated_at = datetime.now(timezone.utc)
