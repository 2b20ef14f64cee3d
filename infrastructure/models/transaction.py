"""
交易数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，业务规则在 domain.payment.entity.Transaction 中
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index, ForeignKey
from datetime import datetime, timezone

from .base import Base


class TransactionModel(Base):
    """交易数据库模型"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    # 本地稳定标识，出现在回调 URL 中
    uuid = Column(String(64), unique=True, index=True, nullable=False, comment="交易UUID")
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="订单ID"
    )

    total = Column(Integer, nullable=False, comment="交易金额（最小单位）")
    currency = Column(String(3), nullable=False, default="TWD", comment="货币代码")
    status = Column(
        String(50),
        nullable=False,
        default="pending",
        index=True,
        comment="交易状态: pending/succeeded/failed/refunded"
    )

    payment_method = Column(String(50), nullable=False, default="linepay", comment="支付方式")
    vendor_charge_id = Column(String(200), nullable=False, default="", index=True, comment="LINE Pay 交易号")

    # 使用 extra_metadata 避免与 SQLAlchemy 的 metadata 冲突
    extra_metadata = Column("meta", JSON, nullable=True, comment="扩展元数据")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    __table_args__ = (
        Index("ix_transactions_order_status", "order_id", "status"),
    )

    def __repr__(self):
        return (
            f"<TransactionModel(id={self.id}, uuid='{self.uuid}', "
            f"order_id={self.order_id}, total={self.total}, status='{self.status}')>"
        )
