"""
订单数据库模型 - 宿主订单表的最小映射
注意：订单归宿主系统所有，这里只映射支付流程需要读写的字段
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


class OrderModel(Base):
    """订单数据库模型"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # 金额以最小单位存储（1/100 元）
    total_amount = Column(Integer, nullable=False, comment="订单总额（最小单位）")
    currency = Column(String(3), nullable=False, default="TWD", comment="货币代码 ISO-4217")
    total_paid = Column(Integer, nullable=False, default=0, comment="已付金额（最小单位）")

    payment_status = Column(String(50), nullable=False, default="pending", index=True, comment="支付状态")
    status = Column(String(50), nullable=False, default="pending", index=True, comment="订单状态")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        lazy="selectin",
        order_by="OrderItemModel.id",
    )

    def __repr__(self):
        return (
            f"<OrderModel(id={self.id}, total_amount={self.total_amount}, "
            f"currency='{self.currency}', status='{self.status}')>"
        )


class OrderItemModel(Base):
    """订单明细数据库模型"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="关联订单ID"
    )
    title = Column(String(4000), nullable=False, default="", comment="商品名称")
    quantity = Column(Integer, nullable=False, default=1, comment="数量")
    unit_price = Column(Integer, nullable=False, default=0, comment="单价（最小单位）")

    order = relationship("OrderModel", back_populates="items")

    def __repr__(self):
        return f"<OrderItemModel(id={self.id}, order_id={self.order_id}, quantity={self.quantity})>"
