"""
订单仓储实现 - 只读访问宿主订单
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.payment.entity import LineItem, Order
from domain.payment.repository import OrderRepository
from infrastructure.models.order import OrderModel


class SQLAlchemyOrderRepository(OrderRepository):
    """订单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        return Order(
            id=model.id,
            total_amount=model.total_amount,
            currency=model.currency,
            items=tuple(
                LineItem(
                    id=str(item.id),
                    title=item.title or "",
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in model.items
            ),
        )

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self.session.execute(
            select(OrderModel).where(OrderModel.id == order_id)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None
