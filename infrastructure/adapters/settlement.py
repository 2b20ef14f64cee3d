"""
SettlementNotifier adapter writing to the host order table.

Runs on the unit-of-work session, so order updates commit or roll back
together with the transaction status change.
"""
from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from application.ports.settlement import SettlementNotifier
from core.logging_config import get_logger
from domain.payment.entity import Order, Transaction
from domain.payment.service import order_statuses_for
from infrastructure.models.order import OrderModel


logger = get_logger(__name__)


class SQLAlchemySettlementNotifier(SettlementNotifier):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def mark_paid(self, order: Order, amount: int) -> None:
        await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id)
            .values(total_paid=OrderModel.total_paid + amount)
            .execution_options(synchronize_session=False)
        )
        logger.info("order_marked_paid", order_id=order.id, amount=amount)

    async def sync_status_from(self, transaction: Transaction) -> None:
        statuses = order_statuses_for(transaction)
        if statuses is None:
            return
        payment_status, status = statuses
        await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == transaction.order_id)
            .values(payment_status=payment_status, status=status)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "order_status_synced",
            order_id=transaction.order_id,
            transaction_uuid=transaction.uuid,
            payment_status=payment_status,
            status=status,
        )
