"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from domain.payment.repository import OrderRepository, TransactionRepository

if TYPE_CHECKING:  # pragma: no cover
    from application.ports.settlement import SettlementNotifier


class AbstractUnitOfWork(ABC):
    """应用层事务边界控制抽象"""

    order_repository: OrderRepository
    transaction_repository: TransactionRepository
    # 与仓储共享同一事务，结算失败时随事务一起回滚
    settlement_notifier: "SettlementNotifier"

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.order_repository = None  # type: ignore[assignment]
        self.transaction_repository = None  # type: ignore[assignment]
        self.settlement_notifier = None  # type: ignore[assignment]

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            # 只在非只读且未显式提交时自动提交
            if not self._readonly and not self._committed:
                await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        """提交事务"""
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """回滚事务"""
