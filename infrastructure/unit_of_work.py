"""
SQLAlchemy Unit of Work

订单仓储、交易仓储与结算通知器共享同一个 AsyncSession：
交易状态的比较并设置与订单结算要么一起提交，要么一起回滚。
"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.adapters.settlement import SQLAlchemySettlementNotifier
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from infrastructure.repositories.transaction_repository import SQLAlchemyTransactionRepository


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """一次 async with 对应一个数据库事务（只读模式不开启事务）"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        # 外部传入的会话由调用方负责关闭
        self._owns_session = session is None
        self.session: Optional[AsyncSession] = session

    def _bind(self, session: Optional[AsyncSession]) -> None:
        if session is None:
            self.order_repository = None  # type: ignore[assignment]
            self.transaction_repository = None  # type: ignore[assignment]
            self.settlement_notifier = None  # type: ignore[assignment]
            return
        self.order_repository = SQLAlchemyOrderRepository(session)
        self.transaction_repository = SQLAlchemyTransactionRepository(session)
        self.settlement_notifier = SQLAlchemySettlementNotifier(session)

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self._bind(self.session)
        if not self._readonly and not self.session.in_transaction():
            await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._owns_session and self.session is not None:
                # close() 会回滚尚未结束的事务
                await self.session.close()
                self.session = None
            self._bind(None)

    async def commit(self) -> None:
        if not self._readonly and self.session is not None and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False


def uow_factory(*, readonly: bool = False) -> SQLAlchemyUnitOfWork:
    """每次调用返回新的 Unit of Work，使用独立会话"""
    return SQLAlchemyUnitOfWork(readonly=readonly)
