"""
交易仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException, TransactionNotFoundError
from domain.payment.entity import Transaction, TransactionStatus
from domain.payment.repository import TransactionRepository
from infrastructure.models.transaction import TransactionModel


logger = get_logger(__name__)


class SQLAlchemyTransactionRepository(TransactionRepository):
    """交易仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: TransactionModel) -> Transaction:
        """将数据库模型转换为领域实体"""
        return Transaction(
            id=model.id,
            uuid=model.uuid,
            order_id=model.order_id,
            total=model.total,
            currency=model.currency,
            status=TransactionStatus(model.status),
            payment_method=model.payment_method,
            vendor_charge_id=model.vendor_charge_id or "",
            meta=dict(model.extra_metadata or {}),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _values(self, entity: Transaction) -> dict:
        """可变字段（uuid/order_id 创建后不再修改）"""
        values = {
            "total": entity.total,
            "currency": entity.currency,
            "status": entity.status.value,
            "payment_method": entity.payment_method,
            "vendor_charge_id": entity.vendor_charge_id or "",
            "extra_metadata": entity.meta,
        }
        if entity.updated_at is not None:
            values["updated_at"] = entity.updated_at
        return values

    async def _get_model(self, transaction_uuid: str) -> Optional[TransactionModel]:
        result = await self.session.execute(
            select(TransactionModel).where(TransactionModel.uuid == transaction_uuid)
        )
        return result.scalar_one_or_none()

    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        db_tx = TransactionModel(
            uuid=transaction.uuid,
            order_id=transaction.order_id,
            **self._values(transaction),
        )
        if transaction.created_at is not None:
            db_tx.created_at = transaction.created_at
        try:
            self.session.add(db_tx)
            await self.session.flush()
            await self.session.refresh(db_tx)
        except IntegrityError:
            logger.warning("transaction_create_conflict", transaction_uuid=transaction.uuid)
            raise DomainValidationException(
                f"Transaction {transaction.uuid} already exists",
                field="uuid",
            )
        logger.info(
            "transaction_created",
            transaction_uuid=db_tx.uuid,
            order_id=db_tx.order_id,
            total=db_tx.total,
        )
        return self._to_entity(db_tx)

    async def get_by_uuid(self, transaction_uuid: str) -> Optional[Transaction]:
        """根据本地 uuid 获取交易"""
        db_tx = await self._get_model(transaction_uuid)
        return self._to_entity(db_tx) if db_tx else None

    async def update(self, transaction: Transaction) -> Transaction:
        """更新交易记录"""
        db_tx = await self._get_model(transaction.uuid)
        if db_tx is None:
            raise TransactionNotFoundError(transaction.uuid)
        for key, value in self._values(transaction).items():
            setattr(db_tx, key, value)
        await self.session.flush()
        await self.session.refresh(db_tx)
        return self._to_entity(db_tx)

    async def compare_and_set(
        self,
        transaction: Transaction,
        expected_status: TransactionStatus,
    ) -> bool:
        """UPDATE ... WHERE uuid = ? AND status = ?；受影响行数为 1 才算成功"""
        values = {getattr(TransactionModel, key): value for key, value in self._values(transaction).items()}
        stmt = (
            update(TransactionModel)
            .where(
                TransactionModel.uuid == transaction.uuid,
                TransactionModel.status == expected_status.value,
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        won = result.rowcount == 1
        if not won:
            logger.info(
                "transaction_cas_conflict",
                transaction_uuid=transaction.uuid,
                expected_status=expected_status.value,
                target_status=transaction.status.value,
            )
        return won
