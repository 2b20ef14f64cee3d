"""
支付仓储接口 - 定义订单与交易数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Order, Transaction, TransactionStatus


class OrderRepository(ABC):
    """订单仓储抽象接口（订单由宿主拥有，这里只读）"""

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """根据ID获取订单（包含明细）"""
        pass


class TransactionRepository(ABC):
    """交易仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        pass

    @abstractmethod
    async def get_by_uuid(self, transaction_uuid: str) -> Optional[Transaction]:
        """根据本地 uuid 获取交易"""
        pass

    @abstractmethod
    async def update(self, transaction: Transaction) -> Transaction:
        """更新交易记录（不做状态冲突检测）"""
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        transaction: Transaction,
        expected_status: TransactionStatus,
    ) -> bool:
        """
        仅当存储中的状态仍为 expected_status 时写入 transaction。

        Returns:
            True 表示写入成功；False 表示已被并发请求修改
        """
        pass
