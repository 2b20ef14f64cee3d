"""ORM 模型导出（建表时需全部导入以注册到 Base.metadata）"""
from .base import Base
from .order import OrderItemModel, OrderModel
from .transaction import TransactionModel

__all__ = ["Base", "OrderModel", "OrderItemModel", "TransactionModel"]
