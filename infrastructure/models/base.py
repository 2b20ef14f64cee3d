"""
声明式模型基类（SQLAlchemy 2.0）
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
