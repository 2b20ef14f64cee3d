"""
Settlement port: lets the host mark an order paid once a transaction succeeds.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.payment.entity import Order, Transaction


@runtime_checkable
class SettlementNotifier(Protocol):
    async def mark_paid(self, order: Order, amount: int) -> None:
        """Add `amount` (minor units) to the order's paid total."""
        ...

    async def sync_status_from(self, transaction: Transaction) -> None:
        """Synchronize order status from the transaction and fire downstream hooks."""
        ...
