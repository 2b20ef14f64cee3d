"""In-memory collaborators for the payment orchestration tests."""
import asyncio
from copy import deepcopy
from typing import Any, Optional

import pytest

from application.dtos.payments import (
    CheckoutUrls,
    PaymentRequest,
    PaymentRequestResult,
    ProviderResponse,
)
from domain.common.exceptions import TransactionNotFoundError
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import LineItem, Order, Transaction, TransactionStatus
from domain.payment.repository import OrderRepository, TransactionRepository
from domain.payment.service import order_statuses_for


class InMemoryState:
    def __init__(self) -> None:
        self.orders: dict[int, Order] = {}
        self.transactions: dict[str, Transaction] = {}
        self.total_paid: dict[int, int] = {}
        self.order_status: dict[int, str] = {}
        self.settlement_error: Optional[Exception] = None
        self.commits = 0
        self.rollbacks = 0


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, state: InMemoryState) -> None:
        self.state = state

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        return self.state.orders.get(order_id)


class InMemoryTransactionRepository(TransactionRepository):
    """Writes are buffered on the unit of work until commit."""

    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self.uow = uow

    def _current(self, transaction_uuid: str) -> Optional[Transaction]:
        if transaction_uuid in self.uow.pending:
            return self.uow.pending[transaction_uuid]
        return self.uow.state.transactions.get(transaction_uuid)

    async def create(self, transaction: Transaction) -> Transaction:
        self.uow.pending[transaction.uuid] = deepcopy(transaction)
        return deepcopy(transaction)

    async def get_by_uuid(self, transaction_uuid: str) -> Optional[Transaction]:
        current = self._current(transaction_uuid)
        return deepcopy(current) if current else None

    async def update(self, transaction: Transaction) -> Transaction:
        if self._current(transaction.uuid) is None:
            raise TransactionNotFoundError(transaction.uuid)
        self.uow.pending[transaction.uuid] = deepcopy(transaction)
        return deepcopy(transaction)

    async def compare_and_set(self, transaction: Transaction, expected_status: TransactionStatus) -> bool:
        current = self._current(transaction.uuid)
        if current is None or current.status != expected_status:
            return False
        self.uow.pending[transaction.uuid] = deepcopy(transaction)
        return True


class RecordingSettlementNotifier:
    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self.uow = uow

    async def mark_paid(self, order: Order, amount: int) -> None:
        if self.uow.state.settlement_error is not None:
            raise self.uow.state.settlement_error
        self.uow.paid[order.id] = self.uow.paid.get(order.id, 0) + amount

    async def sync_status_from(self, transaction: Transaction) -> None:
        statuses = order_statuses_for(transaction)
        if statuses is not None:
            self.uow.order_status[transaction.order_id] = statuses[0]


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, state: InMemoryState, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self.state = state
        self.pending: dict[str, Transaction] = {}
        self.paid: dict[int, int] = {}
        self.order_status: dict[int, str] = {}
        self.order_repository = InMemoryOrderRepository(state)
        self.transaction_repository = InMemoryTransactionRepository(self)
        self.settlement_notifier = RecordingSettlementNotifier(self)

    async def commit(self) -> None:
        self.state.transactions.update(self.pending)
        for order_id, amount in self.paid.items():
            self.state.total_paid[order_id] = self.state.total_paid.get(order_id, 0) + amount
        self.state.order_status.update(self.order_status)
        self.pending, self.paid, self.order_status = {}, {}, {}
        self.state.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self.pending, self.paid, self.order_status = {}, {}, {}
        self.state.rollbacks += 1
        self._committed = False


class StubGateway:
    provider = "linepay"

    def __init__(self) -> None:
        self.requests: list[PaymentRequest] = []
        self.confirms: list[tuple[str, int, str]] = []
        self.refunds: list[tuple[str, Optional[int]]] = []
        self.request_error: Optional[Exception] = None
        self.confirm_error: Optional[Exception] = None
        self.refund_error: Optional[Exception] = None
        self.closed = False

    async def request_payment(self, req: PaymentRequest) -> PaymentRequestResult:
        self.requests.append(req)
        if self.request_error is not None:
            raise self.request_error
        return PaymentRequestResult(
            transaction_id="2024061500000000001",
            payment_url="https://sandbox-web-pay.line.me/web/payment/wait?transactionReserveId=abc",
            response=ProviderResponse(return_code="0000", return_message="Success."),
        )

    async def confirm_payment(self, transaction_id: str, amount: int, currency: str) -> ProviderResponse:
        self.confirms.append((transaction_id, amount, currency))
        # let concurrent callbacks interleave here
        await asyncio.sleep(0)
        if self.confirm_error is not None:
            raise self.confirm_error
        return ProviderResponse(
            return_code="0000",
            return_message="Success.",
            info={"transactionId": transaction_id, "orderId": "1"},
            raw={"returnCode": "0000", "returnMessage": "Success.", "info": {"transactionId": transaction_id}},
        )

    async def refund_payment(self, transaction_id: str, refund_amount: Optional[int] = None) -> ProviderResponse:
        self.refunds.append((transaction_id, refund_amount))
        if self.refund_error is not None:
            raise self.refund_error
        return ProviderResponse(
            return_code="0000",
            return_message="Success.",
            info={"refundTransactionId": "2024061500000000099"},
        )

    async def aclose(self) -> None:
        self.closed = True


class StaticCredentialStore:
    def __init__(self, **values: Any) -> None:
        self.values = {
            "payment_mode": "test",
            "channel_id": "1234567890",
            "channel_secret": "secret",
            "base_url": "https://sandbox-api-pay.line.me",
            "auto_capture": True,
            "is_active": True,
            **values,
        }

    def get_mode(self) -> str:
        return self.values["payment_mode"]

    def get_channel_id(self, mode: Optional[str] = None) -> str:
        return self.values["channel_id"]

    def get_channel_secret(self, mode: Optional[str] = None) -> str:
        return self.values["channel_secret"]

    def get_api_base_url(self, mode: Optional[str] = None) -> str:
        return self.values["base_url"]

    def get(self, key: str) -> Any:
        return self.values.get(key)


@pytest.fixture
def state() -> InMemoryState:
    return InMemoryState()


@pytest.fixture
def uow_factory(state):
    def _factory(*, readonly: bool = False) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(state, readonly=readonly)
    return _factory


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def credentials() -> StaticCredentialStore:
    return StaticCredentialStore()


@pytest.fixture
def urls() -> CheckoutUrls:
    return CheckoutUrls(
        site_url="https://shop.example.com",
        confirm_path="/api/v1/payments/linepay/confirm",
        cancel_path="/api/v1/payments/linepay/cancel",
        checkout_path="/checkout",
        receipt_path="/receipt",
    )


@pytest.fixture
def order() -> Order:
    return Order(
        id=1,
        total_amount=800,
        currency="TWD",
        items=(LineItem(id="10", title="Green tea", quantity=1, unit_price=800),),
    )


@pytest.fixture
def transaction(order) -> Transaction:
    return Transaction(id=1, uuid="tx-uuid-1", order_id=order.id, total=order.total_amount, currency="TWD")


@pytest.fixture
def seeded(state, order, transaction):
    state.orders[order.id] = order
    state.transactions[transaction.uuid] = deepcopy(transaction)
    return state
