import pytest

from domain.common.exceptions import DomainValidationException, InvalidTransactionStateError
from domain.payment.entity import CANCELED_BY_USER, LineItem, Transaction, TransactionStatus
from domain.payment.service import TransactionStateMachine, order_statuses_for


class DictTransactionRepository:
    def __init__(self, *transactions):
        self.rows = {t.uuid: t.status for t in transactions}
        self.writes = []

    async def compare_and_set(self, transaction, expected_status):
        if self.rows.get(transaction.uuid) != expected_status:
            return False
        self.rows[transaction.uuid] = transaction.status
        self.writes.append(transaction)
        return True


def _tx(status=TransactionStatus.PENDING):
    return Transaction(id=1, uuid="tx-1", order_id=1, total=800, currency="TWD", status=status)


@pytest.mark.parametrize(
    "source, target, allowed",
    [
        (TransactionStatus.PENDING, TransactionStatus.SUCCEEDED, True),
        (TransactionStatus.PENDING, TransactionStatus.FAILED, True),
        (TransactionStatus.SUCCEEDED, TransactionStatus.REFUNDED, True),
        (TransactionStatus.PENDING, TransactionStatus.REFUNDED, False),
        (TransactionStatus.SUCCEEDED, TransactionStatus.SUCCEEDED, False),
        (TransactionStatus.FAILED, TransactionStatus.SUCCEEDED, False),
        (TransactionStatus.REFUNDED, TransactionStatus.SUCCEEDED, False),
    ],
)
def test_allowed_transitions(source, target, allowed):
    assert _tx(source).can_transition_to(target) is allowed


def test_apply_transition_keeps_existing_charge_reference():
    tx = _tx()
    tx.attach_charge_reference("2024")
    tx.apply_transition(TransactionStatus.SUCCEEDED, vendor_charge_id="9999", meta={"note": "ok"})
    assert tx.vendor_charge_id == "2024"
    assert tx.meta == {"note": "ok"}


def test_empty_charge_reference_rejected():
    with pytest.raises(DomainValidationException):
        _tx().attach_charge_reference("")


def test_line_item_quantity_must_be_positive():
    with pytest.raises(DomainValidationException):
        LineItem(id="1", title="Tea", quantity=0, unit_price=100)


@pytest.mark.asyncio
async def test_state_machine_returns_new_transaction_on_success():
    tx = _tx()
    repo = DictTransactionRepository(tx)

    updated = await TransactionStateMachine(repo).mark_succeeded(
        tx, vendor_charge_id="2024", provider_response={"returnCode": "0000"}, note="paid"
    )

    assert updated.status == TransactionStatus.SUCCEEDED
    assert updated.meta["payment_note"] == "paid"
    # caller's copy is untouched
    assert tx.status == TransactionStatus.PENDING
    assert tx.meta == {}


@pytest.mark.asyncio
async def test_state_machine_reports_lost_race():
    tx = _tx()
    repo = DictTransactionRepository(tx)
    repo.rows[tx.uuid] = TransactionStatus.SUCCEEDED

    assert await TransactionStateMachine(repo).mark_failed(tx, reason="canceled_by_user") is None
    assert repo.writes == []


@pytest.mark.asyncio
async def test_state_machine_rejects_illegal_transition():
    tx = _tx(TransactionStatus.FAILED)
    with pytest.raises(InvalidTransactionStateError):
        await TransactionStateMachine(DictTransactionRepository(tx)).record_refund(tx, amount=None, refund_info={})


def test_user_canceled_transaction_can_still_succeed():
    tx = _tx(TransactionStatus.FAILED)
    tx.meta = {"failure_reason": CANCELED_BY_USER}

    assert tx.can_transition_to(TransactionStatus.SUCCEEDED)
    assert not tx.can_transition_to(TransactionStatus.REFUNDED)

    tx.apply_transition(TransactionStatus.SUCCEEDED, meta={"payment_note": "paid"})
    assert tx.status == TransactionStatus.SUCCEEDED
    assert "failure_reason" not in tx.meta
    assert tx.meta["recovered_from"] == CANCELED_BY_USER


@pytest.mark.asyncio
async def test_partial_refunds_accumulate_until_fully_refunded():
    tx = _tx(TransactionStatus.SUCCEEDED)
    repo = DictTransactionRepository(tx)
    machine = TransactionStateMachine(repo)

    first = await machine.record_refund(tx, amount=300, refund_info={"refund_transaction_id": "r1"})
    second = await machine.record_refund(first, amount=300, refund_info={"refund_transaction_id": "r2"})
    last = await machine.record_refund(second, amount=None, refund_info={"refund_transaction_id": "r3"})

    assert first.status == TransactionStatus.SUCCEEDED
    assert first.refunded_amount == 300
    assert second.refunded_amount == 600
    assert second.refundable_amount == 200
    assert last.status == TransactionStatus.REFUNDED
    assert last.refunded_amount == 800
    assert [r["refund_transaction_id"] for r in last.meta["linepay_refunds"]] == ["r1", "r2", "r3"]
    assert repo.rows[tx.uuid] == TransactionStatus.REFUNDED


@pytest.mark.asyncio
async def test_partial_refund_reaching_total_is_a_full_refund():
    tx = _tx(TransactionStatus.SUCCEEDED)
    updated = await TransactionStateMachine(DictTransactionRepository(tx)).record_refund(
        tx, amount=800, refund_info={}
    )
    assert updated.status == TransactionStatus.REFUNDED


@pytest.mark.parametrize(
    "status, meta, expected",
    [
        (TransactionStatus.SUCCEEDED, {}, ("paid", "processing")),
        (TransactionStatus.SUCCEEDED, {"refunded_amount": 300}, ("partially_refunded", "processing")),
        (TransactionStatus.REFUNDED, {"refunded_amount": 800}, ("refunded", "refunded")),
        (TransactionStatus.PENDING, {}, None),
        (TransactionStatus.FAILED, {}, None),
    ],
)
def test_order_statuses_follow_transaction(status, meta, expected):
    tx = _tx(status)
    tx.meta = meta
    assert order_statuses_for(tx) == expected
