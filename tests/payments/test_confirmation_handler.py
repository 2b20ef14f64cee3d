import asyncio
from urllib.parse import parse_qs, urlparse

import pytest

from application.services.cancellation_handler import CancellationHandler
from application.services.confirmation_handler import ConfirmationHandler
from domain.payment.entity import TransactionStatus
from infrastructure.external.payments.exceptions import ProviderError


PROVIDER_TX = "2024061500000000001"


def _params(uuid="tx-uuid-1", provider_tx=PROVIDER_TX):
    params = {}
    if provider_tx is not None:
        params["transactionId"] = provider_tx
    if uuid is not None:
        params["transaction_id"] = uuid
    return params


def _error_of(url):
    return parse_qs(urlparse(url).query)["error"][0]


@pytest.mark.asyncio
async def test_confirm_marks_transaction_succeeded_and_settles_order(seeded, gateway, uow_factory, urls):
    handler = ConfirmationHandler(gateway, uow_factory, urls)

    redirect = await handler.handle(_params())

    assert redirect.success
    assert redirect.url == "https://shop.example.com/receipt?transaction_id=tx-uuid-1"
    assert gateway.confirms == [(PROVIDER_TX, 8, "TWD")]
    stored = seeded.transactions["tx-uuid-1"]
    assert stored.status == TransactionStatus.SUCCEEDED
    assert stored.vendor_charge_id == PROVIDER_TX
    assert stored.meta["payment_note"] == "LINE Pay payment succeeded"
    assert stored.meta["linepay_response"]["returnCode"] == "0000"
    assert seeded.total_paid == {1: 800}
    assert seeded.order_status == {1: "paid"}


@pytest.mark.asyncio
async def test_second_callback_does_not_confirm_again(seeded, gateway, uow_factory, urls):
    handler = ConfirmationHandler(gateway, uow_factory, urls)

    first = await handler.handle(_params())
    second = await handler.handle(_params())

    assert first.success and second.success
    assert first.url == second.url
    assert len(gateway.confirms) == 1
    assert seeded.total_paid == {1: 800}


@pytest.mark.asyncio
async def test_concurrent_callbacks_settle_exactly_once(seeded, gateway, uow_factory, urls):
    handler = ConfirmationHandler(gateway, uow_factory, urls)

    results = await asyncio.gather(handler.handle(_params()), handler.handle(_params()))

    assert all(r.success for r in results)
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.SUCCEEDED
    assert seeded.total_paid == {1: 800}


@pytest.mark.parametrize(
    "params",
    [
        _params(provider_tx=None),
        _params(uuid=None),
        _params(provider_tx="  "),
        {},
    ],
)
@pytest.mark.asyncio
async def test_missing_callback_parameters_redirect_to_checkout(seeded, gateway, uow_factory, urls, params):
    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(params)

    assert not redirect.success
    assert redirect.url.startswith("https://shop.example.com/checkout?")
    assert _error_of(redirect.url) == "Invalid transaction information"
    assert gateway.confirms == []


@pytest.mark.asyncio
async def test_unknown_transaction_redirects_with_error(seeded, gateway, uow_factory, urls):
    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params(uuid="nope"))
    assert not redirect.success
    assert _error_of(redirect.url) == "Transaction record not found"
    assert gateway.confirms == []


@pytest.mark.asyncio
async def test_provider_failure_keeps_transaction_pending(seeded, gateway, uow_factory, urls):
    gateway.confirm_error = ProviderError("Payment expired.", provider="linepay", provider_code="1180")

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params())

    assert not redirect.success
    assert _error_of(redirect.url) == "Payment expired."
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.PENDING
    assert seeded.total_paid == {}


@pytest.mark.asyncio
async def test_settlement_failure_rolls_back_status_change(seeded, gateway, uow_factory, urls):
    seeded.settlement_error = RuntimeError("order table locked")

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params())

    assert not redirect.success
    assert _error_of(redirect.url) == "Payment confirmation failed"
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.PENDING
    assert seeded.rollbacks == 1


@pytest.mark.asyncio
async def test_callback_for_a_different_charge_is_rejected(seeded, gateway, uow_factory, urls):
    seeded.transactions["tx-uuid-1"].vendor_charge_id = "2024061500000000001"

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params(provider_tx="9999"))

    assert not redirect.success
    assert gateway.confirms == []


@pytest.mark.parametrize("status", [TransactionStatus.FAILED, TransactionStatus.REFUNDED])
@pytest.mark.asyncio
async def test_final_transactions_are_not_confirmed(seeded, gateway, uow_factory, urls, status):
    seeded.transactions["tx-uuid-1"].status = status

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params())

    assert not redirect.success
    assert gateway.confirms == []
    assert seeded.transactions["tx-uuid-1"].status == status


@pytest.mark.asyncio
async def test_provider_failure_after_concurrent_success_redirects_to_receipt(seeded, gateway, uow_factory, urls):
    class ConfirmedElsewhereGateway(type(gateway)):
        async def confirm_payment(self, transaction_id, amount, currency):
            seeded.transactions["tx-uuid-1"].status = TransactionStatus.SUCCEEDED
            raise ProviderError("Existing same orderId.", provider="linepay", provider_code="1172")

    redirect = await ConfirmationHandler(ConfirmedElsewhereGateway(), uow_factory, urls).handle(_params())

    assert redirect.success
    assert redirect.url.endswith("transaction_id=tx-uuid-1")


@pytest.mark.asyncio
async def test_cancel_during_confirm_still_settles_captured_payment(seeded, gateway, uow_factory, urls):
    cancellation = CancellationHandler(uow_factory, urls)

    class CancelledMidFlightGateway(type(gateway)):
        async def confirm_payment(self, transaction_id, amount, currency):
            await cancellation.handle({"transaction_id": "tx-uuid-1"})
            return await super().confirm_payment(transaction_id, amount, currency)

    slow_gateway = CancelledMidFlightGateway()
    redirect = await ConfirmationHandler(slow_gateway, uow_factory, urls).handle(_params())

    assert slow_gateway.confirms == [(PROVIDER_TX, 8, "TWD")]
    assert redirect.success
    assert redirect.url == "https://shop.example.com/receipt?transaction_id=tx-uuid-1"
    stored = seeded.transactions["tx-uuid-1"]
    assert stored.status == TransactionStatus.SUCCEEDED
    assert stored.meta["recovered_from"] == "canceled_by_user"
    assert "failure_reason" not in stored.meta
    assert seeded.total_paid == {1: 800}
    assert seeded.order_status == {1: "paid"}


@pytest.mark.asyncio
async def test_confirm_after_cancel_is_attempted_with_provider(seeded, gateway, uow_factory, urls):
    await CancellationHandler(uow_factory, urls).handle({"transaction_id": "tx-uuid-1"})
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.FAILED

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params())

    assert redirect.success
    assert gateway.confirms == [(PROVIDER_TX, 8, "TWD")]
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.SUCCEEDED
    assert seeded.total_paid == {1: 800}


@pytest.mark.asyncio
async def test_provider_rejection_after_cancel_keeps_transaction_failed(seeded, gateway, uow_factory, urls):
    await CancellationHandler(uow_factory, urls).handle({"transaction_id": "tx-uuid-1"})
    gateway.confirm_error = ProviderError("Payment info not confirmed by user.", provider="linepay", provider_code="1169")

    redirect = await ConfirmationHandler(gateway, uow_factory, urls).handle(_params())

    assert not redirect.success
    assert _error_of(redirect.url) == "Payment info not confirmed by user."
    assert seeded.transactions["tx-uuid-1"].status == TransactionStatus.FAILED
    assert seeded.total_paid == {}
