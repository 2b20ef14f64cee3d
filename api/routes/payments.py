"""
LINE Pay API routes.

Checkout, browser return legs (confirm/cancel) and a refund trigger. Keep
this thin: order/transaction loading happens here, payment logic lives in
the application service.
"""
from __future__ import annotations

import uuid
from typing import Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette import status as http_status

from api.dependencies import get_payment_service, get_uow_factory
from application.dtos.payments import CheckoutRequest, RefundCommand
from application.ports.payment_method import PaymentMethod
from core.logging_config import get_logger
from core.response import success_response
from domain.common.exceptions import (
    DomainValidationException,
    InvalidTransactionStateError,
    OrderNotFoundError,
    RefundAmountExceededError,
    TransactionNotFoundError,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import Transaction, TransactionStatus
from domain.payment.money import to_minor_units
from domain.payment.service import TransactionStateMachine
from shared.codes import BusinessCode


router = APIRouter(prefix="/payments/linepay", tags=["LINE Pay"])
logger = get_logger(__name__)


@router.get("/meta", summary="Payment method metadata")
async def payment_method_meta(service: PaymentMethod = Depends(get_payment_service)):
    return success_response(data=service.meta())


@router.get("/settings/validation", summary="Check LINE Pay credentials for the active mode")
async def validate_settings(service: PaymentMethod = Depends(get_payment_service)):
    result = service.validate_settings()
    code = BusinessCode.SUCCESS if result.status == "success" else BusinessCode.BUSINESS_ERROR
    return success_response(data=result.model_dump(mode="json"), message=result.message, code=code)


@router.post("/checkout", summary="Start a LINE Pay payment")
async def checkout(
    payload: CheckoutRequest,
    service: PaymentMethod = Depends(get_payment_service),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
):
    async with uow_factory() as uow:
        order = await uow.order_repository.get_by_id(payload.order_id)
        if order is None:
            raise OrderNotFoundError(payload.order_id)
        if payload.transaction_uuid:
            transaction = await uow.transaction_repository.get_by_uuid(payload.transaction_uuid)
            if transaction is None:
                raise TransactionNotFoundError(payload.transaction_uuid)
            if transaction.order_id != order.id:
                raise DomainValidationException(
                    "Transaction does not belong to the order",
                    field="transaction_uuid",
                )
        else:
            transaction = await uow.transaction_repository.create(
                Transaction(
                    id=None,
                    uuid=str(uuid.uuid4()),
                    order_id=order.id,
                    total=order.total_amount,
                    currency=order.currency,
                    payment_method=service.slug,
                )
            )

    result = await service.initiate_payment(order, transaction)
    code = BusinessCode.SUCCESS if result.status == "success" else BusinessCode.BUSINESS_ERROR
    return success_response(
        data={**result.model_dump(mode="json"), "transaction_uuid": transaction.uuid},
        message=result.message,
        code=code,
    )


@router.get("/confirm", summary="LINE Pay confirm redirect")
async def confirm(request: Request, service: PaymentMethod = Depends(get_payment_service)):
    instruction = await service.handle_confirmation_callback(dict(request.query_params))
    return RedirectResponse(instruction.url, status_code=http_status.HTTP_303_SEE_OTHER)


@router.get("/cancel", summary="LINE Pay cancel redirect")
async def cancel(request: Request, service: PaymentMethod = Depends(get_payment_service)):
    instruction = await service.handle_cancel(dict(request.query_params))
    return RedirectResponse(instruction.url, status_code=http_status.HTTP_303_SEE_OTHER)


@router.post("/refunds", summary="Refund a LINE Pay transaction")
async def refund(
    payload: RefundCommand,
    service: PaymentMethod = Depends(get_payment_service),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
):
    async with uow_factory(readonly=True) as uow:
        transaction = await uow.transaction_repository.get_by_uuid(payload.transaction_uuid)
    if transaction is None:
        raise TransactionNotFoundError(payload.transaction_uuid)
    if not transaction.can_transition_to(TransactionStatus.REFUNDED):
        raise InvalidTransactionStateError(
            transaction.uuid, transaction.status.value, TransactionStatus.REFUNDED.value
        )

    if payload.amount is not None and payload.amount > transaction.refundable_amount:
        raise RefundAmountExceededError(transaction.uuid, payload.amount, transaction.refundable_amount)

    outcome = await service.refund(transaction, payload.amount)
    if not outcome.success:
        return success_response(
            data=outcome.model_dump(mode="json"),
            message=outcome.message,
            code=BusinessCode.BUSINESS_ERROR,
        )

    async with uow_factory() as uow:
        machine = TransactionStateMachine(uow.transaction_repository)
        # refund_amount 为 LINE Pay 单位，记账使用最小单位
        refunded = None if outcome.refund_amount is None else to_minor_units(outcome.refund_amount)
        updated = await machine.record_refund(
            transaction,
            amount=refunded,
            refund_info={
                "refund_transaction_id": outcome.refund_transaction_id,
                "refund_amount": outcome.refund_amount,
            },
        )
        if updated is None:
            logger.warning("linepay_refund_status_conflict", transaction_uuid=transaction.uuid)
        else:
            await uow.settlement_notifier.sync_status_from(updated)

    return success_response(data=outcome.model_dump(mode="json"), message=outcome.message)
