"""
API依赖项 - 支付服务装配（composition root）
"""
from typing import AsyncIterator, Callable

from fastapi import Depends

from application.dtos.payments import CheckoutUrls
from application.ports.credentials import CredentialStore
from application.ports.payment_method import PaymentMethod
from application.services.payment_service import PaymentService
from core.settings import payment_settings
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.adapters.credential_store import SettingsCredentialStore
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import uow_factory


def get_uow_factory() -> Callable[..., AbstractUnitOfWork]:
    return uow_factory


def get_credential_store() -> CredentialStore:
    return SettingsCredentialStore()


def get_checkout_urls() -> CheckoutUrls:
    store = payment_settings.store
    return CheckoutUrls(
        site_url=store.site_url,
        confirm_path=store.confirm_path,
        cancel_path=store.cancel_path,
        checkout_path=store.checkout_path,
        receipt_path=store.receipt_path,
    )


async def get_payment_service(
    uow: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
    urls: CheckoutUrls = Depends(get_checkout_urls),
    credentials: CredentialStore = Depends(get_credential_store),
) -> AsyncIterator[PaymentMethod]:
    """每个请求一个服务实例，结束时关闭底层 HTTP 客户端"""
    service = PaymentService(
        gateway=get_payment_gateway("linepay"),
        uow_factory=uow,
        urls=urls,
        credentials=credentials,
    )
    try:
        yield service
    finally:
        await service.aclose()
