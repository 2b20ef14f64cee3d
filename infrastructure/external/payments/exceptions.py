"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class ProviderError(BusinessException):
    """HTTP call completed but the provider reported a failure (returnCode != "0000")."""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        self.provider_code = provider_code
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="ProviderError",
            details=full_details,
        )


class TransportError(BusinessException):
    """The HTTP call itself did not complete (DNS, TLS, connect/read timeout)."""

    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.TRANSPORT_ERROR,
            message=message,
            error_type="TransportError",
            details=full_details,
        )


class ConfigurationError(BusinessException):
    """Credentials are missing; an administrator has to fix the settings."""

    def __init__(self, message: str, *, provider: str, mode: str | None = None):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="ConfigurationError",
            details={"provider": provider, "mode": mode},
        )
