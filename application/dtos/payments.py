"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Literal
from urllib.parse import urlencode

from pydantic import BaseModel, Field, ConfigDict, field_validator

from shared.codes.payment_codes import LINEPAY_SUCCESS_CODE


class LinePayProduct(BaseModel):
    id: str
    name: str
    quantity: int = Field(gt=0)
    price: int = Field(ge=0)  # provider (whole) units
    image_url: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
            "imageUrl": self.image_url,
        }


class PaymentRequest(BaseModel):
    amount: int = Field(ge=0)  # provider units
    currency: str
    order_id: str
    products: list[LinePayProduct] = Field(min_length=1)
    confirm_url: str
    cancel_url: str
    auto_capture: bool = False

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        u = (v or "").upper()
        if len(u) != 3 or not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u


class ProviderResponse(BaseModel):
    """Parsed LINE Pay envelope: returnCode/returnMessage plus optional info."""

    return_code: str
    return_message: str = ""
    info: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.return_code == LINEPAY_SUCCESS_CODE


class PaymentRequestResult(BaseModel):
    transaction_id: str
    payment_url: str
    response: ProviderResponse


class InitiationResult(BaseModel):
    status: Literal["success", "failed"]
    message: str
    redirect_to: Optional[str] = None
    error_type: Optional[str] = None


class ConfirmationCallback(BaseModel):
    """Query parameters of the browser redirect; both values are untrusted."""

    provider_transaction_id: Optional[str] = None
    transaction_uuid: Optional[str] = None

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "ConfirmationCallback":
        def _clean(value: Any) -> Optional[str]:
            if value is None:
                return None
            s = str(value).strip()
            return s or None

        return cls(
            provider_transaction_id=_clean(params.get("transactionId")),
            transaction_uuid=_clean(params.get("transaction_id")),
        )


class RedirectInstruction(BaseModel):
    url: str
    success: bool
    message: Optional[str] = None


class RefundOutcome(BaseModel):
    success: bool
    message: str
    refund_transaction_id: Optional[str] = None
    refund_amount: Optional[int] = None  # provider units, None means full refund
    error_type: Optional[str] = None


class SettingsValidation(BaseModel):
    """Result of checking the channel credentials for the active mode."""

    status: Literal["success", "failed"]
    message: str
    mode: str
    missing: list[str] = Field(default_factory=list)


class CheckoutUrls(BaseModel):
    """Builds the redirect targets used by the checkout round trip."""

    model_config = ConfigDict(frozen=True)

    site_url: str
    confirm_path: str
    cancel_path: str
    checkout_path: str
    receipt_path: str

    def _absolute(self, path: str) -> str:
        return self.site_url.rstrip("/") + "/" + path.lstrip("/")

    def confirm_url(self, transaction_uuid: str) -> str:
        return f"{self._absolute(self.confirm_path)}?{urlencode({'transaction_id': transaction_uuid})}"

    def cancel_url(self, transaction_uuid: str) -> str:
        return f"{self._absolute(self.cancel_path)}?{urlencode({'transaction_id': transaction_uuid})}"

    def receipt_url(self, transaction_uuid: str) -> str:
        return f"{self._absolute(self.receipt_path)}?{urlencode({'transaction_id': transaction_uuid})}"

    def checkout_error_url(self, message: str) -> str:
        return f"{self._absolute(self.checkout_path)}?{urlencode({'error': message})}"


# API request bodies
class CheckoutRequest(BaseModel):
    order_id: int
    transaction_uuid: Optional[str] = None


class RefundCommand(BaseModel):
    transaction_uuid: str
    amount: Optional[int] = Field(default=None, description="Minor units; omit for a full refund")
