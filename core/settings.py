"""
Payment-related settings using pydantic-settings v2 with nested env keys.

LINE Pay channel credentials (LINEPAY__*), storefront redirect paths (STORE__*)
and outbound HTTP timeouts. Kept apart from core.config.Settings.
"""
from __future__ import annotations

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, SecretStr


class PaymentTimeouts(BaseModel):
    connect: float = 10.0
    read: float = 30.0
    write: float = 30.0
    total: float = 30.0


class LinePaySettings(BaseModel):
    is_active: bool = False
    payment_mode: Literal["test", "live"] = "test"
    test_channel_id: Optional[str] = None
    test_channel_secret: Optional[SecretStr] = None
    live_channel_id: Optional[str] = None
    live_channel_secret: Optional[SecretStr] = None
    # Only sent to LINE Pay when enabled; omission means "off"
    auto_capture: bool = True
    payment_language: str = "zh-TW"
    sandbox_base_url: str = "https://sandbox-api-pay.line.me"
    production_base_url: str = "https://api-pay.line.me"


class StoreSettings(BaseModel):
    site_url: str = "http://localhost:8000"
    checkout_path: str = "/checkout"
    receipt_path: str = "/receipt"
    confirm_path: str = "/api/v1/payments/linepay/confirm"
    cancel_path: str = "/api/v1/payments/linepay/cancel"


class PaymentSettings(BaseSettings):
    default_provider: str = "linepay"
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)

    linepay: LinePaySettings = Field(default_factory=LinePaySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
