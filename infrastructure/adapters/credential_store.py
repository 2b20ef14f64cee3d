"""
CredentialStore adapter backed by pydantic-settings.

Secrets arrive as SecretStr (environment / .env); encryption at rest is the
deployment's concern.
"""
from __future__ import annotations

from typing import Any, Optional

from application.ports.credentials import CredentialStore
from core.settings import LinePaySettings, payment_settings


class SettingsCredentialStore(CredentialStore):
    def __init__(self, settings: Optional[LinePaySettings] = None) -> None:
        self._settings = settings or payment_settings.linepay

    def get_mode(self) -> str:
        return self._settings.payment_mode

    def _mode(self, mode: Optional[str]) -> str:
        return mode or self.get_mode()

    def get_channel_id(self, mode: Optional[str] = None) -> str:
        value = getattr(self._settings, f"{self._mode(mode)}_channel_id", None)
        return (value or "").strip()

    def get_channel_secret(self, mode: Optional[str] = None) -> str:
        secret = getattr(self._settings, f"{self._mode(mode)}_channel_secret", None)
        if secret is None:
            return ""
        return secret.get_secret_value().strip()

    def get_api_base_url(self, mode: Optional[str] = None) -> str:
        if self._mode(mode) == "test":
            return self._settings.sandbox_base_url
        return self._settings.production_base_url

    def get(self, key: str) -> Any:
        return getattr(self._settings, key, None)
