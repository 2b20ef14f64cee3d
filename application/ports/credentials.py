"""
Credential store port.

Encryption at rest belongs to the implementation; callers only ever see the
plaintext secret for the requested mode.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class CredentialStore(Protocol):
    def get_mode(self) -> str: ...

    def get_channel_id(self, mode: Optional[str] = None) -> str: ...

    def get_channel_secret(self, mode: Optional[str] = None) -> str: ...

    def get_api_base_url(self, mode: Optional[str] = None) -> str: ...

    def get(self, key: str) -> Any: ...
