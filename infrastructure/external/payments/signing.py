"""
LINE Pay v3 request signing.

signature = Base64(HMAC-SHA256(key=channel_secret,
                               msg=channel_secret + uri + body + nonce))
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import uuid
from typing import Any, Union

BytesLike = Union[str, bytes]


def _to_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def sign(secret: BytesLike, uri: BytesLike, body: BytesLike, nonce: BytesLike) -> str:
    key = _to_bytes(secret)
    message = key + _to_bytes(uri) + _to_bytes(body) + _to_bytes(nonce)
    digest = hmac.new(key, message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def new_nonce() -> str:
    """Fresh random nonce per request; reusing one enables replay."""
    return str(uuid.uuid4())


def canonical_json(payload: Any) -> bytes:
    """Serialize once; the same bytes are signed and sent."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
