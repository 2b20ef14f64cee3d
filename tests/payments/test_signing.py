import base64
import hashlib
import hmac
import json

from infrastructure.external.payments.signing import canonical_json, new_nonce, sign


SECRET = "a917ab6a2367b536f8e5a6e2977e06f4"
URI = "/v3/payments/request"
BODY = '{"amount":8,"currency":"TWD","orderId":"1"}'
NONCE = "5f0e4a2c-1d3b-4c55-9a7e-2b1f6c0d8e11"


def test_sign_matches_hmac_of_secret_uri_body_nonce():
    expected = base64.b64encode(
        hmac.new(SECRET.encode(), (SECRET + URI + BODY + NONCE).encode(), hashlib.sha256).digest()
    ).decode()
    assert sign(SECRET, URI, BODY, NONCE) == expected


def test_sign_is_deterministic():
    assert sign(SECRET, URI, BODY, NONCE) == sign(SECRET, URI, BODY, NONCE)


def test_sign_accepts_bytes_and_str_alike():
    assert sign(SECRET, URI, BODY.encode(), NONCE) == sign(SECRET, URI, BODY, NONCE)


def test_single_byte_change_in_body_changes_signature():
    changed = BODY.replace('"amount":8', '"amount":9')
    assert sign(SECRET, URI, changed, NONCE) != sign(SECRET, URI, BODY, NONCE)


def test_single_byte_change_in_nonce_changes_signature():
    changed = NONCE[:-1] + "2"
    assert sign(SECRET, URI, BODY, changed) != sign(SECRET, URI, BODY, NONCE)


def test_uri_and_secret_are_part_of_signature():
    base = sign(SECRET, URI, BODY, NONCE)
    assert sign(SECRET, "/v3/payments/1/confirm", BODY, NONCE) != base
    assert sign(SECRET + "x", URI, BODY, NONCE) != base


def test_new_nonce_is_fresh():
    assert new_nonce() != new_nonce()


def test_canonical_json_is_compact_utf8():
    body = canonical_json({"name": "綠茶", "amount": 8})
    assert body == '{"name":"綠茶","amount":8}'.encode("utf-8")
    assert json.loads(body) == {"name": "綠茶", "amount": 8}


def test_empty_refund_payload_serializes_as_object():
    assert canonical_json({}) == b"{}"
