"""
Payment specific codes and LINE Pay return-code constants.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6000x)
    PROVIDER_ERROR = 60000
    TRANSPORT_ERROR = 60003
    CONFIGURATION_ERROR = 60005

    # Checkout/confirmation flow errors (6001x)
    UNSUPPORTED_CURRENCY = 60010
    INVALID_CALLBACK = 60011
    TRANSACTION_NOT_FOUND = 60012
    MISSING_CHARGE_REFERENCE = 60013
    INVALID_TRANSACTION_STATE = 60014


# LINE Pay returnCode values
LINEPAY_SUCCESS_CODE = "0000"

# Commonly seen failure codes, kept for log readability only.
LINEPAY_RETURN_CODES = {
    "0000": "Success",
    "1104": "Merchant not found",
    "1106": "Header information error",
    "1124": "Amount info error",
    "1145": "Payment in progress",
    "1150": "Transaction record not found",
    "1165": "Transaction already cancelled",
    "1169": "Payment info not confirmed by user",
    "1172": "Existing same orderId",
    "1180": "Payment expired",
    "1198": "API call request duplicated",
    "1199": "Internal request error",
    "1264": "Refund amount exceeds refundable amount",
    "9000": "Internal error",
}
