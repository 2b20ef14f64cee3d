"""
Business codes carried in the `code` field of every API envelope.

Generic codes live here; payment flow codes (6xxxx) and LINE Pay
returnCode constants live in `shared.codes.payment_codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    # Request validation (1xxxx)
    PARAM_VALIDATION_ERROR = 10003

    # Business rules (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006

    # Access (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # Server side (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
