"""
Amount conversion between host minor units and LINE Pay units.

The host stores TWD amounts in hundredths (800 == NT$8) while LINE Pay
treats TWD as a zero-decimal currency and expects whole units.
"""
from __future__ import annotations

from domain.common.exceptions import DomainValidationException


# Multi-currency is deliberately not supported by this integration.
SUPPORTED_CURRENCY = "TWD"
MINOR_UNITS_PER_PROVIDER_UNIT = 100


def is_supported_currency(currency: str | None) -> bool:
    return (currency or "").strip().upper() == SUPPORTED_CURRENCY


def to_provider_units(minor_units: int) -> int:
    """Convert a minor-unit amount to provider units, truncating.

    850 -> 8, 199 -> 1, 99 -> 0. Never rounds up.
    """
    # bool is an int subclass; reject it explicitly
    if isinstance(minor_units, bool) or not isinstance(minor_units, int):
        raise DomainValidationException(
            f"Amount must be an integer number of minor units: {minor_units!r}",
            field="amount",
        )
    if minor_units < 0:
        raise DomainValidationException(
            f"Amount must not be negative: {minor_units}",
            field="amount",
        )
    return minor_units // MINOR_UNITS_PER_PROVIDER_UNIT


def to_minor_units(provider_units: int) -> int:
    """Inverse of to_provider_units for amounts LINE Pay actually moved: 3 -> 300."""
    return provider_units * MINOR_UNITS_PER_PROVIDER_UNIT
