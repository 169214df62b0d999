"""Flex pass (cancellation protection) revenue sharing."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.shared.exceptions import InvalidInputException


@dataclass(frozen=True, slots=True)
class FlexPassSplit:
    platform_amount: int
    provider_amount: int
    total_amount: int
    platform_percent: int
    provider_percent: int


def split_flex_pass(price: int, platform_share_percent: int = 60) -> FlexPassSplit:
    """Split a flex pass price between platform and provider.

    The platform share is rounded half-up to whole cents and the provider gets
    the remainder, so the two amounts always add up to ``price``.
    """
    if isinstance(price, bool) or not isinstance(price, int) or price < 0:
        raise InvalidInputException("Flex pass price must be a non-negative integer amount in cents")
    if isinstance(platform_share_percent, bool) or not isinstance(platform_share_percent, int):
        raise InvalidInputException("Platform revenue share must be an integer percent")
    if not 0 <= platform_share_percent <= 100:
        raise InvalidInputException("Platform revenue share must be between 0 and 100")

    platform_amount = int(
        (Decimal(price) * Decimal(platform_share_percent) / Decimal(100)).quantize(
            Decimal(1),
            rounding=ROUND_HALF_UP,
        ),
    )
    return FlexPassSplit(
        platform_amount=platform_amount,
        provider_amount=price - platform_amount,
        total_amount=price,
        platform_percent=platform_share_percent,
        provider_percent=100 - platform_share_percent,
    )
