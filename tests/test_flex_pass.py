from __future__ import annotations

from typing import Any

import pytest

from app.modules.policy.flex_pass import FlexPassSplit, split_flex_pass
from app.shared.exceptions import InvalidInputException


def test_default_split_gives_platform_sixty_percent() -> None:
    split = split_flex_pass(999)

    assert split == FlexPassSplit(
        platform_amount=599,
        provider_amount=400,
        total_amount=999,
        platform_percent=60,
        provider_percent=40,
    )


def test_half_cent_rounds_up_for_platform() -> None:
    split = split_flex_pass(5, 50)

    assert split.platform_amount == 3
    assert split.provider_amount == 2


@pytest.mark.parametrize(
    ("price", "percent"),
    [(0, 60), (1, 60), (999, 0), (999, 100), (1234567, 33), (101, 49)],
)
def test_parts_always_add_up_to_price(price: int, percent: int) -> None:
    split = split_flex_pass(price, percent)

    assert split.platform_amount + split.provider_amount == price
    assert split.platform_percent + split.provider_percent == 100
    assert split.platform_amount >= 0
    assert split.provider_amount >= 0


def test_extreme_shares_give_everything_to_one_side() -> None:
    assert split_flex_pass(999, 100).provider_amount == 0
    assert split_flex_pass(999, 0).platform_amount == 0


@pytest.mark.parametrize(
    ("price", "percent"),
    [(-1, 60), (9.99, 60), ("999", 60), (True, 60), (999, 101), (999, -5), (999, 60.5)],
)
def test_invalid_inputs_are_rejected(price: Any, percent: Any) -> None:
    with pytest.raises(InvalidInputException):
        split_flex_pass(price, percent)
