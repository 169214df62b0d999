from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from app.core.config import Settings
from app.core.security import create_access_token, decode_token


def test_default_secret_key_allowed_in_development() -> None:
    settings = Settings(_env_file=None, app_env="development", secret_key="change-me")
    assert settings.secret_key == "change-me"
    assert settings.stripe_secret_key is None


def test_default_secret_key_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="production", secret_key="change-me", stripe_secret_key="sk_live_x")


def test_placeholder_secret_key_prefix_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="production",
            secret_key="change-me-in-production",
            stripe_secret_key="sk_live_x",
        )


def test_stripe_key_required_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="production", secret_key="super-secure-value")


def test_custom_secret_key_allowed_in_production_with_stripe_key() -> None:
    settings = Settings(
        _env_file=None,
        app_env="production",
        secret_key="super-secure-value",
        stripe_secret_key="sk_live_x",
    )
    assert settings.secret_key == "super-secure-value"


def test_policy_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.default_cancellation_window_hours == 24
    assert settings.default_minimum_cancellation_hours == 2
    assert settings.default_flex_pass_revenue_share_percent == 60
    assert settings.no_show_grace_period_hours == 2
    assert settings.no_show_max_concurrency == 5


def test_currency_is_normalized() -> None:
    assert Settings(_env_file=None, currency=" usd ").currency == "USD"


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_flex_pass_revenue_share_percent": 120},
        {"no_show_grace_period_hours": 0},
        {"no_show_max_concurrency": -1},
    ],
)
def test_invalid_policy_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_access_token_round_trip() -> None:
    token = create_access_token("5b0c3f3e-4d7e-4c1a-9a55-0d6c2c1f8e11")

    payload = decode_token(token)

    assert payload["sub"] == "5b0c3f3e-4d7e-4c1a-9a55-0d6c2c1f8e11"
    assert payload["type"] == "access"


def test_expired_or_tampered_token_is_unauthorized() -> None:
    expired = create_access_token("user", expires_delta=timedelta(minutes=-1))

    for token in (expired, "not-a-token"):
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401
