"""Service catalog schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import DepositTypeEnum


class ServiceCreate(BaseModel):
    """Create service request. Unset policy fields use platform defaults."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    duration_minutes: int = Field(gt=0, le=24 * 60)
    deposit_amount: int = Field(gt=0)
    deposit_type: DepositTypeEnum = DepositTypeEnum.FIXED
    full_price: int | None = Field(default=None, ge=0)
    cancellation_window_hours: int | None = Field(default=None, ge=0)
    minimum_cancellation_hours: int | None = Field(default=None, ge=0)
    late_cancellation_fee: int | None = Field(default=None, ge=0)
    no_show_fee: int | None = Field(default=None, ge=0)
    allow_partial_refunds: bool | None = None
    auto_refund_on_cancel: bool | None = None
    flex_pass_enabled: bool | None = None
    flex_pass_price: int | None = Field(default=None, ge=0)
    flex_pass_revenue_share_percent: int | None = Field(default=None, ge=0, le=100)
    flex_pass_rules: dict[str, Any] | None = None
    protection_addons: list[dict[str, Any]] | None = None


class ServiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider_id: UUID
    name: str
    description: str | None
    duration_minutes: int
    is_active: bool
    deposit_amount: int
    deposit_type: DepositTypeEnum
    full_price: int | None
    created_at: datetime
    updated_at: datetime


class FlexPassSplitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform_amount: int
    provider_amount: int
    total_amount: int
    platform_percent: int
    provider_percent: int


class ServicePolicyRead(BaseModel):
    """Terms a booking made now would be frozen with."""

    snapshot: dict[str, Any]
    deposit_amount: int
    summary: str
    flex_pass_split: FlexPassSplitRead | None
