"""Immutable per-booking policy snapshots.

A snapshot freezes a service's cancellation and refund terms when a booking is
created. Every later refund or fee decision reads the snapshot stored on the
booking and never the live service row, so editing a service's policy does
not change the outcome for existing bookings.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from app.core.config import get_settings
from app.core.enums import DepositTypeEnum
from app.shared.exceptions import InvalidInputException, InvalidSnapshotException
from app.shared.utils import format_cents, utc_now

logger = logging.getLogger(__name__)

Cents = Annotated[int, Field(ge=0, strict=True)]
Hours = Annotated[int, Field(ge=0, strict=True)]


class ProtectionAddon(BaseModel):
    """Vertical-specific protection add-on offered with a service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Cents
    rules: dict[str, Any] = Field(default_factory=dict)


class PolicySnapshot(BaseModel):
    """Frozen policy terms bound to one booking."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    service_id: UUID
    service_name: str = Field(min_length=1)
    service_version: datetime
    snapshot_created_at: datetime

    deposit_amount: Cents
    deposit_type: DepositTypeEnum
    full_price: Cents | None = None

    cancellation_window_hours: Hours
    minimum_cancellation_hours: Hours
    late_cancellation_fee: Cents | None = None
    no_show_fee: Cents | None = None
    allow_partial_refunds: bool
    auto_refund_on_cancel: bool

    flex_pass_enabled: bool
    flex_pass_price: Cents | None = None
    flex_pass_revenue_share_percent: int = Field(ge=0, le=100, strict=True)
    flex_pass_rules: dict[str, Any] | None = None

    protection_addons: list[ProtectionAddon] | None = None

    def to_json(self) -> dict[str, Any]:
        """Serialize for JSONB storage."""
        return self.model_dump(mode="json")


_ADDONS_ADAPTER = TypeAdapter(list[ProtectionAddon])


def _decode_json_blob(value: Any, label: str) -> Any:
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Failed to parse %s payload, storing null", label)
            return None
    return value


def _parse_flex_pass_rules(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    decoded = _decode_json_blob(value, "flex pass rules")
    if decoded is None:
        return None
    if not isinstance(decoded, dict):
        logger.warning("Flex pass rules must be an object, got %s; storing null", type(decoded).__name__)
        return None
    return decoded


def _parse_protection_addons(value: Any) -> list[ProtectionAddon] | None:
    if value is None:
        return None
    decoded = _decode_json_blob(value, "protection addons")
    if decoded is None:
        return None
    if not isinstance(decoded, list):
        logger.warning("Protection addons must be a list, got %s; storing null", type(decoded).__name__)
        return None
    try:
        return _ADDONS_ADAPTER.validate_python(decoded)
    except ValidationError:
        logger.warning("Protection addons payload is malformed, storing null", exc_info=True)
        return None


def _default(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def create_policy_snapshot(service: Any, *, now: datetime | None = None) -> PolicySnapshot:
    """Freeze the current policy of ``service`` into a snapshot.

    Unset policy fields fall back to the configured defaults. Malformed
    free-form rule payloads degrade to ``None``; malformed monetary values
    raise ``InvalidInputException``.
    """
    settings = get_settings()
    try:
        return PolicySnapshot(
            service_id=service.id,
            service_name=service.name,
            service_version=service.updated_at,
            snapshot_created_at=now or utc_now(),
            deposit_amount=service.deposit_amount,
            deposit_type=_default(service.deposit_type, DepositTypeEnum.FIXED),
            full_price=service.full_price,
            cancellation_window_hours=_default(
                service.cancellation_window_hours,
                settings.default_cancellation_window_hours,
            ),
            minimum_cancellation_hours=_default(
                service.minimum_cancellation_hours,
                settings.default_minimum_cancellation_hours,
            ),
            late_cancellation_fee=service.late_cancellation_fee,
            no_show_fee=service.no_show_fee,
            allow_partial_refunds=_default(service.allow_partial_refunds, True),
            auto_refund_on_cancel=_default(service.auto_refund_on_cancel, True),
            flex_pass_enabled=_default(service.flex_pass_enabled, False),
            flex_pass_price=service.flex_pass_price,
            flex_pass_revenue_share_percent=_default(
                service.flex_pass_revenue_share_percent,
                settings.default_flex_pass_revenue_share_percent,
            ),
            flex_pass_rules=_parse_flex_pass_rules(service.flex_pass_rules),
            protection_addons=_parse_protection_addons(service.protection_addons),
        )
    except ValidationError as exc:
        raise InvalidInputException(f"Service {service.id} has invalid policy configuration: {exc}") from exc


def load_policy_snapshot(raw: Any) -> PolicySnapshot | None:
    """Validate a stored snapshot. ``None`` when absent, ``InvalidSnapshotException`` when corrupt."""
    if raw is None or raw == {} or raw == "":
        return None
    if isinstance(raw, PolicySnapshot):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Stored policy snapshot is not valid JSON")
            raise InvalidSnapshotException("Invalid policy snapshot in booking") from exc
    try:
        return PolicySnapshot.model_validate(raw)
    except ValidationError as exc:
        logger.error("Stored policy snapshot failed validation: %s", exc)
        raise InvalidSnapshotException("Invalid policy snapshot in booking") from exc


def validate_policy_snapshot(raw: Any) -> bool:
    """Return True when ``raw`` is a well-formed snapshot."""
    try:
        return load_policy_snapshot(raw) is not None
    except InvalidSnapshotException:
        return False


def has_valid_policy_snapshot(booking: Any) -> bool:
    return validate_policy_snapshot(getattr(booking, "policy_snapshot", None))


def get_policy_summary(snapshot: PolicySnapshot, currency: str = "AUD") -> str:
    """Human-readable summary of the frozen terms."""
    parts = [f"Free cancellation up to {snapshot.cancellation_window_hours} hours before booking"]

    if snapshot.late_cancellation_fee:
        parts.append(
            f"Late cancellation fee: {format_cents(snapshot.late_cancellation_fee, currency)} "
            f"(if cancelled within {snapshot.cancellation_window_hours} hours)",
        )
    if snapshot.minimum_cancellation_hours > 0:
        parts.append(f"Must cancel at least {snapshot.minimum_cancellation_hours} hours before booking")
    if not snapshot.allow_partial_refunds:
        parts.append("No refunds outside the free cancellation window")
    if snapshot.no_show_fee:
        parts.append(f"No-show fee: {format_cents(snapshot.no_show_fee, currency)}")
    if snapshot.flex_pass_enabled and snapshot.flex_pass_price:
        parts.append(
            f"Cancellation protection available for {format_cents(snapshot.flex_pass_price, currency)} "
            "(cancel anytime for full refund)",
        )

    return ". ".join(parts) + "."
