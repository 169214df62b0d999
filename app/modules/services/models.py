"""Service catalog ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import DepositTypeEnum

if TYPE_CHECKING:
    from app.modules.booking.models import Booking
    from app.modules.identity.models import User


class Service(BaseModelMixin, Base):
    """Bookable service with its live pricing and cancellation policy.

    Bookings never read these policy columns after creation; they carry their
    own frozen copy in ``Booking.policy_snapshot``.
    """

    __tablename__ = "services"

    provider_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    deposit_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    deposit_type: Mapped[DepositTypeEnum] = mapped_column(
        SAEnum(DepositTypeEnum, name="deposit_type_enum", native_enum=False),
        default=DepositTypeEnum.FIXED,
        nullable=False,
    )
    full_price: Mapped[int | None] = mapped_column(Integer, nullable=True)

    cancellation_window_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_cancellation_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    late_cancellation_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    no_show_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    allow_partial_refunds: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    auto_refund_on_cancel: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    flex_pass_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    flex_pass_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    flex_pass_revenue_share_percent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    flex_pass_rules: Mapped[Any | None] = mapped_column(JSONB, nullable=True)
    protection_addons: Mapped[Any | None] = mapped_column(JSONB, nullable=True)

    provider: Mapped["User"] = relationship(back_populates="services")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="service")
