from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import pytest

from app.core.enums import DepositTypeEnum, RoleEnum
from app.modules.services.schemas import ServiceCreate
from app.modules.services.service import ServiceCatalogService
from app.shared.exceptions import ForbiddenException, InvalidInputException, NotFoundException


def make_actor(role: RoleEnum) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=SimpleNamespace(name=role))


class FakeServicesRepository:
    def __init__(self) -> None:
        self.services: dict[UUID, SimpleNamespace] = {}

    async def create_service(self, provider_id: UUID, **values: Any) -> SimpleNamespace:
        service = SimpleNamespace(
            id=uuid4(),
            provider_id=provider_id,
            is_active=True,
            created_at=datetime(2026, 3, 1, tzinfo=UTC),
            updated_at=datetime(2026, 3, 1, tzinfo=UTC),
            **values,
        )
        self.services[service.id] = service
        return service

    async def get_service_by_id(self, service_id: UUID) -> SimpleNamespace | None:
        return self.services.get(service_id)


def make_payload(**overrides) -> ServiceCreate:
    values = {
        "name": "Window cleaning",
        "duration_minutes": 60,
        "deposit_amount": 5000,
        "late_cancellation_fee": 1500,
        "flex_pass_enabled": True,
        "flex_pass_price": 999,
    }
    values.update(overrides)
    return ServiceCreate(**values)


@pytest.mark.asyncio
async def test_provider_creates_service_and_previews_policy() -> None:
    repository = FakeServicesRepository()
    catalog = ServiceCatalogService(repository)  # type: ignore[arg-type]

    service = await catalog.create_service(make_payload(), make_actor(RoleEnum.PROVIDER))
    policy = await catalog.get_policy(service.id)

    assert policy.deposit_amount == 5000
    assert policy.snapshot["cancellation_window_hours"] == 24
    assert policy.snapshot["minimum_cancellation_hours"] == 2
    assert "Late cancellation fee: 15.00" in policy.summary
    assert policy.flex_pass_split is not None
    assert policy.flex_pass_split.platform_amount == 599
    assert policy.flex_pass_split.provider_amount == 400


@pytest.mark.asyncio
async def test_policy_without_flex_pass_has_no_split() -> None:
    repository = FakeServicesRepository()
    catalog = ServiceCatalogService(repository)  # type: ignore[arg-type]
    service = await catalog.create_service(
        make_payload(flex_pass_enabled=False, flex_pass_price=None),
        make_actor(RoleEnum.PROVIDER),
    )

    policy = await catalog.get_policy(service.id)

    assert policy.flex_pass_split is None


@pytest.mark.asyncio
async def test_percentage_deposit_needs_full_price() -> None:
    catalog = ServiceCatalogService(FakeServicesRepository())  # type: ignore[arg-type]

    with pytest.raises(InvalidInputException):
        await catalog.create_service(
            make_payload(deposit_type=DepositTypeEnum.PERCENTAGE, deposit_amount=20),
            make_actor(RoleEnum.PROVIDER),
        )


@pytest.mark.asyncio
async def test_only_providers_create_services() -> None:
    catalog = ServiceCatalogService(FakeServicesRepository())  # type: ignore[arg-type]

    with pytest.raises(ForbiddenException):
        await catalog.create_service(make_payload(), make_actor(RoleEnum.CUSTOMER))


@pytest.mark.asyncio
async def test_unknown_service_policy_is_not_found() -> None:
    catalog = ServiceCatalogService(FakeServicesRepository())  # type: ignore[arg-type]

    with pytest.raises(NotFoundException):
        await catalog.get_policy(uuid4())
