"""Service catalog business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.modules.booking.service import calculate_deposit_amount
from app.modules.identity.models import User
from app.modules.policy.flex_pass import split_flex_pass
from app.modules.policy.snapshot import create_policy_snapshot, get_policy_summary
from app.modules.services.models import Service
from app.modules.services.repository import ServicesRepository
from app.modules.services.schemas import FlexPassSplitRead, ServiceCreate, ServicePolicyRead
from app.shared.exceptions import ForbiddenException, NotFoundException

settings = get_settings()


class ServiceCatalogService:
    """Provider-owned services and their policy preview."""

    def __init__(self, repository: ServicesRepository) -> None:
        self.repository = repository

    async def create_service(self, payload: ServiceCreate, actor: User) -> Service:
        """Create a service owned by the calling provider."""
        if actor.role.name != RoleEnum.PROVIDER:
            raise ForbiddenException("Only providers can create services")
        service = await self.repository.create_service(actor.id, **payload.model_dump())
        calculate_deposit_amount(create_policy_snapshot(service))
        return service

    async def get_policy(self, service_id: UUID) -> ServicePolicyRead:
        """Preview the snapshot, summary and flex pass split for a new booking."""
        service = await self.repository.get_service_by_id(service_id)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found")

        snapshot = create_policy_snapshot(service)
        flex_pass_split = None
        if snapshot.flex_pass_enabled and snapshot.flex_pass_price is not None:
            split = split_flex_pass(snapshot.flex_pass_price, snapshot.flex_pass_revenue_share_percent)
            flex_pass_split = FlexPassSplitRead.model_validate(split)

        return ServicePolicyRead(
            snapshot=snapshot.to_json(),
            deposit_amount=calculate_deposit_amount(snapshot),
            summary=get_policy_summary(snapshot, settings.currency),
            flex_pass_split=flex_pass_split,
        )


async def get_service_catalog_service(
    session: AsyncSession = Depends(get_db_session),
) -> ServiceCatalogService:
    """Dependency provider for service catalog."""
    return ServiceCatalogService(ServicesRepository(session))
