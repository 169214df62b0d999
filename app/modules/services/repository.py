"""Service catalog repository layer."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.services.models import Service


class ServicesRepository:
    """DB operations for service catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_service_by_id(self, service_id: UUID) -> Service | None:
        stmt = select(Service).options(selectinload(Service.provider)).where(Service.id == service_id)
        return await self.session.scalar(stmt)

    async def create_service(self, provider_id: UUID, **values: Any) -> Service:
        service = Service(provider_id=provider_id, **values)
        self.session.add(service)
        await self.session.flush()
        return service
