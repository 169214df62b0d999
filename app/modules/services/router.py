"""Service catalog API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.modules.identity.service import get_current_user
from app.modules.services.schemas import ServiceCreate, ServicePolicyRead, ServiceRead
from app.modules.services.service import ServiceCatalogService, get_service_catalog_service

router = APIRouter(prefix="/services", tags=["services"])


@router.post("", response_model=ServiceRead, status_code=201)
async def create_service(
    payload: ServiceCreate,
    service: ServiceCatalogService = Depends(get_service_catalog_service),
    current_user=Depends(get_current_user),
) -> ServiceRead:
    """Create a bookable service for the current provider."""
    created = await service.create_service(payload, current_user)
    return ServiceRead.model_validate(created)


@router.get("/{service_id}/policy", response_model=ServicePolicyRead)
async def get_service_policy(
    service_id: UUID,
    service: ServiceCatalogService = Depends(get_service_catalog_service),
) -> ServicePolicyRead:
    """Public preview of the cancellation terms a booking would get now."""
    return await service.get_policy(service_id)
