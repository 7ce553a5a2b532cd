from fastapi import APIRouter, Depends, HTTPException

from homekeep.core.deps import get_tracker
from homekeep.schemas.common import Category
from homekeep.schemas.service_provider import (
    ServiceProviderCreate,
    ServiceProviderRecord,
    ServiceProviderUpdate,
)
from homekeep.services.store import Collection
from homekeep.services.tracker import HomeTracker

router = APIRouter(prefix="/service-providers", tags=["service-providers"])


async def _get_provider(tracker: HomeTracker, provider_id: str) -> ServiceProviderRecord:
    provider = await tracker.store.get_by_id(Collection.SERVICE_PROVIDERS, provider_id)
    if provider is None:
        raise HTTPException(status_code=404, detail="Service provider not found")
    return provider


@router.get("/", response_model=list[ServiceProviderRecord])
async def list_service_providers(
    category: Category | None = None,
    tracker: HomeTracker = Depends(get_tracker),
):
    providers = tracker.service_providers
    if category is not None:
        providers = [p for p in providers if category in p.category]
    return providers


@router.post("/", response_model=ServiceProviderRecord, status_code=201)
async def create_service_provider(
    payload: ServiceProviderCreate,
    tracker: HomeTracker = Depends(get_tracker),
):
    return await tracker.add_service_provider(payload)


@router.get("/{provider_id}", response_model=ServiceProviderRecord)
async def get_service_provider(provider_id: str, tracker: HomeTracker = Depends(get_tracker)):
    return await _get_provider(tracker, provider_id)


@router.patch("/{provider_id}", response_model=ServiceProviderRecord)
async def update_service_provider(
    provider_id: str,
    payload: ServiceProviderUpdate,
    tracker: HomeTracker = Depends(get_tracker),
):
    provider = await _get_provider(tracker, provider_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    merged = ServiceProviderRecord.model_validate({**provider.model_dump(), **changes})
    return await tracker.update_service_provider(merged)


@router.delete("/{provider_id}", status_code=204)
async def delete_service_provider(provider_id: str, tracker: HomeTracker = Depends(get_tracker)):
    await tracker.delete_service_provider(provider_id)
