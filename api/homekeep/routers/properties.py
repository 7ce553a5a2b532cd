from fastapi import APIRouter, Depends, HTTPException

from homekeep.core.deps import get_tracker
from homekeep.schemas.maintenance import MaintenanceTaskRecord
from homekeep.schemas.property import PropertyCreate, PropertyRecord, PropertyUpdate
from homekeep.schemas.warranty import WarrantyRecord
from homekeep.services.store import Collection
from homekeep.services.tracker import HomeTracker

router = APIRouter(prefix="/properties", tags=["properties"])


async def _get_property(tracker: HomeTracker, property_id: str) -> PropertyRecord:
    prop = await tracker.store.get_by_id(Collection.PROPERTIES, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.get("/", response_model=list[PropertyRecord])
async def list_properties(tracker: HomeTracker = Depends(get_tracker)):
    return tracker.properties


@router.post("/", response_model=PropertyRecord, status_code=201)
async def create_property(
    payload: PropertyCreate,
    tracker: HomeTracker = Depends(get_tracker),
):
    return await tracker.add_property(payload)


@router.get("/{property_id}", response_model=PropertyRecord)
async def get_property(property_id: str, tracker: HomeTracker = Depends(get_tracker)):
    return await _get_property(tracker, property_id)


@router.patch("/{property_id}", response_model=PropertyRecord)
async def update_property(
    property_id: str,
    payload: PropertyUpdate,
    tracker: HomeTracker = Depends(get_tracker),
):
    prop = await _get_property(tracker, property_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    return await tracker.update_property(prop.model_copy(update=changes))


@router.delete("/{property_id}", status_code=204)
async def delete_property(property_id: str, tracker: HomeTracker = Depends(get_tracker)):
    # Missing ids are not an error: a retried cascade may have removed the property already
    await tracker.delete_property(property_id)


@router.get("/{property_id}/tasks", response_model=list[MaintenanceTaskRecord])
async def list_property_tasks(property_id: str, tracker: HomeTracker = Depends(get_tracker)):
    await _get_property(tracker, property_id)
    return tracker.tasks_for_property(property_id)


@router.get("/{property_id}/warranties", response_model=list[WarrantyRecord])
async def list_property_warranties(property_id: str, tracker: HomeTracker = Depends(get_tracker)):
    await _get_property(tracker, property_id)
    return tracker.warranties_for_property(property_id)
