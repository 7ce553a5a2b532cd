import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request

from homekeep.core.deps import get_ocr_client, get_tracker
from homekeep.core.ratelimit import limiter
from homekeep.schemas.warranty import (
    WarrantyCreate,
    WarrantyDraft,
    WarrantyRecord,
    WarrantyScanRequest,
    WarrantyUpdate,
)
from homekeep.services.store import Collection
from homekeep.services.tracker import HomeTracker
from homekeep.services.warranty_ocr import OcrClient, to_warranty_draft

router = APIRouter(prefix="/warranties", tags=["warranties"])


async def _get_warranty(tracker: HomeTracker, warranty_id: str) -> WarrantyRecord:
    warranty = await tracker.store.get_by_id(Collection.WARRANTIES, warranty_id)
    if warranty is None:
        raise HTTPException(status_code=404, detail="Warranty not found")
    return warranty


@router.get("/", response_model=list[WarrantyRecord])
async def list_warranties(
    property_id: str | None = None,
    tracker: HomeTracker = Depends(get_tracker),
):
    if property_id is not None:
        return tracker.warranties_for_property(property_id)
    return tracker.warranties


@router.post("/", response_model=WarrantyRecord, status_code=201)
async def create_warranty(
    payload: WarrantyCreate,
    tracker: HomeTracker = Depends(get_tracker),
):
    if await tracker.store.get_by_id(Collection.PROPERTIES, payload.property_id) is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return await tracker.add_warranty(payload)


@router.post("/scan", response_model=WarrantyDraft)
@limiter.limit("10/minute")
async def scan_warranty(
    request: Request,
    payload: WarrantyScanRequest,
    tracker: HomeTracker = Depends(get_tracker),
    ocr: OcrClient = Depends(get_ocr_client),
):
    """Extract pre-fill hints from a warranty document. Nothing is saved."""
    extraction = await asyncio.to_thread(ocr.extract, payload.file_base64)
    return to_warranty_draft(extraction)


@router.get("/{warranty_id}", response_model=WarrantyRecord)
async def get_warranty(warranty_id: str, tracker: HomeTracker = Depends(get_tracker)):
    return await _get_warranty(tracker, warranty_id)


@router.patch("/{warranty_id}", response_model=WarrantyRecord)
async def update_warranty(
    warranty_id: str,
    payload: WarrantyUpdate,
    tracker: HomeTracker = Depends(get_tracker),
):
    warranty = await _get_warranty(tracker, warranty_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    merged = WarrantyRecord.model_validate({**warranty.model_dump(), **changes})
    if merged.expiry_date < merged.purchase_date:
        raise HTTPException(status_code=422, detail="expiry_date must not be earlier than purchase_date")
    return await tracker.update_warranty(merged)


@router.delete("/{warranty_id}", status_code=204)
async def delete_warranty(warranty_id: str, tracker: HomeTracker = Depends(get_tracker)):
    await tracker.delete_warranty(warranty_id)
