from fastapi import APIRouter, Depends, HTTPException

from homekeep.core.deps import get_tracker
from homekeep.schemas.notification import ToastResponse
from homekeep.services.tracker import HomeTracker

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/toasts", response_model=list[ToastResponse])
async def list_toasts(tracker: HomeTracker = Depends(get_tracker)):
    """Reminders that could not be pushed, newest first."""
    return tracker.scheduler.inbox.list()


@router.delete("/toasts/{toast_id}", status_code=204)
async def dismiss_toast(toast_id: str, tracker: HomeTracker = Depends(get_tracker)):
    if not tracker.scheduler.inbox.dismiss(toast_id):
        raise HTTPException(status_code=404, detail="Notification not found")


@router.delete("/toasts", status_code=204)
async def clear_toasts(tracker: HomeTracker = Depends(get_tracker)):
    tracker.scheduler.inbox.clear()
