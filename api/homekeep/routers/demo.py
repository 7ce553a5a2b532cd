from fastapi import APIRouter, Depends

from homekeep.core.deps import get_tracker
from homekeep.services.demo_data import seed_demo_data
from homekeep.services.tracker import HomeTracker

router = APIRouter(prefix="/demo-data", tags=["demo"])


@router.post("/")
async def create_demo_data(tracker: HomeTracker = Depends(get_tracker)):
    seeded = await seed_demo_data(tracker)
    return {"seeded": seeded}
