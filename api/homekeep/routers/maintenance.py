from fastapi import APIRouter, Depends, HTTPException

from homekeep.core.deps import get_tracker
from homekeep.schemas.maintenance import (
    MaintenanceCompletion,
    MaintenanceLogCreate,
    MaintenanceLogRecord,
    MaintenanceTaskCreate,
    MaintenanceTaskDetail,
    MaintenanceTaskRecord,
    MaintenanceTaskUpdate,
)
from homekeep.services.recurrence import describe_frequency, priority_level
from homekeep.services.store import Collection
from homekeep.services.tracker import HomeTracker

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


async def _get_task(tracker: HomeTracker, task_id: str) -> MaintenanceTaskRecord:
    task = await tracker.store.get_by_id(Collection.MAINTENANCE_TASKS, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Maintenance task not found")
    return task


# ─── Tasks ────────────────────────────────────────────────────────────────────

@router.get("/tasks", response_model=list[MaintenanceTaskRecord])
async def list_tasks(
    property_id: str | None = None,
    tracker: HomeTracker = Depends(get_tracker),
):
    if property_id is not None:
        return tracker.tasks_for_property(property_id)
    return tracker.maintenance_tasks


@router.get("/tasks/priority", response_model=dict[str, list[MaintenanceTaskRecord]])
async def tasks_by_priority(
    property_id: str | None = None,
    tracker: HomeTracker = Depends(get_tracker),
):
    """Tasks bucketed into overdue / high / medium / low by days until due."""
    return tracker.tasks_by_priority(property_id)


@router.post("/tasks", response_model=MaintenanceTaskRecord, status_code=201)
async def create_task(
    payload: MaintenanceTaskCreate,
    tracker: HomeTracker = Depends(get_tracker),
):
    if await tracker.store.get_by_id(Collection.PROPERTIES, payload.property_id) is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return await tracker.add_maintenance_task(payload)


@router.get("/tasks/{task_id}", response_model=MaintenanceTaskDetail)
async def get_task(task_id: str, tracker: HomeTracker = Depends(get_tracker)):
    task = await _get_task(tracker, task_id)
    return MaintenanceTaskDetail(
        task=task,
        frequency_label=describe_frequency(task.frequency),
        priority=priority_level(task.next_due, tracker.now()),
        logs=tracker.get_maintenance_logs_for_task(task_id),
    )


@router.patch("/tasks/{task_id}", response_model=MaintenanceTaskRecord)
async def update_task(
    task_id: str,
    payload: MaintenanceTaskUpdate,
    tracker: HomeTracker = Depends(get_tracker),
):
    task = await _get_task(tracker, task_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    merged = MaintenanceTaskRecord.model_validate({**task.model_dump(), **changes})
    return await tracker.update_maintenance_task(merged)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str, tracker: HomeTracker = Depends(get_tracker)):
    await tracker.delete_maintenance_task(task_id)


@router.post("/tasks/{task_id}/complete", response_model=MaintenanceCompletion, status_code=201)
async def complete_task(
    task_id: str,
    payload: MaintenanceLogCreate,
    tracker: HomeTracker = Depends(get_tracker),
):
    log, task = await tracker.complete_maintenance_task(task_id, payload)
    return MaintenanceCompletion(log=log, task=task)


@router.post("/tasks/{task_id}/resync", response_model=MaintenanceTaskRecord)
async def resync_task(task_id: str, tracker: HomeTracker = Depends(get_tracker)):
    return await tracker.resync_task_from_logs(task_id)


@router.get("/tasks/{task_id}/logs", response_model=list[MaintenanceLogRecord])
async def list_task_logs(task_id: str, tracker: HomeTracker = Depends(get_tracker)):
    return tracker.get_maintenance_logs_for_task(task_id)


# ─── Logs ─────────────────────────────────────────────────────────────────────

@router.get("/logs", response_model=list[MaintenanceLogRecord])
async def list_logs(
    property_id: str | None = None,
    tracker: HomeTracker = Depends(get_tracker),
):
    logs = tracker.maintenance_logs
    if property_id is not None:
        logs = [log for log in logs if log.property_id == property_id]
    return logs
