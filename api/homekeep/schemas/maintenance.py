from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from homekeep.schemas.common import Category, Frequency, UTCDatetime


class MaintenanceTaskCreate(BaseModel):
    property_id: str
    title: str
    description: str = ""
    category: Category = Category.OTHER
    frequency: Frequency
    last_completed: UTCDatetime | None = None
    next_due: UTCDatetime


class MaintenanceTaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: Category | None = None
    frequency: Frequency | None = None
    next_due: UTCDatetime | None = None


class MaintenanceTaskRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    title: str
    description: str
    category: Category
    frequency: Frequency
    last_completed: UTCDatetime | None
    next_due: UTCDatetime
    created_at: UTCDatetime
    updated_at: UTCDatetime


class MaintenanceLogCreate(BaseModel):
    """Completion details supplied when a task is marked done."""
    completed_date: UTCDatetime
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str = ""
    service_provider_id: str | None = None
    documents: list[str] = Field(default_factory=list)


class MaintenanceLogRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    property_id: str
    completed_date: UTCDatetime
    cost: Decimal
    notes: str
    service_provider_id: str | None
    documents: list[str]
    created_at: UTCDatetime
    updated_at: UTCDatetime


class MaintenanceCompletion(BaseModel):
    log: MaintenanceLogRecord
    task: MaintenanceTaskRecord


class MaintenanceTaskDetail(BaseModel):
    task: MaintenanceTaskRecord
    frequency_label: str
    priority: str
    logs: list[MaintenanceLogRecord]
