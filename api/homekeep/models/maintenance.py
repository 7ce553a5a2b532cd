from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from homekeep.core.database import Base, UTCDateTime


class MaintenanceTask(Base):
    __tablename__ = "maintenance_tasks"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    property_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(50))  # Home | HVAC | Plumbing | ...
    frequency: Mapped[dict] = mapped_column(JSON)  # {"value": 3, "unit": "months"}
    last_completed: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    next_due: Mapped[datetime] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime)


class MaintenanceLog(Base):
    __tablename__ = "maintenance_logs"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    task_id: Mapped[str] = mapped_column(String(64), index=True)
    property_id: Mapped[str] = mapped_column(String(64), index=True)  # denormalised for filtering
    completed_date: Mapped[datetime] = mapped_column(UTCDateTime)
    cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    notes: Mapped[str] = mapped_column(Text, default="")
    service_provider_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    documents: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime)
