from datetime import datetime

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from homekeep.core.database import Base, UTCDateTime

TRIAL_KEY = "trial"


class TrialInfo(Base):
    """One row per account. is_active/days_left are derived on read, never stored."""

    __tablename__ = "trial_info"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(32), primary_key=True, default=TRIAL_KEY)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime)
    is_pro: Mapped[bool] = mapped_column(Boolean, default=False)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False)
