from datetime import datetime

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from homekeep.core.database import Base, UTCDateTime


class ReminderDelivery(Base):
    """A reminder that has gone out. The primary key is the claim: one row per firing."""

    __tablename__ = "reminder_deliveries"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(80), primary_key=True)         # task:<id> | warranty:<id>
    fire_at_epoch: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    fire_at: Mapped[datetime] = mapped_column(UTCDateTime)
