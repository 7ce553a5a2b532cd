from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from homekeep.core.database import Base, UTCDateTime


class NotificationContact(Base):
    """Where the background reminder sweep can reach an account (copied from the identity token)."""

    __tablename__ = "notification_contacts"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    phone: Mapped[str] = mapped_column(String(50))
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime)
