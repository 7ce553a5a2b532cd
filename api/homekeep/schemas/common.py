import enum
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class Category(str, enum.Enum):
    HOME = "Home"
    ELECTRONICS = "Electronics"
    PLUMBING = "Plumbing"
    ELECTRICAL = "Electrical"
    HVAC = "HVAC"
    APPLIANCES = "Appliances"
    OUTDOOR = "Outdoor"
    VEHICLES = "Vehicles"
    OTHER = "Other"


class FrequencyUnit(str, enum.Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class Frequency(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    value: int = Field(gt=0)
    unit: FrequencyUnit


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Naive inputs are taken to be UTC; everything is stored and compared in UTC
UTCDatetime = Annotated[datetime, AfterValidator(_as_utc)]
