from pydantic import BaseModel, ConfigDict

from homekeep.schemas.common import UTCDatetime


class PropertyCreate(BaseModel):
    name: str
    address: str = ""


class PropertyUpdate(BaseModel):
    name: str | None = None
    address: str | None = None


class PropertyRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str
    created_at: UTCDatetime
    updated_at: UTCDatetime
