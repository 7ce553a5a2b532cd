from pydantic import BaseModel, ConfigDict, Field

from homekeep.schemas.common import Category, UTCDatetime


class ServiceProviderCreate(BaseModel):
    name: str
    category: list[Category] = Field(min_length=1)
    phone: str = ""
    email: str = ""
    website: str = ""
    notes: str = ""
    rating: int = Field(default=0, ge=0, le=5)


class ServiceProviderUpdate(BaseModel):
    name: str | None = None
    category: list[Category] | None = Field(default=None, min_length=1)
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    notes: str | None = None
    rating: int | None = Field(default=None, ge=0, le=5)


class ServiceProviderRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: list[Category]
    phone: str
    email: str
    website: str
    notes: str
    rating: int
    created_at: UTCDatetime
    updated_at: UTCDatetime
