from pydantic import BaseModel, ConfigDict, Field, model_validator

from homekeep.schemas.common import Category, UTCDatetime


class WarrantyCreate(BaseModel):
    property_id: str
    item_name: str
    manufacturer: str = ""
    category: Category = Category.OTHER
    purchase_date: UTCDatetime
    expiry_date: UTCDatetime
    description: str = ""
    documents: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _expiry_not_before_purchase(self):
        if self.expiry_date < self.purchase_date:
            raise ValueError("expiry_date must not be earlier than purchase_date")
        return self


class WarrantyUpdate(BaseModel):
    item_name: str | None = None
    manufacturer: str | None = None
    category: Category | None = None
    purchase_date: UTCDatetime | None = None
    expiry_date: UTCDatetime | None = None
    description: str | None = None
    documents: list[str] | None = None


class WarrantyRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    item_name: str
    manufacturer: str
    category: Category
    purchase_date: UTCDatetime
    expiry_date: UTCDatetime
    description: str
    documents: list[str]
    created_at: UTCDatetime
    updated_at: UTCDatetime


class WarrantyDraft(BaseModel):
    """Pre-fill hints extracted from a scanned warranty document. Every field is optional."""
    item_name: str | None = None
    manufacturer: str | None = None
    purchase_date: UTCDatetime | None = None
    expiry_date: UTCDatetime | None = None
    description: str | None = None
    raw_text: str | None = None


class WarrantyScanRequest(BaseModel):
    file_base64: str = Field(min_length=1, description="Data URL, e.g. data:image/png;base64,...")
