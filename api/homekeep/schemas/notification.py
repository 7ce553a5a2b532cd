from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ToastResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    body: str
    created_at: datetime
