from pydantic import BaseModel, ConfigDict

from homekeep.schemas.common import UTCDatetime


class TrialRecord(BaseModel):
    """Raw persisted trial/subscription state. Nothing derived lives here."""
    model_config = ConfigDict(from_attributes=True)

    start_date: UTCDatetime
    end_date: UTCDatetime
    is_pro: bool = False
    cancel_at_period_end: bool = False


class TrialStatus(BaseModel):
    start_date: UTCDatetime
    end_date: UTCDatetime
    is_pro: bool
    cancel_at_period_end: bool
    is_active: bool
    days_left: int


class SubscriptionInfo(BaseModel):
    id: str
    status: str
    current_period_end: UTCDatetime
    cancel_at_period_end: bool = False


class SubscriptionStatus(BaseModel):
    active: bool
    subscription: SubscriptionInfo | None = None


class CheckoutSession(BaseModel):
    url: str
