import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from homekeep.core.deps import get_current_user, get_subscription_client, get_tracker
from homekeep.core.ratelimit import limiter
from homekeep.core.security import UserContext
from homekeep.schemas.trial import CheckoutSession, TrialStatus
from homekeep.services.subscription import SubscriptionClient
from homekeep.services.tracker import HomeTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("/trial", response_model=TrialStatus)
async def get_trial(tracker: HomeTracker = Depends(get_tracker)):
    """Current trial / Pro status. The first call starts the 14-day trial.

    Read only: Pro state changes through /sync and /cancel, from the provider.
    """
    return await tracker.get_trial_status()


@router.post("/checkout", response_model=CheckoutSession)
@limiter.limit("10/minute")
async def create_checkout(
    request: Request,
    user: UserContext = Depends(get_current_user),
    client: SubscriptionClient = Depends(get_subscription_client),
):
    url = await asyncio.to_thread(client.create_checkout_session, user.user_id)
    return CheckoutSession(url=url)


@router.post("/sync", response_model=TrialStatus)
@limiter.limit("30/minute")
async def sync_subscription(
    request: Request,
    user: UserContext = Depends(get_current_user),
    tracker: HomeTracker = Depends(get_tracker),
    client: SubscriptionClient = Depends(get_subscription_client),
):
    """Pull the provider's view of the subscription and fold it into the trial record."""
    status = await asyncio.to_thread(client.check_subscription_status, user.user_id)
    return await tracker.apply_subscription(status)


@router.post("/cancel", response_model=TrialStatus)
@limiter.limit("10/minute")
async def cancel_subscription(
    request: Request,
    user: UserContext = Depends(get_current_user),
    tracker: HomeTracker = Depends(get_tracker),
    client: SubscriptionClient = Depends(get_subscription_client),
):
    """Cancel at period end; Pro stays on until the paid period runs out."""
    cancelled = await asyncio.to_thread(client.cancel_subscription, user.user_id)
    if not cancelled:
        logger.warning("Cancel request for %s was not acknowledged", user.user_id)
    status = await asyncio.to_thread(client.check_subscription_status, user.user_id)
    return await tracker.apply_subscription(status)
