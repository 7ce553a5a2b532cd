from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from homekeep.core.security import UserContext, decode_token, user_from_claims
from homekeep.services.subscription import SubscriptionClient
from homekeep.services.tracker import HomeTracker
from homekeep.services.warranty_ocr import OcrClient

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> UserContext:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = decode_token(credentials.credentials)
    user = user_from_claims(claims) if claims else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_tracker(
    request: Request,
    user: UserContext = Depends(get_current_user),
) -> HomeTracker:
    """The caller's long-lived tracker from the registry created in the app lifespan."""
    return await request.app.state.trackers.get(user)


def get_subscription_client() -> SubscriptionClient:
    return SubscriptionClient()


def get_ocr_client() -> OcrClient:
    return OcrClient()
