"""
Subscription provider client.

Billing lives in the `stripe` Supabase Edge Function; this module only
speaks its JSON protocol:

  POST {supabase_url}/functions/v1/stripe
       {"action": "create-checkout",     "userId": ..., "returnUrl": ...} → {"url"}
       {"action": "check-subscription",  "userId": ...}                   → {"active", "subscription"}
       {"action": "cancel-subscription", "userId": ...}                   → {"success"}

Calls are blocking (requests); async callers wrap them in asyncio.to_thread.
"""
import logging
from datetime import datetime, timezone

import requests

from homekeep.core.config import settings
from homekeep.core.errors import ProviderUnavailable
from homekeep.schemas.trial import SubscriptionInfo, SubscriptionStatus

logger = logging.getLogger(__name__)


def edge_function_headers() -> dict[str, str]:
    return {
        "apikey": settings.supabase_anon_key,
        "Authorization": f"Bearer {settings.supabase_anon_key}",
        "Content-Type": "application/json",
    }


def parse_subscription_status(data: dict) -> SubscriptionStatus:
    """Provider payload → SubscriptionStatus. Period end arrives as unix seconds."""
    sub = data.get("subscription")
    info = None
    if sub:
        info = SubscriptionInfo(
            id=sub["id"],
            status=sub.get("status", ""),
            current_period_end=datetime.fromtimestamp(sub["currentPeriodEnd"], tz=timezone.utc),
            cancel_at_period_end=bool(sub.get("cancelAtPeriodEnd", False)),
        )
    return SubscriptionStatus(active=bool(data.get("active")), subscription=info)


class SubscriptionClient:
    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        base = (base_url if base_url is not None else settings.supabase_url).rstrip("/")
        self.url = f"{base}/functions/v1/stripe"
        self.timeout = timeout or settings.provider_timeout_seconds

    def create_checkout_session(self, user_id: str, return_url: str | None = None) -> str:
        data = self._call({
            "action": "create-checkout",
            "userId": user_id,
            "returnUrl": return_url or f"{settings.app_base_url}/accounts",
        })
        url = data.get("url")
        if not url:
            raise ProviderUnavailable("Checkout session response had no url")
        return url

    def check_subscription_status(self, user_id: str) -> SubscriptionStatus:
        data = self._call({"action": "check-subscription", "userId": user_id})
        try:
            return parse_subscription_status(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"Malformed subscription response: {exc}") from exc

    def cancel_subscription(self, user_id: str) -> bool:
        data = self._call({"action": "cancel-subscription", "userId": user_id})
        return bool(data.get("success"))

    def _call(self, payload: dict) -> dict:
        try:
            resp = requests.post(
                self.url, json=payload, headers=edge_function_headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Subscription provider unreachable (%s): %s", payload["action"], exc)
            raise ProviderUnavailable(f"Subscription provider unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.warning(
                "Subscription provider %s returned %s: %s",
                payload["action"], resp.status_code, resp.text[:200],
            )
            raise ProviderUnavailable(
                f"Subscription provider returned {resp.status_code}"
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderUnavailable("Subscription provider returned invalid JSON") from exc
