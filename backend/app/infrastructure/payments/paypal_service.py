"""
PayPal Payment Service

Thin async client for the PayPal REST API: one-off orders, billing
subscriptions, cancellation and webhook signature verification.

Every call first exchanges the client credentials for an OAuth access
token. No retries; failures surface as BillingProviderError.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import httpx

from app.config.settings import Settings
from app.domain.subscription import PayPalPlan
from app.infrastructure.exceptions import (
    BillingProviderError,
    ConfigurationError,
    ValidationError,
)


logger = logging.getLogger(__name__)


PROVIDER = "paypal"

# Headers PayPal sends with each webhook delivery
WEBHOOK_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}


def parse_paypal_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 PayPal timestamp such as ``2025-01-01T10:00:00Z`` to aware UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=timezone.utc)


class PayPalService:
    """
    PayPal REST client.

    Args:
        settings: Application settings (API base, credentials, plans)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_base = settings.paypal_api_base.rstrip("/")
        self._client_id = settings.paypal_client_id
        self._client_secret = settings.paypal_client_secret
        self._webhook_id = settings.paypal_webhook_id
        self._plans = settings.paypal_plans
        self._app_url = settings.app_url.rstrip("/")
        self._brand_name = settings.app_name
        self._timeout = settings.paypal_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_base,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Authenticated JSON request against the PayPal API."""
        try:
            async with self._client() as client:
                token = await self._access_token(client)
                response = await client.request(
                    method,
                    path,
                    json=json,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[PAYPAL] {operation} failed with HTTP {e.response.status_code}: "
                f"{e.response.text[:500]}"
            )
            raise BillingProviderError(
                f"PayPal {operation} failed",
                provider=PROVIDER,
                status_code=e.response.status_code,
                original_error=e,
            )
        except httpx.HTTPError as e:
            logger.error(f"[PAYPAL] {operation} failed: {e}")
            raise BillingProviderError(
                f"PayPal {operation} failed",
                provider=PROVIDER,
                original_error=e,
            )

        if not response.content:
            return {}
        return response.json()

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if not self._client_id or not self._client_secret:
            raise ConfigurationError(
                "PayPal credentials not configured",
                missing_keys=["PAYPAL_CLIENT_ID", "PAYPAL_CLIENT_SECRET"],
            )
        response = await client.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(self, plan_type: str, price: str) -> str:
        """
        Create a one-off CAPTURE order.

        Returns:
            PayPal order id
        """
        order = await self._request(
            "POST",
            "/v2/checkout/orders",
            operation="create_order",
            json={
                "intent": "CAPTURE",
                "purchase_units": [{
                    "amount": {"currency_code": "USD", "value": price},
                    "description": f"{self._brand_name} {plan_type} Plan",
                }],
            },
        )
        logger.info(f"[PAYPAL] Created order {order.get('id')} for {plan_type}")
        return order["id"]

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def plan_id_for(self, plan: PayPalPlan) -> str:
        plan_id = self._plans.get(plan.value)
        if not plan_id:
            raise ConfigurationError(
                f"No PayPal plan configured for '{plan.value}'",
                missing_keys=[f"PAYPAL_PLAN_ID_{plan.value.upper()}"],
            )
        return plan_id

    async def create_subscription(self, plan: PayPalPlan, user_id: str) -> Dict[str, Any]:
        """
        Create a billing subscription awaiting buyer approval.

        Returns:
            Dict with ``id``, ``plan_id``, ``status`` and ``approval_url``
        """
        plan_id = self.plan_id_for(plan)
        data = await self._request(
            "POST",
            "/v1/billing/subscriptions",
            operation="create_subscription",
            json={
                "plan_id": plan_id,
                "custom_id": user_id,
                "application_context": {
                    "brand_name": self._brand_name,
                    "locale": "en-US",
                    "shipping_preference": "NO_SHIPPING",
                    "user_action": "SUBSCRIBE_NOW",
                    "return_url": f"{self._app_url}/paypal-success",
                    "cancel_url": f"{self._app_url}/dashboard",
                },
            },
        )

        approval_url = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") == "approve"),
            None,
        )
        if not approval_url:
            raise BillingProviderError(
                "Approval URL not found in PayPal response",
                provider=PROVIDER,
            )

        logger.info(f"[PAYPAL] Created subscription {data.get('id')} for user {user_id}")
        return {
            "id": data["id"],
            "plan_id": plan_id,
            "status": data.get("status"),
            "approval_url": approval_url,
        }

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """
        Fetch subscription details.

        Returns:
            Dict with ``id``, ``status``, ``plan_id``, ``custom_id`` and
            ``next_billing_time`` (datetime or None)
        """
        data = await self._request(
            "GET",
            f"/v1/billing/subscriptions/{subscription_id}",
            operation="get_subscription",
        )
        return {
            "id": data.get("id", subscription_id),
            "status": data.get("status"),
            "plan_id": data.get("plan_id"),
            "custom_id": data.get("custom_id"),
            "next_billing_time": parse_paypal_time(
                (data.get("billing_info") or {}).get("next_billing_time")
            ),
        }

    async def cancel_subscription(
        self,
        subscription_id: str,
        reason: str = "Canceled by customer",
    ) -> None:
        """Cancel a subscription at PayPal."""
        await self._request(
            "POST",
            f"/v1/billing/subscriptions/{subscription_id}/cancel",
            operation="cancel_subscription",
            json={"reason": reason},
        )
        logger.info(f"[PAYPAL] Canceled subscription {subscription_id}")

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    async def verify_webhook_signature(
        self,
        headers: Mapping[str, str],
        event: Dict[str, Any],
    ) -> bool:
        """
        Ask PayPal whether a webhook delivery is authentic.

        Raises:
            ValidationError: Required transmission headers are missing
        """
        if not self._webhook_id:
            raise ConfigurationError(
                "PayPal webhook id not configured",
                missing_keys=["PAYPAL_WEBHOOK_ID"],
            )

        lowered = {key.lower(): value for key, value in headers.items()}
        body: Dict[str, Any] = {}
        for field, header in WEBHOOK_HEADERS.items():
            value = lowered.get(header)
            if not value:
                raise ValidationError(f"Missing {header} header")
            body[field] = value
        body["webhook_id"] = self._webhook_id
        body["webhook_event"] = event

        result = await self._request(
            "POST",
            "/v1/notifications/verify-webhook-signature",
            operation="verify_webhook_signature",
            json=body,
        )
        return result.get("verification_status") == "SUCCESS"
