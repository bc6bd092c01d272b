"""
WorkForce - Billing Service

Service for managing subscriptions through Stripe.

Covers:
- Checkout sessions for the Solo and Business plans
- Billing portal links
- Webhook signature verification
- Subscription lifecycle sync onto the Organization record

Stripe is reached over its REST API with httpx (form-encoded bodies,
bearer secret key). Stripe API docs: https://stripe.com/docs/api
"""

import hashlib
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.organization import Organization
from app.models.tier_enums import Tier
from app.utils.error_handling import (
    BusinessRuleException,
    ConfigurationException,
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
)

logger = logging.getLogger(__name__)


# Events that carry a subscription change
SUBSCRIPTION_EVENTS = frozenset({
    "checkout.session.completed",
    "customer.subscription.updated",
    "customer.subscription.deleted",
})

SETTINGS_RETURN_PATH = "/dashboard/settings"


# =============================================================================
# WEBHOOK SIGNATURES
# =============================================================================

class WebhookSignatureError(Exception):
    """Raised when a Stripe-Signature header does not verify."""


def _parse_signature_header(header: str) -> Tuple[Optional[int], List[str]]:
    timestamp: Optional[int] = None
    signatures: List[str] = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


def compute_stripe_signature(payload: bytes, timestamp: int, secret: str) -> str:
    """HMAC-SHA256 of ``{timestamp}.{payload}`` keyed with the endpoint secret."""
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def verify_stripe_signature(
    payload: bytes,
    header: str,
    secret: str,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> None:
    """
    Verify a Stripe webhook signature.

    Stripe signs the raw request body; the Stripe-Signature header carries
    the signing timestamp (``t``) and one or more ``v1`` signatures.

    Args:
        payload: Raw request body bytes
        header: Stripe-Signature header value
        secret: Endpoint signing secret (whsec_...)
        tolerance: Maximum age of the signature in seconds, 0 disables the check
        now: Current unix time, for tests

    Raises:
        WebhookSignatureError: If the signature does not verify
    """
    if not secret:
        raise WebhookSignatureError("Webhook signing secret is not configured")

    timestamp, signatures = _parse_signature_header(header or "")
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Unable to extract timestamp and signatures from header")

    expected = compute_stripe_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")

    current = int(time.time()) if now is None else now
    if tolerance and timestamp < current - tolerance:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")


# =============================================================================
# PROVIDER
# =============================================================================

def encode_form(data: Dict[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """
    Flatten nested data into Stripe's bracketed form encoding.

    {"line_items": [{"price": "p", "quantity": 1}]} ->
    [("line_items[0][price]", "p"), ("line_items[0][quantity]", "1")]
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                item_name = f"{name}[{index}]"
                if isinstance(item, dict):
                    pairs.extend(encode_form(item, item_name))
                else:
                    pairs.append((item_name, str(item)))
        elif isinstance(value, bool):
            pairs.append((name, "true" if value else "false"))
        else:
            pairs.append((name, str(value)))
    return pairs


class StripeProvider:
    """
    Thin async client for the Stripe REST API.

    Missing credentials only fail when a call is made, never at startup.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.stripe_secret_key
        self.base_url = (base_url or settings.stripe_base_url).rstrip("/")
        self.timeout = timeout or settings.stripe_timeout_seconds

    def _get_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.secret_key}"}

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make an HTTP request to the Stripe API.

        Raises:
            ConfigurationException: If no secret key is configured
            ExternalServiceException: On timeouts, network errors and API errors
        """
        if not self.secret_key:
            raise ConfigurationException("Stripe is not configured", setting="STRIPE_SECRET_KEY")

        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    data=dict(encode_form(data)) if data else None,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Stripe API timeout: {method} {endpoint}")
            raise ExternalServiceException(
                "Stripe",
                "Request timed out. Please try again.",
                code=ErrorCode.BILLING_PROVIDER_ERROR,
                original_error=e,
            )
        except httpx.RequestError as e:
            logger.error(f"Stripe API request error: {e}")
            raise ExternalServiceException(
                "Stripe",
                f"Network error: {e}",
                code=ErrorCode.BILLING_PROVIDER_ERROR,
                original_error=e,
            )

        logger.debug(f"Stripe {method} {endpoint}: status={response.status_code}")

        try:
            result = response.json()
        except ValueError:
            result = {}

        if response.status_code >= 400:
            message = (result.get("error") or {}).get("message") or f"HTTP {response.status_code}"
            logger.error(f"Stripe API error: {message}")
            raise ExternalServiceException("Stripe", message, code=ErrorCode.BILLING_PROVIDER_ERROR)

        return result

    async def create_customer(self, email: str, name: str, metadata: Dict[str, str]) -> Dict[str, Any]:
        return await self._make_request(
            "POST", "/customers", {"email": email, "name": name, "metadata": metadata}
        )

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        return await self._make_request(
            "POST",
            "/checkout/sessions",
            {
                "customer": customer_id,
                "line_items": [{"price": price_id, "quantity": 1}],
                "mode": "subscription",
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
            },
        )

    async def create_portal_session(self, customer_id: str, return_url: str) -> Dict[str, Any]:
        return await self._make_request(
            "POST",
            "/billing_portal/sessions",
            {"customer": customer_id, "return_url": return_url},
        )

    async def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return await self._make_request("GET", f"/subscriptions/{subscription_id}")


# =============================================================================
# BILLING SERVICE
# =============================================================================

def tier_for_price(price_id: Optional[str]) -> Tier:
    """Tier bought by a price id; any unknown price means free."""
    if price_id and price_id == settings.stripe_price_business:
        return Tier.BUSINESS
    if price_id and price_id == settings.stripe_price_solo:
        return Tier.SOLO
    return Tier.FREE


def price_for_tier(tier: str) -> str:
    """Price id for a checkout; anything but business buys the solo plan."""
    if tier == Tier.BUSINESS.value:
        price_id, setting = settings.stripe_price_business, "STRIPE_PRICE_BUSINESS"
    else:
        price_id, setting = settings.stripe_price_solo, "STRIPE_PRICE_SOLO"
    if not price_id:
        raise ConfigurationException(f"Stripe price for the {tier} plan is not configured", setting=setting)
    return price_id


def _period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            timestamp = items[0].get("current_period_end")
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


class BillingService:
    """
    Service for managing subscriptions and billing.

    Usage:
        service = BillingService(db)

        # Start an upgrade
        url = await service.create_checkout_session(org_id, "admin@example.com", "business", origin)

        # Apply a verified webhook event
        await service.process_webhook_event(event)
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: Optional[StripeProvider] = None,
    ):
        self.db = db
        self.provider = provider or StripeProvider()

    async def _get_organization(self, organization_id: UUID) -> Organization:
        result = await self.db.execute(
            select(Organization).where(Organization.id == organization_id)
        )
        organization = result.scalar_one_or_none()
        if organization is None:
            raise NotFoundException("Organization", organization_id, code=ErrorCode.ORGANIZATION_NOT_FOUND)
        return organization

    # ===========================================
    # SESSIONS
    # ===========================================

    async def create_checkout_session(
        self,
        organization_id: UUID,
        email: str,
        tier: str,
        origin: str,
    ) -> str:
        """
        Create a subscription checkout session for the organization.

        The organization's Stripe customer is created on first use and stored.

        Returns:
            The hosted checkout URL
        """
        price_id = price_for_tier(tier)
        organization = await self._get_organization(organization_id)

        customer_id = organization.stripe_customer_id
        if not customer_id:
            customer = await self.provider.create_customer(
                email=email,
                name=organization.business_name,
                metadata={"org_id": str(organization.id)},
            )
            customer_id = customer["id"]
            organization.stripe_customer_id = customer_id
            await self.db.commit()
            logger.info(f"Created Stripe customer {customer_id} for organization {organization.id}")

        session = await self.provider.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=f"{origin}{SETTINGS_RETURN_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}{SETTINGS_RETURN_PATH}",
            metadata={"org_id": str(organization.id), "tier": tier},
        )
        return session["url"]

    async def create_portal_link(self, organization_id: UUID, origin: str) -> str:
        """Billing portal URL for the organization's Stripe customer."""
        organization = await self._get_organization(organization_id)
        if not organization.stripe_customer_id:
            raise BusinessRuleException("No Stripe customer found")

        session = await self.provider.create_portal_session(
            customer_id=organization.stripe_customer_id,
            return_url=f"{origin}{SETTINGS_RETURN_PATH}",
        )
        return session["url"]

    # ===========================================
    # WEBHOOK HANDLING
    # ===========================================

    async def process_webhook_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a verified Stripe event.

        Events handled:
        - checkout.session.completed
        - customer.subscription.updated
        - customer.subscription.deleted

        The canonical subscription is re-fetched and the organization holding
        its customer id is overwritten in one UPDATE. Unknown customers
        update zero rows.
        """
        event_type = event.get("type")
        if event_type not in SUBSCRIPTION_EVENTS:
            logger.debug(f"Unhandled webhook event: {event_type}")
            return {"handled": False, "event": event_type}

        obj = (event.get("data") or {}).get("object") or {}
        subscription_id = obj.get("subscription") or obj.get("id")
        if not subscription_id:
            raise BusinessRuleException(f"Event {event_type} carries no subscription id")

        subscription = await self.provider.retrieve_subscription(subscription_id)
        customer_id = subscription.get("customer")
        if isinstance(customer_id, dict):
            customer_id = customer_id.get("id")

        if not customer_id:
            # a NULL key would match every organization without a customer
            logger.warning(f"Webhook {event_type}: subscription {subscription_id} has no customer; nothing updated")
            return {"handled": True, "event": event_type, "tier": None, "updated": 0}

        items = (subscription.get("items") or {}).get("data") or []
        if len(items) > 1:
            logger.warning(
                f"Subscription {subscription_id} has {len(items)} items; tier taken from the first"
            )
        price_id = ((items[0].get("price") or {}).get("id")) if items else None
        tier = tier_for_price(price_id)

        result = await self.db.execute(
            update(Organization)
            .where(Organization.stripe_customer_id == customer_id)
            .values(
                tier=tier,
                subscription_status=subscription.get("status"),
                subscription_period_end=_period_end(subscription),
                stripe_subscription_id=subscription_id,
            )
        )

        if result.rowcount == 0:
            logger.info(f"Webhook {event_type} for unknown customer {customer_id}; nothing updated")
        else:
            logger.info(
                f"Webhook {event_type}: customer {customer_id} now {tier.value} "
                f"({subscription.get('status')})"
            )

        return {
            "handled": True,
            "event": event_type,
            "tier": tier.value,
            "updated": result.rowcount,
        }
