"""
Integration Tests for the Stripe Webhook

Signed events are posted to the webhook endpoint while MockStripeServer
answers the subscription re-fetch.
"""

import time
from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.models.tier_enums import Tier
from app.services.billing_service import (
    BillingService,
    WebhookSignatureError,
    compute_stripe_signature,
    tier_for_price,
    verify_stripe_signature,
)


WEBHOOK_URL = "/api/v1/billing/webhook"


async def post_event(client, stripe_mock, event_type, obj, signature=None):
    payload = stripe_mock.generate_webhook_payload(event_type, obj)
    headers = {
        "Content-Type": "application/json",
        "Stripe-Signature": signature or stripe_mock.sign_webhook_payload(payload),
    }
    return await client.post(WEBHOOK_URL, content=payload, headers=headers)


# =============================================================================
# SIGNATURE VERIFICATION
# =============================================================================

class TestSignatureVerification:

    SECRET = "whsec_unit"
    PAYLOAD = b'{"type": "customer.subscription.updated"}'

    def header(self, timestamp, secret=None):
        signature = compute_stripe_signature(self.PAYLOAD, timestamp, secret or self.SECRET)
        return f"t={timestamp},v1={signature}"

    def test_valid_signature(self):
        now = int(time.time())
        verify_stripe_signature(self.PAYLOAD, self.header(now), self.SECRET, now=now)

    def test_any_matching_v1_accepted(self):
        now = int(time.time())
        good = compute_stripe_signature(self.PAYLOAD, now, self.SECRET)
        header = f"t={now},v1=deadbeef,v1={good}"
        verify_stripe_signature(self.PAYLOAD, header, self.SECRET, now=now)

    def test_wrong_secret_rejected(self):
        now = int(time.time())
        with pytest.raises(WebhookSignatureError):
            verify_stripe_signature(self.PAYLOAD, self.header(now, "whsec_other"), self.SECRET, now=now)

    def test_tampered_payload_rejected(self):
        now = int(time.time())
        with pytest.raises(WebhookSignatureError):
            verify_stripe_signature(b'{"type": "x"}', self.header(now), self.SECRET, now=now)

    def test_stale_timestamp_rejected(self):
        now = int(time.time())
        with pytest.raises(WebhookSignatureError, match="tolerance"):
            verify_stripe_signature(self.PAYLOAD, self.header(now - 600), self.SECRET, tolerance=300, now=now)

    def test_zero_tolerance_disables_age_check(self):
        now = int(time.time())
        verify_stripe_signature(self.PAYLOAD, self.header(now - 600), self.SECRET, tolerance=0, now=now)

    @pytest.mark.parametrize("header", ["", "garbage", "t=abc,v1=00", "v1=00"])
    def test_malformed_header_rejected(self, header):
        with pytest.raises(WebhookSignatureError):
            verify_stripe_signature(self.PAYLOAD, header, self.SECRET)

    def test_missing_secret_rejected(self):
        now = int(time.time())
        with pytest.raises(WebhookSignatureError):
            verify_stripe_signature(self.PAYLOAD, self.header(now), "", now=now)


class TestPriceMapping:

    def test_known_prices(self, stripe_settings):
        assert tier_for_price("price_solo_test") == Tier.SOLO
        assert tier_for_price("price_business_test") == Tier.BUSINESS

    @pytest.mark.parametrize("price_id", ["price_unknown", "", None])
    def test_unknown_price_is_free(self, stripe_settings, price_id):
        assert tier_for_price(price_id) == Tier.FREE


# =============================================================================
# WEBHOOK ENDPOINT
# =============================================================================

class TestWebhookEndpoint:

    @pytest.mark.asyncio
    async def test_checkout_completed_upgrades_tier(self, client, db_session, stripe_mock, make_organization):
        org = await make_organization(Tier.FREE, stripe_customer_id="cus_upgrade")
        stripe_mock.add_subscription(
            "sub_upgrade", "cus_upgrade", ["price_business_test"], current_period_end=1798761600
        )

        response = await post_event(client, stripe_mock, "checkout.session.completed", {
            "id": "cs_test_1",
            "object": "checkout.session",
            "customer": "cus_upgrade",
            "subscription": "sub_upgrade",
        })

        assert response.status_code == 200
        assert response.json() == {"received": True}

        await db_session.refresh(org)
        assert org.tier == Tier.BUSINESS
        assert org.subscription_status == "active"
        assert org.stripe_subscription_id == "sub_upgrade"
        # stored in UTC; SQLite returns it naive
        assert org.subscription_period_end.replace(tzinfo=None) == datetime(2027, 1, 1)

    @pytest.mark.asyncio
    async def test_subscription_updated_downgrades(self, client, db_session, stripe_mock, make_organization):
        org = await make_organization(Tier.BUSINESS, stripe_customer_id="cus_down")
        stripe_mock.add_subscription("sub_down", "cus_down", ["price_solo_test"], status="past_due")

        response = await post_event(client, stripe_mock, "customer.subscription.updated", {
            "id": "sub_down",
            "object": "subscription",
            "customer": "cus_down",
        })

        assert response.status_code == 200
        await db_session.refresh(org)
        assert org.tier == Tier.SOLO
        assert org.subscription_status == "past_due"

    @pytest.mark.asyncio
    async def test_unknown_price_falls_back_to_free(self, client, db_session, stripe_mock, make_organization):
        org = await make_organization(Tier.BUSINESS, stripe_customer_id="cus_legacy")
        stripe_mock.add_subscription("sub_legacy", "cus_legacy", ["price_legacy_plan"], status="canceled")

        response = await post_event(client, stripe_mock, "customer.subscription.deleted", {
            "id": "sub_legacy",
            "object": "subscription",
        })

        assert response.status_code == 200
        await db_session.refresh(org)
        assert org.tier == Tier.FREE
        assert org.subscription_status == "canceled"

    @pytest.mark.asyncio
    async def test_unknown_customer_is_noop(self, client, db_session, stripe_mock, make_organization):
        org = await make_organization(Tier.SOLO, stripe_customer_id="cus_known")
        stripe_mock.add_subscription("sub_ghost", "cus_ghost", ["price_business_test"])

        response = await post_event(client, stripe_mock, "customer.subscription.updated", {"id": "sub_ghost"})

        assert response.status_code == 200
        await db_session.refresh(org)
        assert org.tier == Tier.SOLO
        assert org.stripe_subscription_id is None

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected_without_mutation(
        self, client, db_session, stripe_mock, make_organization
    ):
        org = await make_organization(Tier.FREE, stripe_customer_id="cus_forged")
        stripe_mock.add_subscription("sub_forged", "cus_forged", ["price_business_test"])

        response = await post_event(
            client, stripe_mock, "checkout.session.completed",
            {"subscription": "sub_forged"},
            signature=f"t={int(time.time())},v1=forged",
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Webhook Error:")
        await db_session.refresh(org)
        assert org.tier == Tier.FREE

    @pytest.mark.asyncio
    async def test_stale_signature_rejected(self, client, stripe_mock):
        payload = stripe_mock.generate_webhook_payload("customer.subscription.updated", {"id": "sub_1"})
        signature = stripe_mock.sign_webhook_payload(payload, timestamp=int(time.time()) - 3600)

        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_signature_header(self, client, stripe_mock):
        response = await client.post(WEBHOOK_URL, content=b"{}")

        assert response.status_code == 400
        assert response.json()["detail"] == "No signature"

    @pytest.mark.asyncio
    async def test_unhandled_event_acknowledged(self, client, stripe_mock):
        response = await post_event(client, stripe_mock, "invoice.paid", {"id": "in_1"})

        assert response.status_code == 200
        assert response.json() == {"received": True}

    @pytest.mark.asyncio
    async def test_subscription_fetch_failure_rejected(self, client, db_session, stripe_mock, make_organization):
        org = await make_organization(Tier.SOLO, stripe_customer_id="cus_missing_sub")

        response = await post_event(client, stripe_mock, "customer.subscription.updated", {"id": "sub_nowhere"})

        assert response.status_code == 400
        assert "No such subscription" in response.json()["detail"]
        await db_session.refresh(org)
        assert org.tier == Tier.SOLO

    @pytest.mark.asyncio
    async def test_event_without_subscription_id_rejected(self, client, stripe_mock):
        response = await post_event(client, stripe_mock, "checkout.session.completed", {"object": "checkout.session"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_subscription_without_customer_updates_nothing(
        self, client, db_session, stripe_mock, make_organization
    ):
        unbilled = [await make_organization(Tier.FREE) for _ in range(2)]
        stripe_mock.add_subscription("sub_orphan", None, ["price_business_test"])

        response = await post_event(client, stripe_mock, "customer.subscription.updated", {"id": "sub_orphan"})

        assert response.status_code == 200
        for org in unbilled:
            await db_session.refresh(org)
            assert org.tier == Tier.FREE
            assert org.subscription_status is None
            assert org.stripe_subscription_id is None

    @pytest.mark.asyncio
    async def test_non_object_event_rejected(self, client, stripe_mock):
        payload = b"[]"
        response = await client.post(
            WEBHOOK_URL,
            content=payload,
            headers={
                "Content-Type": "application/json",
                "Stripe-Signature": stripe_mock.sign_webhook_payload(payload),
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Webhook Error:")

    @pytest.mark.asyncio
    async def test_storage_failure_rejected(self, client, stripe_mock, make_organization):
        await make_organization(Tier.FREE, stripe_customer_id="cus_db_down")
        stripe_mock.add_subscription("sub_db_down", "cus_db_down", ["price_solo_test"])

        with patch.object(
            BillingService,
            "process_webhook_event",
            side_effect=OperationalError("UPDATE", {}, Exception("db down")),
        ):
            response = await post_event(client, stripe_mock, "customer.subscription.updated", {"id": "sub_db_down"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Webhook Error: Failed to update subscription"
