"""
WorkForce - Billing Router

API endpoints for Stripe subscriptions:
- Checkout session for an upgrade
- Customer portal link
- Signed webhook that syncs subscription state onto the organization
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import get_organization_profile
from app.models.user import Profile
from app.schemas.billing import CheckoutSessionRequest, UrlResponse
from app.services.billing_service import (
    BillingService,
    WebhookSignatureError,
    verify_stripe_signature,
)
from app.utils.error_handling import AppException


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/billing", tags=["Billing"])


def _request_origin(origin: Optional[str]) -> str:
    return (origin or settings.frontend_url).rstrip("/")


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )


@router.post("/checkout-session", response_model=UrlResponse)
async def create_checkout_session(
    request: CheckoutSessionRequest,
    origin: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(get_organization_profile),
):
    """Start a subscription checkout for the chosen plan."""
    service = BillingService(db)
    try:
        url = await service.create_checkout_session(
            organization_id=profile.organization_id,
            email=profile.email,
            tier=request.tier,
            origin=_request_origin(origin),
        )
    except AppException as e:
        logger.error(f"Checkout session failed for organization {profile.organization_id}: {e.message}")
        return _error_response(e.message)
    except Exception as e:
        logger.exception(f"Checkout session error for organization {profile.organization_id}: {e}")
        return _error_response(str(e))

    return UrlResponse(url=url)


@router.post("/portal-link", response_model=UrlResponse)
async def create_portal_link(
    origin: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_async_session),
    profile: Profile = Depends(get_organization_profile),
):
    """Link to the Stripe customer portal for managing the subscription."""
    service = BillingService(db)
    try:
        url = await service.create_portal_link(
            organization_id=profile.organization_id,
            origin=_request_origin(origin),
        )
    except AppException as e:
        logger.error(f"Portal link failed for organization {profile.organization_id}: {e.message}")
        return _error_response(e.message)
    except Exception as e:
        logger.exception(f"Portal link error for organization {profile.organization_id}: {e}")
        return _error_response(str(e))

    return UrlResponse(url=url)


# ===========================================
# WEBHOOK ENDPOINT
# ===========================================

@router.post(
    "/webhook",
    summary="Stripe webhook handler",
    description="Receives signed subscription events from Stripe.",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Handle Stripe webhook events.

    The signature is verified against the raw body before anything is
    parsed or written.
    """
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No signature")

    payload = await request.body()

    try:
        verify_stripe_signature(
            payload,
            stripe_signature,
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e}")

    try:
        event = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook Error: Invalid JSON payload")

    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook Error: Event payload must be an object")

    service = BillingService(db)
    try:
        result = await service.process_webhook_event(event)
        await db.commit()
    except AppException as e:
        await db.rollback()
        logger.error(f"Webhook processing error for {event.get('type')}: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e.message}")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Webhook storage error for {event.get('type')}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook Error: Failed to update subscription")

    logger.info(f"Stripe webhook {event.get('type')} processed: {result}")
    return {"received": True}
