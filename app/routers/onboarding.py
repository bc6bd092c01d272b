"""
WorkForce - Onboarding Router

The 13-step setup wizard. The client sends one tagged action at a time
and renders the returned state.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.onboarding import (
    OnboardingActionRequest,
    OnboardingStateResponse,
    OnboardingStepInfo,
)
from app.services.onboarding_service import (
    OnboardingService,
    build_state_response,
    list_steps,
)


router = APIRouter(prefix="/api/v1/onboarding", tags=["Onboarding"])


@router.get("/state", response_model=OnboardingStateResponse)
async def get_onboarding_state(
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Get the caller's wizard state, starting a new wizard if needed."""
    service = OnboardingService(db)
    state = await service.get_state(current_user.id)
    return build_state_response(state)


@router.post("/actions", response_model=OnboardingStateResponse)
async def dispatch_onboarding_action(
    request: OnboardingActionRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """
    Apply one wizard action: update, next, prev or submit.

    A failed submission still answers 200; the state carries the error and
    stays on the review step so the client can resubmit.
    """
    service = OnboardingService(db)
    state = await service.dispatch(current_user.id, request.root)
    return build_state_response(state)


@router.get("/steps", response_model=List[OnboardingStepInfo])
async def get_onboarding_steps():
    """Static description of the wizard steps and their required fields."""
    return list_steps()
