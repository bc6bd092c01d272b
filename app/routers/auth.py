"""
WorkForce - Authentication Router

API endpoints for account registration and login.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_profile
from app.models.user import Profile
from app.schemas.auth import LoginRequest, ProfileResponse, RegisterRequest, TokenResponse
from app.services.auth_service import AuthService


router = APIRouter()


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="Create an account. The organization is created later by onboarding.",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Register a new account and return an access token."""
    auth_service = AuthService(db)

    user = await auth_service.register_user(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )

    return TokenResponse(**auth_service.create_tokens(user))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login",
    description="Authenticate with email and password.",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Login with email and password."""
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(
        email=request.email,
        password=request.password,
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return TokenResponse(**auth_service.create_tokens(user))


@router.get(
    "/me",
    response_model=ProfileResponse,
    summary="Get current profile",
)
async def get_me(profile: Profile = Depends(get_current_profile)):
    """Get the authenticated account's staff profile."""
    return profile
