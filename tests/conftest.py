"""
WorkForce - Test Configuration

Pytest fixtures and configuration.
"""

import os

# The app engine is created at import time; point it at the test database first
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./test_workforce.db")
os.environ.setdefault("APP_ENV", "testing")

from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from app import database
from app.database import Base, get_async_session
from app.models.booking import Booking, BookingStatus, Client, Service
from app.models.organization import Organization
from app.models.tier_enums import ProfileRole, Tier
from app.models.user import Profile, User
from app.utils.security import get_password_hash
from main import app
from tests.fixtures.auth import TEST_PASSWORD, auth_headers_for


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with database.async_session_maker() as session:
        yield session
        await session.rollback()

    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await database.engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def make_organization(db_session: AsyncSession) -> Callable[..., Awaitable[Organization]]:
    """Factory for organizations on a given tier."""

    async def _make(tier: Tier = Tier.SOLO, **kwargs) -> Organization:
        org = Organization(
            id=uuid4(),
            business_name=kwargs.pop("business_name", f"Test Org {tier.value}"),
            tier=tier,
            employee_count=kwargs.pop("employee_count", 5),
            onboarding_complete=True,
            **kwargs,
        )
        db_session.add(org)
        await db_session.commit()
        return org

    return _make


@pytest_asyncio.fixture
async def make_member(db_session: AsyncSession) -> Callable[..., Awaitable[Profile]]:
    """
    Factory for staff members.

    Inserting the account provisions the profile; the factory then places it
    in the organization with the requested role.
    """

    async def _make(
        organization: Optional[Organization] = None,
        role: ProfileRole = ProfileRole.ASSOCIATE,
        department: Optional[str] = None,
        email: Optional[str] = None,
        first_name: str = "Test",
        last_name: str = "Member",
        phone: Optional[str] = None,
    ) -> Profile:
        user = User(
            id=uuid4(),
            email=email or f"member-{uuid4().hex[:8]}@example.com",
            hashed_password=get_password_hash(TEST_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            is_active=True,
            email_confirmed=True,
        )
        db_session.add(user)
        await db_session.commit()

        profile = await db_session.get(Profile, user.id)
        profile.organization_id = organization.id if organization else None
        profile.role = role
        profile.department = department
        profile.phone = phone
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def solo_org(make_organization) -> Organization:
    return await make_organization(Tier.SOLO, business_name="Solo Studio")


@pytest_asyncio.fixture
async def business_org(make_organization) -> Organization:
    return await make_organization(Tier.BUSINESS, business_name="Business Group")


@pytest_asyncio.fixture
async def free_org(make_organization) -> Organization:
    return await make_organization(Tier.FREE, business_name="Free Shop")


@pytest_asyncio.fixture
async def solo_admin(make_member, solo_org: Organization) -> Profile:
    return await make_member(solo_org, role=ProfileRole.SUPER_ADMIN, email="admin@solo.example.com")


@pytest_asyncio.fixture
async def auth_headers(solo_admin: Profile) -> dict:
    """Generate authorization headers for the solo organization's admin."""
    return auth_headers_for(solo_admin)


@pytest_asyncio.fixture
async def test_client_record(db_session: AsyncSession, solo_org: Organization) -> Client:
    """A client of the solo organization with a phone number."""
    record = Client(
        id=uuid4(),
        organization_id=solo_org.id,
        name="Jane Doe",
        email="jane@example.com",
        phone="+15550001111",
    )
    db_session.add(record)
    await db_session.commit()
    return record


@pytest_asyncio.fixture
async def test_service(db_session: AsyncSession, solo_org: Organization) -> Service:
    """A bookable service of the solo organization."""
    service = Service(
        id=uuid4(),
        organization_id=solo_org.id,
        name="Haircut",
        price=Decimal("100.00"),
        duration_minutes=45,
    )
    db_session.add(service)
    await db_session.commit()
    return service


@pytest_asyncio.fixture
async def make_booking(db_session: AsyncSession) -> Callable[..., Awaitable[Booking]]:
    """Factory for bookings inserted directly, bypassing notifications."""

    async def _make(
        organization: Organization,
        booking_datetime: datetime,
        service: Optional[Service] = None,
        client: Optional[Client] = None,
        employee: Optional[Profile] = None,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> Booking:
        booking = Booking(
            id=uuid4(),
            organization_id=organization.id,
            service_id=service.id if service else None,
            client_id=client.id if client else None,
            employee_id=employee.id if employee else None,
            booking_datetime=booking_datetime,
            status=status,
        )
        db_session.add(booking)
        await db_session.commit()
        # load client/service/employee onto the instance held in the identity map
        await db_session.refresh(booking)
        return booking

    return _make


@pytest.fixture
def stripe_settings(monkeypatch):
    """Configure Stripe credentials and prices for a test."""
    from app.config import settings

    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_test_secret")
    monkeypatch.setattr(settings, "stripe_price_solo", "price_solo_test")
    monkeypatch.setattr(settings, "stripe_price_business", "price_business_test")
    return settings


@pytest.fixture
def twilio_settings(monkeypatch):
    """Configure Twilio credentials for a test."""
    from app.config import settings

    monkeypatch.setattr(settings, "twilio_account_sid", "AC_test_sid")
    monkeypatch.setattr(settings, "twilio_auth_token", "twilio_test_token")
    monkeypatch.setattr(settings, "twilio_phone_number", "+15550009999")
    return settings


@pytest.fixture
def no_twilio(monkeypatch):
    """Remove Twilio credentials for a test."""
    from app.config import settings

    monkeypatch.setattr(settings, "twilio_account_sid", "")
    monkeypatch.setattr(settings, "twilio_auth_token", "")
    monkeypatch.setattr(settings, "twilio_phone_number", "")
    return settings


@pytest.fixture
def stripe_mock(stripe_settings):
    """Active mock Stripe API with matching webhook secret."""
    from tests.fixtures.stripe_mock import MockStripeServer

    mock = MockStripeServer(webhook_secret=stripe_settings.stripe_webhook_secret)
    with mock.activate():
        yield mock
