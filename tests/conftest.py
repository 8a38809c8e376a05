"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- In-memory database engine and sessions
- A controllable clock and a recording email transport
- An HTTP client factory over ASGITransport for either session strategy
"""

import os
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test_secret_key_at_least_32_characters_long_for_jwt"
os.environ["SESSION_SECRET"] = "test_session_secret_at_least_32_characters_long"
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_MODE"] = "token"
os.environ["REQUIRE_OTP"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_EMAIL"] = "seed@example.com"
os.environ["ADMIN_PASSWORD"] = "SeedPass123!"
os.environ["LOG_JSON"] = "false"
os.environ.pop("SMTP_USER", None)
os.environ.pop("SMTP_PASSWORD", None)
os.environ.pop("BREVO_API_KEY", None)

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from feedback_admin.core.config import settings  # noqa: E402
from feedback_admin.models import Base  # noqa: E402
from feedback_admin.services.interfaces.email_transport import IEmailTransport, OutgoingEmail  # noqa: E402
from feedback_admin.services.otp_delivery import OtpDeliveryGateway  # noqa: E402


ADMIN_EMAIL = "a@x.com"
ADMIN_PASSWORD = "Secret123!"

_CODE_PATTERN = re.compile(r"\b(\d{6})\b")


def feedback_payload(**overrides) -> dict:
    """A complete public-form submission, as the client sends it."""
    payload = {
        "easeOfUse": "Very easy",
        "featureClarity": "Clear",
        "designImpression": "Modern",
        "explanationHelpfulness": "Helpful",
        "usefulFeedbackTypes": ["Grammar", "Vocabulary"],
        "confidenceLevel": "More confident",
        "likedMost": "Instant corrections",
        "improvements": "Dark mode",
        "useAgain": "Yes",
        "languageBackground": "French",
        "studyLevel": "University",
    }
    payload.update(overrides)
    return payload


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.utcnow().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingTransport(IEmailTransport):
    """Transport that keeps every message instead of sending it."""

    name = "recording"

    def __init__(self):
        self.messages: List[OutgoingEmail] = []

    async def send(self, message: OutgoingEmail) -> None:
        self.messages.append(message)

    def last_code(self, email: Optional[str] = None) -> str:
        for message in reversed(self.messages):
            if email is None or message.to == email:
                return _CODE_PATTERN.search(message.text).group(1)
        raise AssertionError(f"No code sent to {email}")


class FailingTransport(IEmailTransport):
    """Transport that always raises."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def send(self, message: OutgoingEmail) -> None:
        self.calls += 1
        raise ConnectionError("relay unreachable")


@pytest.fixture
def test_settings():
    """Settings as loaded from the test environment (token mode, OTP on)."""
    return settings.model_copy()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def gateway(recording_transport, test_settings) -> OtpDeliveryGateway:
    return OtpDeliveryGateway(
        transports=[recording_transport],
        app_name=test_settings.app_name,
        expiry_minutes=test_settings.otp_expiry_minutes,
        timeout=1.0,
    )


@pytest.fixture
async def engine():
    """Fresh in-memory database with all tables."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    """
    Provide a database session for tests.

    Yields:
        AsyncSession bound to the per-test in-memory database
    """
    async with session_maker() as session:
        yield session


@pytest.fixture
async def admin(session_maker):
    """Active administrator a@x.com / Secret123!, committed."""
    from feedback_admin.repositories.admin import AdminRepository

    async with session_maker() as session:
        created = await AdminRepository(session).create(ADMIN_EMAIL, ADMIN_PASSWORD, "Ops")
        await session.commit()
    return created


@pytest.fixture
def make_client(session_maker, clock, gateway, test_settings):
    """
    Factory for an HTTP client against a fresh application.

    Args (of the returned factory):
        auth_mode: "token" or "session"
        require_otp: Whether login requires an emailed code
        otp_gateway: Gateway override (defaults to the recording gateway)

    Example:
        async with make_client(auth_mode="session") as client:
            await client.post("/api/auth/login", json={...})
    """
    from feedback_admin.api.dependencies import get_clock, get_otp_gateway, get_settings
    from feedback_admin.core.database import get_db
    from feedback_admin.main import create_application

    def factory(
        auth_mode: str = "token",
        require_otp: bool = True,
        otp_gateway: Optional[OtpDeliveryGateway] = None,
    ) -> AsyncClient:
        app_settings = test_settings.model_copy(
            update={"auth_mode": auth_mode, "require_otp": require_otp}
        )
        app = create_application(app_settings)

        async def override_get_db():
            async with session_maker() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: app_settings
        app.dependency_overrides[get_clock] = lambda: clock
        app.dependency_overrides[get_otp_gateway] = lambda: otp_gateway or gateway

        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return factory


@pytest.fixture
def login_with_otp(recording_transport) -> Callable:
    """
    Helper that performs password + OTP login and returns the final response.
    """
    async def run(client: AsyncClient, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD):
        response = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        code = recording_transport.last_code(email)
        return await client.post(
            "/api/auth/verify-otp",
            json={"email": email, "otp": code, "context": "login"},
        )

    return run
