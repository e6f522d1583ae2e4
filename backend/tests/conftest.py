"""
Test configuration and fixtures for SynthAI.

Provides shared fixtures for unit and integration tests. Every test gets
its own SQLite file database; external services (Gemini, PayPal, Stripe)
are replaced on ``app.state`` with mocks.
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from unittest.mock import MagicMock, AsyncMock

from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.domain.access import Identity
from app.infrastructure.auth.session_tokens import SessionTokenVerifier
from app.infrastructure.db.database import DatabaseManager


TEST_SECRET = "test-secret-key-for-session-tokens!"
TEST_USER_ID = "user_test_123"
TEST_EMAIL = "test@example.com"


# =============================================================================
# Settings / Database
# =============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    """Isolated settings: no .env, a throwaway SQLite file, known secrets."""
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        database_auto_create=True,
        auth_jwt_secret=TEST_SECRET,
        auth_jwks_url=None,
        auth_jwt_issuer=None,
        auth_jwt_audience=None,
        free_limit=5,
        google_api_key=None,
        gemini_api_key=None,
        paypal_client_id="paypal-client",
        paypal_client_secret="paypal-secret",
        paypal_webhook_id="WH-TEST",
        paypal_plan_id_monthly="P-MONTHLY",
        paypal_plan_id_yearly="P-YEARLY",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        stripe_price_id="price_pro",
    )


@pytest_asyncio.fixture
async def db(settings) -> AsyncGenerator[DatabaseManager, None]:
    """DatabaseManager with all tables created."""
    manager = DatabaseManager(settings)
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def session(db):
    """A session committed on success, like a request-scoped one."""
    async with db.session_scope() as session:
        yield session


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture
def make_token(settings):
    """Build a signed session token for any user."""
    issuer = SessionTokenVerifier(settings)

    def _make(user_id: str = TEST_USER_ID, email: str = TEST_EMAIL, **kwargs) -> str:
        return issuer.issue(Identity(user_id=user_id, email=email), **kwargs)
    return _make


@pytest.fixture
def auth_headers(make_token):
    """Authorization header for the default test user."""
    return {"Authorization": f"Bearer {make_token()}"}


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_llm():
    """Mock for GeminiService."""
    mock = MagicMock()
    mock.complete = AsyncMock(return_value="Hello from the assistant!")
    return mock


@pytest.fixture
def mock_paypal():
    """Mock for PayPalService."""
    mock = MagicMock()
    mock.create_order = AsyncMock(return_value="ORDER-123")
    mock.create_subscription = AsyncMock(return_value={
        "id": "I-SUB123",
        "plan_id": "P-MONTHLY",
        "status": "APPROVAL_PENDING",
        "approval_url": "https://www.sandbox.paypal.com/webapps/billing/subscriptions?ba_token=BA-1",
    })
    mock.get_subscription = AsyncMock(return_value={
        "id": "I-SUB123",
        "status": "ACTIVE",
        "plan_id": "P-MONTHLY",
        "custom_id": TEST_USER_ID,
        "next_billing_time": None,
    })
    mock.cancel_subscription = AsyncMock(return_value=None)
    mock.verify_webhook_signature = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def mock_stripe():
    """Mock for StripeService."""
    mock = MagicMock()
    mock.get_or_create_customer = AsyncMock(return_value="cus_test")
    mock.create_checkout_session = AsyncMock(
        return_value="https://checkout.stripe.com/c/pay/cs_test_123"
    )
    return mock


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(settings, mock_llm, mock_paypal, mock_stripe):
    """FastAPI application wired to the test database and mocked services."""
    from app.main import create_app

    application = create_app(settings)
    application.state.llm = mock_llm
    application.state.paypal = mock_paypal
    application.state.stripe = mock_stripe
    return application


@pytest.fixture
def client(app):
    """Synchronous test client; entering it runs the lifespan (tables created)."""
    with TestClient(app) as test_client:
        yield test_client
