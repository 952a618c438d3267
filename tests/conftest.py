# Shared pytest configuration and fixtures for all test types
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch
from datetime import datetime, timezone, timedelta

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.core.config import settings
from common.db.base import Base
from packages.billing.jobs.manager import JobsManager
from packages.billing.jobs.renewal_job import RenewalJob
from packages.billing.models.database import (
    MembershipPlanEntity,
    PaymentMethodEntity,
    PaymentTransactionEntity,
    SubscriptionEntity,
)
from packages.billing.models.domain.enums import (
    BillingCycle,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)
from packages.billing.models.domain.renewal import JobsConfig, RenewalJobConfig
from packages.billing.providers.payment.vnpay_gateway import VNPayGateway
from packages.billing.services.renewal_service import RenewalService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_ADMIN_API_KEY = "test-admin-key"
TEST_VNPAY_TMN_CODE = "TESTTMN1"
TEST_VNPAY_HASH_SECRET = "TESTHASHSECRETKEY0123456789ABCDEF"
TEST_USER_ID = 1001


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest_asyncio.fixture(scope="function")
async def vnpay_gateway():
    """Real VNPay gateway with sandbox-style test credentials."""
    return VNPayGateway(
        tmn_code=TEST_VNPAY_TMN_CODE,
        hash_secret=TEST_VNPAY_HASH_SECRET,
        base_url="https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
        return_url="http://test/payment/return",
        token_api_url="https://sandbox.vnpayment.vn/token/pay",
    )


@pytest_asyncio.fixture(scope="function")
async def jobs_manager(mock_gateway, mock_notifier):
    """Jobs manager whose timer never self-schedules."""
    renewal_config = RenewalJobConfig(item_delay_ms=0, charge_timeout_ms=1000)
    renewal_job = RenewalJob(
        renewal_config.model_copy(),
        renewal_service=RenewalService(gateway=mock_gateway, notifier=mock_notifier),
    )
    return JobsManager(
        config=JobsConfig(renewal_job_config=renewal_config),
        renewal_job=renewal_job,
        background_jobs_allowed=False,
    )


@pytest_asyncio.fixture(scope="function")
async def client(jobs_manager, vnpay_gateway, monkeypatch):
    """Create a test client authenticated with the admin API key."""
    monkeypatch.setattr(settings, "admin_api_key", TEST_ADMIN_API_KEY)
    app.state.jobs_manager = jobs_manager

    try:
        with patch(
            "packages.billing.services.payment_service.get_payment_gateway",
            return_value=vnpay_gateway,
        ):
            async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://test",
                headers={"X-API-Key": TEST_ADMIN_API_KEY},
            ) as ac:
                yield ac
    finally:
        await jobs_manager.shutdown()
        app.state.jobs_manager = None


@pytest_asyncio.fixture(scope="function")
async def sample_plan(test_db: AsyncSession):
    """Create an active monthly premium plan."""
    plan = MembershipPlanEntity(
        plan_type=PlanType.PREMIUM.value,
        name="Premium Monthly",
        description="Full access, billed monthly",
        amount=199000,
        currency="VND",
        billing_cycle=BillingCycle.MONTHLY.value,
        features={"max_devices": 3},
        is_active=True,
    )
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return plan


@pytest_asyncio.fixture(scope="function")
async def sample_subscription(test_db: AsyncSession):
    """Create an active auto-renewing subscription due tomorrow."""
    now = datetime.now(timezone.utc)
    subscription = SubscriptionEntity(
        user_id=TEST_USER_ID,
        plan_type=PlanType.PREMIUM.value,
        status=SubscriptionStatus.ACTIVE.value,
        amount=199000,
        currency="VND",
        billing_cycle=BillingCycle.MONTHLY.value,
        current_period_start=now - timedelta(days=29),
        current_period_end=now + timedelta(days=1),
        next_billing_date=now + timedelta(days=1),
        auto_renewal=True,
        retry_count=0,
        extra_data={},
    )
    test_db.add(subscription)
    await test_db.commit()
    await test_db.refresh(subscription)
    return subscription


@pytest_asyncio.fixture(scope="function")
async def sample_payment_method(test_db: AsyncSession, sample_subscription):
    """Create the default card of the sample subscription's user."""
    payment_method = PaymentMethodEntity(
        user_id=sample_subscription.user_id,
        subscription_id=sample_subscription.id,
        payment_method_token="tok_test_4242",
        card_last_4="4242",
        card_brand="Visa",
        card_exp_month=12,
        card_exp_year=2030,
        is_active=True,
        is_default=True,
    )
    test_db.add(payment_method)
    await test_db.commit()
    await test_db.refresh(payment_method)
    return payment_method


@pytest_asyncio.fixture(scope="function")
async def pending_subscription(test_db: AsyncSession):
    """Create a subscription waiting for its first payment."""
    now = datetime.now(timezone.utc)
    subscription = SubscriptionEntity(
        user_id=TEST_USER_ID,
        plan_type=PlanType.PREMIUM.value,
        status=SubscriptionStatus.PENDING_PAYMENT.value,
        amount=199000,
        currency="VND",
        billing_cycle=BillingCycle.MONTHLY.value,
        current_period_start=now,
        current_period_end=now + timedelta(days=30),
        auto_renewal=True,
        extra_data={},
    )
    test_db.add(subscription)
    await test_db.commit()
    await test_db.refresh(subscription)
    return subscription


@pytest_asyncio.fixture(scope="function")
async def pending_payment(test_db: AsyncSession, pending_subscription):
    """Create the pending first payment of pending_subscription."""
    payment = PaymentTransactionEntity(
        subscription_id=pending_subscription.id,
        user_id=pending_subscription.user_id,
        amount=199000,
        currency="VND",
        payment_method="vnpay",
        payment_type=PaymentType.SUBSCRIPTION.value,
        status=PaymentStatus.PENDING.value,
        transaction_ref="PREMIUM_1_1760000000000",
        extra_data={},
    )
    test_db.add(payment)
    await test_db.commit()
    await test_db.refresh(payment)
    return payment
