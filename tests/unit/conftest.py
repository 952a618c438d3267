import functools

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from common.providers.locking.interface import DistributedLockInterface
from packages.billing.models.domain.gateway import (
    ChargeResult,
    TransactionQueryResult,
)
from packages.billing.providers.notifications.interface import (
    RenewalNotifierInterface,
)
from packages.billing.providers.payment.interface import PaymentGatewayInterface


@pytest.fixture
def mock_lock_provider():
    """Create a mock lock provider instance for testing."""
    lock = AsyncMock()
    lock.acquire_lock = AsyncMock(return_value="test-lock-token")
    lock.release_lock = AsyncMock(return_value=True)
    lock.disconnect = AsyncMock(return_value=None)
    # Real lease() so acquire/release are driven through the mocks above
    lock.lease = functools.partial(DistributedLockInterface.lease, lock)
    return lock


@pytest.fixture(autouse=True)
def mock_get_lock_provider(mock_lock_provider):
    """Automatically mock get_lock_provider for all unit tests."""
    with patch(
        "common.providers.locking.factory.get_lock_provider",
        return_value=mock_lock_provider,
    ), patch(
        "packages.billing.services.renewal_service.get_lock_provider",
        return_value=mock_lock_provider,
    ), patch(
        "packages.billing.workers.renewal_worker.get_lock_provider",
        return_value=mock_lock_provider,
    ), patch(
        "api.main.get_lock_provider",
        return_value=mock_lock_provider,
    ):
        yield


@pytest.fixture
def mock_gateway():
    """Create a mock payment gateway whose stored-token charges succeed."""
    gateway = MagicMock(spec=PaymentGatewayInterface)
    gateway.charge_stored_token = AsyncMock(
        return_value=ChargeResult(
            success=True,
            transaction_id="14012345",
            raw={"vnp_ResponseCode": "00", "vnp_TransactionNo": "14012345"},
        )
    )
    gateway.query_transaction = AsyncMock(
        return_value=TransactionQueryResult(found=False)
    )
    return gateway


@pytest.fixture
def mock_notifier():
    """Create a mock renewal failure notifier."""
    notifier = MagicMock(spec=RenewalNotifierInterface)
    notifier.notify_renewal_failure = AsyncMock(return_value=None)
    return notifier


@pytest.fixture
def mock_span():
    """Create a mock span instance for testing telemetry."""
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=None)
    return span


@pytest.fixture
def mock_start_span(mock_span):
    """Create a mock start_span function that returns mock_span."""
    with patch(
        "common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span",
        return_value=mock_span,
    ) as mock:
        yield mock
