import hmac
from typing import Annotated, Optional

from fastapi import Header, HTTPException, status

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


def api_key_matches(candidate: Optional[str], expected: str) -> bool:
    """Constant-time API key comparison. An unset expected key never matches."""
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


async def require_admin_api_key(
    x_api_key: Annotated[Optional[str], Header()] = None,
) -> None:
    """Guard for operator endpoints (job status, manual runs, config updates)."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
        )

    if not api_key_matches(x_api_key, settings.admin_api_key):
        logger.warning("Rejected admin request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
