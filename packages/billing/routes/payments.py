"""
Payment gateway callback routes.

The browser is redirected to /vnpay/return after paying; the gateway calls
/vnpay/ipn server-to-server. Both carry the same signed parameters and are
idempotent, so whichever arrives first settles the payment.
"""

from fastapi import APIRouter, HTTPException, Request, status

from common.core.exceptions import (
    InvalidSignatureError,
    NotFoundError,
    SigningError,
    ValidationError,
)
from common.core.otel_axiom_exporter import get_logger
from common.providers.rate_limiter.limiter import limiter
from packages.billing.models.schemas.billing import IpnResponse, PaymentReturnResponse
from packages.billing.services.payment_service import PaymentService

logger = get_logger(__name__)

router = APIRouter()


@router.get("/vnpay/return", response_model=PaymentReturnResponse)
@limiter.limit("30/minute")
async def vnpay_return(request: Request):
    params = dict(request.query_params)
    try:
        result = await PaymentService().handle_payment_return(params)
    except InvalidSignatureError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SigningError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway is not configured",
        )

    return PaymentReturnResponse(**result.model_dump())


@router.get("/vnpay/ipn", response_model=IpnResponse)
@limiter.limit("120/minute")
async def vnpay_ipn(request: Request):
    """Answers with the RspCode/Message pair the gateway expects."""
    params = dict(request.query_params)
    try:
        result = await PaymentService().handle_payment_return(params)
    except InvalidSignatureError:
        return IpnResponse(RspCode="97", Message="Invalid signature")
    except NotFoundError:
        return IpnResponse(RspCode="01", Message="Order not found")
    except ValidationError:
        return IpnResponse(RspCode="04", Message="Invalid amount")
    except Exception as e:
        # The gateway retries on anything but a well-formed answer
        logger.error(f"IPN processing failed: {e}", exc_info=True)
        return IpnResponse(RspCode="99", Message="Unknown error")

    if result.already_processed:
        return IpnResponse(RspCode="02", Message="Order already confirmed")
    return IpnResponse(RspCode="00", Message="Confirm Success")
