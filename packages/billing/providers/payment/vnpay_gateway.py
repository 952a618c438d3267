"""
VNPay implementation of the payment gateway.
"""

import json
import random
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl

import httpx

from common.core.config import settings
from common.core.exceptions import PaymentGatewayError, SigningError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.gateway import (
    CallbackResult,
    ChargeResult,
    PaymentUrlRequest,
    TransactionQueryResult,
)
from packages.billing.models.domain.payment_method import PaymentMethod
from packages.billing.providers.payment import signing
from packages.billing.providers.payment.interface import PaymentGatewayInterface
from packages.billing.providers.payment.response_codes import (
    QUERY_NOT_FOUND_CODE,
    TRANSACTION_PENDING_STATUS,
    get_response_message,
    is_success,
)

logger = get_logger(__name__)

VNPAY_VERSION = "2.1.0"
VNPAY_DATE_FORMAT = "%Y%m%d%H%M%S"
HTTP_TIMEOUT_SECONDS = 30.0


def generate_txn_ref() -> str:
    """Unique merchant reference: NLC_<epoch ms>_<6 upper alnum>."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"NLC_{int(time.time() * 1000)}_{suffix}"


class VNPayGateway(PaymentGatewayInterface):
    """VNPay hosted-redirect gateway with HMAC-SHA512 signatures."""

    def __init__(
        self,
        tmn_code: Optional[str] = None,
        hash_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        return_url: Optional[str] = None,
        api_url: Optional[str] = None,
        token_api_url: Optional[str] = None,
        utc_offset_hours: Optional[int] = None,
    ):
        self.tmn_code = tmn_code if tmn_code is not None else settings.vnpay_tmn_code
        self.hash_secret = (
            hash_secret if hash_secret is not None else settings.vnpay_hash_secret
        )
        self.base_url = base_url if base_url is not None else settings.vnpay_url
        self.return_url = (
            return_url if return_url is not None else settings.vnpay_return_url
        )
        self.api_url = api_url if api_url is not None else settings.vnpay_api_url
        self.token_api_url = (
            token_api_url
            if token_api_url is not None
            else settings.vnpay_token_api_url
        )
        offset = (
            utc_offset_hours
            if utc_offset_hours is not None
            else settings.vnpay_utc_offset_hours
        )
        self.tz = timezone(timedelta(hours=offset))

        self._ensure_configured()

    def _ensure_configured(self) -> None:
        missing = [
            name
            for name, value in (
                ("tmn_code", self.tmn_code),
                ("hash_secret", self.hash_secret),
                ("base_url", self.base_url),
            )
            if not value
        ]
        if missing:
            raise SigningError(f"VNPay configuration missing: {', '.join(missing)}")

    def format_date(self, value: Optional[datetime] = None) -> str:
        """Gateway wall-clock timestamp (yyyyMMddHHmmss)."""
        value = value or datetime.now(timezone.utc)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.tz).strftime(VNPAY_DATE_FORMAT)

    def _signed_query(self, params: Dict[str, Any]) -> str:
        query = signing.canonical_query(params)
        secure_hash = signing.sign(query, self.hash_secret)
        return f"{query}&{signing.SECURE_HASH_FIELD}={secure_hash}"

    def _signed_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        signed = dict(params)
        signed[signing.SECURE_HASH_FIELD] = signing.sign_params(
            params, self.hash_secret
        )
        return signed

    @trace_span
    def build_payment_url(self, request: PaymentUrlRequest) -> str:
        self._ensure_configured()

        params: Dict[str, Any] = {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            "vnp_Locale": request.locale or "vn",
            "vnp_CurrCode": "VND",
            "vnp_TxnRef": request.txn_ref,
            "vnp_OrderInfo": request.order_info,
            "vnp_OrderType": request.order_type,
            "vnp_Amount": str(request.amount * 100),
            "vnp_ReturnUrl": request.return_url or self.return_url,
            "vnp_IpAddr": request.ip_addr,
            "vnp_CreateDate": self.format_date(),
        }
        if request.expire_date:
            params["vnp_ExpireDate"] = self.format_date(request.expire_date)
        if request.bank_code:
            params["vnp_BankCode"] = request.bank_code

        payment_url = f"{self.base_url}?{self._signed_query(params)}"
        logger.info(
            f"Built VNPay payment URL for {request.txn_ref}",
            extra={"txn_ref": request.txn_ref, "amount": request.amount},
        )
        return payment_url

    def verify_callback(self, params: Mapping[str, Any]) -> bool:
        return signing.verify_params(params, self.hash_secret)

    @trace_span
    def parse_callback(self, params: Mapping[str, Any]) -> CallbackResult:
        if not self.verify_callback(params):
            logger.warning(
                "Rejected VNPay callback with invalid signature",
                extra={"txn_ref": params.get("vnp_TxnRef")},
            )
            return CallbackResult(
                is_valid=False,
                txn_ref=params.get("vnp_TxnRef"),
                message="Invalid signature",
            )

        response_code = str(params.get("vnp_ResponseCode", ""))
        raw_amount = params.get("vnp_Amount")
        amount = int(raw_amount) // 100 if raw_amount else None

        return CallbackResult(
            is_valid=True,
            is_success=is_success(response_code),
            response_code=response_code,
            message=get_response_message(response_code),
            txn_ref=params.get("vnp_TxnRef"),
            transaction_no=params.get("vnp_TransactionNo"),
            amount=amount,
            bank_code=params.get("vnp_BankCode"),
            card_type=params.get("vnp_CardType"),
            pay_date=params.get("vnp_PayDate"),
        )

    @staticmethod
    def _parse_response(response: httpx.Response) -> Dict[str, Any]:
        if "json" in response.headers.get("content-type", ""):
            return response.json()
        text = response.text
        try:
            return json.loads(text)
        except ValueError:
            return dict(parse_qsl(text))

    @trace_span
    async def charge_stored_token(
        self,
        payment_method: PaymentMethod,
        amount: int,
        txn_ref: str,
        order_info: str,
    ) -> ChargeResult:
        if not self.token_api_url:
            return ChargeResult(
                success=False, error="Token charge endpoint is not configured"
            )

        params = self._signed_params(
            {
                "vnp_Version": VNPAY_VERSION,
                "vnp_Command": "token_pay",
                "vnp_TmnCode": self.tmn_code,
                "vnp_Token": payment_method.payment_method_token,
                "vnp_TxnRef": txn_ref,
                "vnp_Amount": str(amount * 100),
                "vnp_CurrCode": "VND",
                "vnp_OrderInfo": order_info,
                "vnp_IpAddr": "127.0.0.1",
                "vnp_CreateDate": self.format_date(),
            }
        )

        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
                response = await client.post(self.token_api_url, data=params)
                response.raise_for_status()
                data = self._parse_response(response)
        except httpx.HTTPStatusError as e:
            logger.error(
                f"VNPay token charge failed with status {e.response.status_code}",
                extra={"txn_ref": txn_ref},
            )
            return ChargeResult(
                success=False,
                error=f"Gateway returned HTTP {e.response.status_code}",
            )
        except httpx.HTTPError as e:
            logger.error(
                f"VNPay token charge request error: {e}", extra={"txn_ref": txn_ref}
            )
            return ChargeResult(success=False, error=f"Gateway request failed: {e}")

        if signing.SECURE_HASH_FIELD in data and not self.verify_callback(data):
            return ChargeResult(
                success=False, error="Invalid gateway response signature", raw=data
            )

        response_code = str(data.get("vnp_ResponseCode", ""))
        if is_success(response_code):
            return ChargeResult(
                success=True,
                transaction_id=data.get("vnp_TransactionNo"),
                raw=data,
            )
        return ChargeResult(
            success=False, error=get_response_message(response_code), raw=data
        )

    @trace_span
    async def query_transaction(
        self, txn_ref: str, created_at: datetime
    ) -> TransactionQueryResult:
        if not self.api_url:
            raise PaymentGatewayError("VNPay query API URL is not configured")

        params = {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": "querydr",
            "vnp_TmnCode": self.tmn_code,
            "vnp_TxnRef": txn_ref,
            "vnp_OrderInfo": f"Query transaction {txn_ref}",
            "vnp_TransactionNo": "",
            "vnp_TransDate": self.format_date(created_at),
            "vnp_CreateDate": self.format_date(),
            "vnp_IpAddr": "127.0.0.1",
        }

        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    self.api_url,
                    content=self._signed_query(params),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                data = dict(parse_qsl(response.text, keep_blank_values=True))
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Failed to query transaction: {e}") from e

        response_code = data.get("vnp_ResponseCode", "")
        if response_code == QUERY_NOT_FOUND_CODE:
            return TransactionQueryResult(found=False, raw=data)
        if not is_success(response_code):
            raise PaymentGatewayError(
                f"Transaction query for {txn_ref} failed (code: {response_code})"
            )

        status = data.get("vnp_TransactionStatus", "")
        return TransactionQueryResult(
            found=True,
            is_settled=is_success(status),
            is_pending=status == TRANSACTION_PENDING_STATUS,
            transaction_id=data.get("vnp_TransactionNo") or None,
            message=get_response_message(status),
            raw=data,
        )
