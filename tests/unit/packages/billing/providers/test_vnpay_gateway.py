"""Tests for the VNPay gateway adapter."""

import httpx
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qsl, urlsplit

from common.core.exceptions import PaymentGatewayError, SigningError
from packages.billing.models.domain.gateway import PaymentUrlRequest
from packages.billing.models.domain.payment_method import PaymentMethod
from packages.billing.providers.payment import signing
from packages.billing.providers.payment.vnpay_gateway import (
    VNPayGateway,
    generate_txn_ref,
)

SECRET = "TESTHASHSECRETKEY0123456789ABCDEF"
TOKEN_URL = "https://sandbox.vnpayment.vn/token/pay"


@pytest.fixture
def gateway():
    return VNPayGateway(
        tmn_code="TESTTMN1",
        hash_secret=SECRET,
        base_url="https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
        return_url="http://test/payment/return",
        token_api_url=TOKEN_URL,
    )


@pytest.fixture
def payment_method():
    return PaymentMethod(
        id=7,
        user_id=1001,
        payment_method_token="tok_test_4242",
        card_last_4="4242",
        card_brand="Visa",
        is_active=True,
        is_default=True,
    )


def _signed(params):
    params = dict(params)
    params[signing.SECURE_HASH_FIELD] = signing.sign_params(params, SECRET)
    return params


def _response(status_code=200, **kwargs):
    return httpx.Response(
        status_code, request=httpx.Request("POST", TOKEN_URL), **kwargs
    )


class TestConfiguration:
    def test_missing_secret_raises_signing_error(self):
        with pytest.raises(SigningError):
            VNPayGateway(tmn_code="TESTTMN1", hash_secret="")

    def test_missing_tmn_code_raises_signing_error(self):
        with pytest.raises(SigningError):
            VNPayGateway(tmn_code="", hash_secret=SECRET)


class TestTxnRef:
    def test_format(self):
        prefix, millis, suffix = generate_txn_ref().split("_")
        assert prefix == "NLC"
        assert millis.isdigit()
        assert len(suffix) == 6 and suffix.isalnum() and suffix.upper() == suffix

    def test_unique(self):
        assert len({generate_txn_ref() for _ in range(50)}) == 50


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestBuildPaymentUrl:
    def test_url_carries_signed_parameters(self, mock_start_span, gateway):
        url = gateway.build_payment_url(
            PaymentUrlRequest(
                amount=199000,
                order_info="Premium Monthly - payment 1",
                txn_ref="PREMIUM_1_1760000000000",
                ip_addr="10.0.0.1",
                order_type="subscription",
                bank_code="INTCARD",
            )
        )

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == gateway.base_url

        params = dict(parse_qsl(parts.query, keep_blank_values=True))
        assert params["vnp_Amount"] == "19900000"
        assert params["vnp_Command"] == "pay"
        assert params["vnp_TmnCode"] == "TESTTMN1"
        assert params["vnp_CurrCode"] == "VND"
        assert params["vnp_BankCode"] == "INTCARD"
        assert params["vnp_OrderInfo"] == "Premium Monthly - payment 1"
        assert params["vnp_ReturnUrl"] == "http://test/payment/return"
        assert len(params["vnp_CreateDate"]) == 14

        assert gateway.verify_callback(params) is True

    def test_hash_is_last_and_over_exact_query(self, mock_start_span, gateway):
        url = gateway.build_payment_url(
            PaymentUrlRequest(
                amount=50000, order_info="Goi thang", txn_ref="NLC_1_ABCDEF"
            )
        )

        query = urlsplit(url).query
        signed_part, secure_hash = query.rsplit("&vnp_SecureHash=", 1)
        assert signing.sign(signed_part, SECRET) == secure_hash
        assert "vnp_BankCode" not in signed_part

    def test_format_date_uses_gateway_timezone(self, mock_start_span, gateway):
        value = datetime(2026, 10, 19, 17, 30, 0, tzinfo=timezone.utc)
        assert gateway.format_date(value) == "20261020003000"


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestParseCallback:
    def test_successful_callback(self, mock_start_span, gateway):
        params = _signed(
            {
                "vnp_Amount": "19900000",
                "vnp_ResponseCode": "00",
                "vnp_TxnRef": "PREMIUM_1_1760000000000",
                "vnp_TransactionNo": "14012345",
                "vnp_BankCode": "NCB",
                "vnp_CardType": "ATM",
            }
        )

        result = gateway.parse_callback(params)

        assert result.is_valid is True
        assert result.is_success is True
        assert result.amount == 199000
        assert result.transaction_no == "14012345"
        assert result.message == "Transaction successful"

    def test_declined_callback(self, mock_start_span, gateway):
        params = _signed(
            {
                "vnp_Amount": "19900000",
                "vnp_ResponseCode": "24",
                "vnp_TxnRef": "PREMIUM_1_1760000000000",
            }
        )

        result = gateway.parse_callback(params)

        assert result.is_valid is True
        assert result.is_success is False
        assert result.message == "Customer cancelled the transaction"

    def test_tampered_callback_is_invalid(self, mock_start_span, gateway):
        params = _signed({"vnp_Amount": "19900000", "vnp_ResponseCode": "24"})
        params["vnp_ResponseCode"] = "00"

        result = gateway.parse_callback(params)

        assert result.is_valid is False
        assert result.is_success is False


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestChargeStoredToken:
    @pytest.mark.asyncio
    async def test_successful_charge(self, mock_start_span, gateway, payment_method):
        post = AsyncMock(
            return_value=_response(
                json={"vnp_ResponseCode": "00", "vnp_TransactionNo": "14099999"}
            )
        )
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.charge_stored_token(
                payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
            )

        assert result.success is True
        assert result.transaction_id == "14099999"

        sent = post.call_args.kwargs["data"]
        assert sent["vnp_Command"] == "token_pay"
        assert sent["vnp_Token"] == "tok_test_4242"
        assert sent["vnp_Amount"] == "19900000"
        assert signing.verify_params(sent, SECRET) is True

    @pytest.mark.asyncio
    async def test_declined_charge(self, mock_start_span, gateway, payment_method):
        post = AsyncMock(return_value=_response(json={"vnp_ResponseCode": "51"}))
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.charge_stored_token(
                payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
            )

        assert result.success is False
        assert result.error == "Insufficient account balance"

    @pytest.mark.asyncio
    async def test_http_error_is_a_failed_charge(
        self, mock_start_span, gateway, payment_method
    ):
        post = AsyncMock(return_value=_response(status_code=502, text="Bad Gateway"))
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.charge_stored_token(
                payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
            )

        assert result.success is False
        assert result.error == "Gateway returned HTTP 502"

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failed_charge(
        self, mock_start_span, gateway, payment_method
    ):
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.charge_stored_token(
                payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
            )

        assert result.success is False
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_response_with_bad_signature_is_rejected(
        self, mock_start_span, gateway, payment_method
    ):
        body = _signed({"vnp_ResponseCode": "51", "vnp_TransactionNo": "1"})
        body["vnp_ResponseCode"] = "00"
        post = AsyncMock(return_value=_response(json=body))
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.charge_stored_token(
                payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
            )

        assert result.success is False
        assert result.error == "Invalid gateway response signature"

    @pytest.mark.asyncio
    async def test_unconfigured_token_endpoint(self, mock_start_span, payment_method):
        gateway = VNPayGateway(
            tmn_code="TESTTMN1", hash_secret=SECRET, token_api_url=""
        )

        result = await gateway.charge_stored_token(
            payment_method, 199000, "NLC_1_ABCDEF", "Renewal"
        )

        assert result.success is False
        assert result.error == "Token charge endpoint is not configured"


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestQueryTransaction:
    API_URL = "https://sandbox.vnpayment.vn/merchant_webapi/api/transaction"
    CREATED_AT = datetime(2026, 10, 19, 3, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_posts_signed_querydr(self, mock_start_span, gateway):
        gateway.api_url = self.API_URL
        post = AsyncMock(
            return_value=_response(
                text=(
                    "vnp_ResponseCode=00&vnp_TransactionStatus=00"
                    "&vnp_TxnRef=NLC_1_ABCDEF&vnp_TransactionNo=14012345"
                )
            )
        )
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)

        assert result.found is True
        assert result.is_settled is True
        assert result.is_pending is False
        assert result.transaction_id == "14012345"
        sent = dict(parse_qsl(post.call_args.kwargs["content"], keep_blank_values=True))
        assert sent["vnp_Command"] == "querydr"
        # Gateway wall clock is GMT+7
        assert sent["vnp_TransDate"] == "20261019103000"
        assert signing.verify_params(sent, SECRET) is True

    @pytest.mark.asyncio
    async def test_unfinished_transaction_is_pending(self, mock_start_span, gateway):
        gateway.api_url = self.API_URL
        post = AsyncMock(
            return_value=_response(text="vnp_ResponseCode=00&vnp_TransactionStatus=01")
        )
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)

        assert result.found is True
        assert result.is_settled is False
        assert result.is_pending is True

    @pytest.mark.asyncio
    async def test_unknown_reference_is_not_found(self, mock_start_span, gateway):
        gateway.api_url = self.API_URL
        post = AsyncMock(return_value=_response(text="vnp_ResponseCode=91"))
        with patch.object(httpx.AsyncClient, "post", post):
            result = await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)

        assert result.found is False
        assert result.is_settled is False

    @pytest.mark.asyncio
    async def test_rejected_query_raises_gateway_error(self, mock_start_span, gateway):
        gateway.api_url = self.API_URL
        post = AsyncMock(return_value=_response(text="vnp_ResponseCode=97"))
        with patch.object(httpx.AsyncClient, "post", post):
            with pytest.raises(PaymentGatewayError):
                await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)

    @pytest.mark.asyncio
    async def test_network_error_raises_gateway_error(self, mock_start_span, gateway):
        gateway.api_url = self.API_URL
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        with patch.object(httpx.AsyncClient, "post", post):
            with pytest.raises(PaymentGatewayError):
                await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)

    @pytest.mark.asyncio
    async def test_missing_api_url_raises(self, mock_start_span, gateway):
        gateway.api_url = ""

        with pytest.raises(PaymentGatewayError):
            await gateway.query_transaction("NLC_1_ABCDEF", self.CREATED_AT)
