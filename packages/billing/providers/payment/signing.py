"""
VNPay parameter canonicalization and HMAC-SHA512 signing.

Both the outbound redirect URL and inbound callbacks are signed over the same
canonical string:

1. keys are URL-encoded and sorted lexicographically,
2. values are encoded like JavaScript's encodeURIComponent with "%20" replaced
   by "+",
3. pairs are joined as "key=value" with "&".

The digest is the lowercase hex HMAC-SHA512 of that string's UTF-8 bytes.

Values are encoded once. Pre-encoding them and then building the query with
a second encoder (e.g. URLSearchParams over encodeURIComponent output) turns
"+" into "%2B" and "%" into "%25", which is not the string VNPay signs.
"""

import hashlib
import hmac
from typing import Mapping
from urllib.parse import quote

SECURE_HASH_FIELD = "vnp_SecureHash"
SECURE_HASH_TYPE_FIELD = "vnp_SecureHashType"

# Characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(value) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def encode_value(value) -> str:
    return encode_component(value).replace("%20", "+")


def canonical_query(params: Mapping[str, object]) -> str:
    """Build the sorted, encoded query string that gets signed."""
    encoded = sorted(
        (encode_component(key), encode_value(value))
        for key, value in params.items()
        if value is not None
    )
    return "&".join(f"{key}={value}" for key, value in encoded)


def sign(data: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha512
    ).hexdigest()


def sign_params(params: Mapping[str, object], secret: str) -> str:
    return sign(canonical_query(params), secret)


def strip_hash_fields(params: Mapping[str, object]) -> dict:
    """Copy of params without the hash fields. The input is left untouched."""
    return {
        key: value
        for key, value in params.items()
        if key not in (SECURE_HASH_FIELD, SECURE_HASH_TYPE_FIELD)
    }


def verify_params(params: Mapping[str, object], secret: str) -> bool:
    """True iff params carry a hash matching their own canonical form."""
    received = params.get(SECURE_HASH_FIELD)
    if not received or not secret:
        return False

    expected = sign_params(strip_hash_fields(params), secret)
    return hmac.compare_digest(
        expected.lower().encode("utf-8"), str(received).lower().encode("utf-8")
    )
