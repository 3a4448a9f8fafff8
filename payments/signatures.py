"""Razorpay checkout signature helpers."""

import base64
import hashlib
import hmac


def expected_signatures(secret: str, order_id: str, payment_id: str) -> tuple[str, str]:
    """Return the hex and base64 encodings of the expected checkout signature.

    Razorpay signs ``"<order_id>|<payment_id>"`` with HMAC-SHA256 keyed by
    the API key secret. Checkout libraries have been seen to echo the
    digest in either encoding, so both are produced from the same digest.
    """
    msg = f"{order_id}|{payment_id}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).digest()
    return digest.hex(), base64.b64encode(digest).decode("ascii")


def signature_matches(provided: str, expected_hex: str, expected_b64: str) -> bool:
    """Compare a client signature against both encodings.

    Surrounding whitespace is ignored; the hex form is compared
    case-insensitively and the base64 form exactly.
    """
    candidate = (provided or "").strip()
    if not candidate:
        return False
    hex_ok = hmac.compare_digest(expected_hex.encode("utf-8"), candidate.lower().encode("utf-8"))
    b64_ok = hmac.compare_digest(expected_b64.encode("utf-8"), candidate.encode("utf-8"))
    return hex_ok or b64_ok
