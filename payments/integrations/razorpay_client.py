import logging

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from requests import RequestException
from requests.auth import HTTPBasicAuth

logger = logging.getLogger(__name__)

ORDERS_PATH = "/v1/orders"


class RazorpayError(Exception):
    """Order creation was rejected or could not be completed.

    ``detail`` holds the gateway's error payload (or a transport message)
    for diagnostics; it never contains the key secret.
    """

    def __init__(self, message, detail=None, status_code=None):
        super().__init__(message)
        self.detail = detail
        self.status_code = status_code


def get_credentials() -> tuple[str, str]:
    """Return ``(key_id, key_secret)`` for the configured LIVE or TEST mode."""
    if settings.RAZORPAY_USE_LIVE:
        key_id, key_secret = settings.RAZORPAY_KEY_ID_LIVE, settings.RAZORPAY_KEY_SECRET_LIVE
        mode = "LIVE"
    else:
        key_id, key_secret = settings.RAZORPAY_KEY_ID_TEST, settings.RAZORPAY_KEY_SECRET_TEST
        mode = "TEST"
    if not key_id or not key_secret:
        logger.error("Razorpay %s credentials missing in settings", mode)
        raise ImproperlyConfigured(f"Missing {mode} Razorpay credentials")
    return key_id, key_secret


def _orders_url() -> str:
    return settings.RAZORPAY_BASE_URL.rstrip("/") + ORDERS_PATH


def _response_detail(resp):
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text[:800]}


def create_order(*, amount: int, receipt: str, notes: dict | None = None, currency: str = "INR") -> dict:
    """Create a Razorpay order for ``amount`` paise and return the gateway's order object."""
    key_id, key_secret = get_credentials()
    payload = {
        "amount": amount,
        "currency": currency,
        "receipt": receipt,
        "notes": notes or {},
        "payment_capture": 1,
    }
    try:
        resp = requests.post(
            _orders_url(),
            json=payload,
            auth=HTTPBasicAuth(key_id, key_secret),
            headers={"Content-Type": "application/json"},
            timeout=settings.RAZORPAY_TIMEOUT,
        )
    except RequestException as e:
        logger.error("Razorpay order request failed for receipt=%s: %s", receipt, e.__class__.__name__)
        raise RazorpayError("Gateway request failed", detail={"error": str(e)})

    if not 200 <= resp.status_code < 300:
        detail = _response_detail(resp)
        logger.error(
            "Razorpay order creation failed for receipt=%s: status=%s detail=%s",
            receipt,
            resp.status_code,
            detail,
        )
        raise RazorpayError(
            f"Create order failed: HTTP {resp.status_code}", detail=detail, status_code=resp.status_code
        )

    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict) or not data.get("id"):
        logger.error("Razorpay returned a malformed order for receipt=%s: %s", receipt, resp.text[:800])
        raise RazorpayError(
            "Malformed order response", detail={"raw": resp.text[:800]}, status_code=resp.status_code
        )

    logger.info("Created Razorpay order %s for receipt=%s amount=%s", data["id"], receipt, amount)
    return data
