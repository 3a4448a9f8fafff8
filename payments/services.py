# payments/services.py
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from registrations.models import Registration

from .exceptions import (
    AlreadyPaid,
    BadRequest,
    GatewayOrderFailed,
    MissingFields,
    NotFound,
    PersistenceFailed,
    Unexpected,
)
from .integrations import razorpay_client
from .signatures import expected_signatures, signature_matches

logger = logging.getLogger(__name__)

VERIFY_FIELDS = ("registrationId", "razorpay_order_id", "razorpay_payment_id", "razorpay_signature")


@dataclass(frozen=True)
class VerificationResult:
    authentic: bool
    expected_hex: str = ""
    expected_base64: str = ""
    provided: str = ""


def order_amount(registration: Registration) -> int:
    """Amount to charge in paise, derived from the stored registration only."""
    return registration.resolved_fee() * 100


def record_payment_outcome(registration_id: str, **fields) -> int:
    """Write payment columns of one registration in a single UPDATE.

    Only ``Registration.PAYMENT_FIELDS`` may be written. Raises
    ``NotFound`` when no row matches and ``PersistenceFailed`` on database
    errors.
    """
    unknown = set(fields) - Registration.PAYMENT_FIELDS
    if unknown:
        raise ValueError(f"Not a payment field: {', '.join(sorted(unknown))}")
    try:
        updated = Registration.objects.filter(pk=registration_id).update(**fields)
    except DatabaseError as e:
        logger.error("Payment update failed for registration=%s: %s", registration_id, e)
        raise PersistenceFailed(str(e), detail=str(e))
    if not updated:
        raise NotFound(f"Registration {registration_id} not found")
    return updated


def create_order(registration_id: str) -> dict:
    """Open a Razorpay order for a registration's fee and mark it ``created``.

    A paid registration is refused before the gateway is called. A
    ``failed`` registration may open a fresh order and go back to ``created``.
    """
    registration_id = (registration_id or "").strip()
    if not registration_id:
        raise BadRequest("registrationId required")

    registration = (
        Registration.objects.filter(pk=registration_id)
        .only("id", "fees", "gender", "is_paid", "payment_status")
        .first()
    )
    if registration is None:
        raise NotFound(f"Registration {registration_id} not found")
    if registration.is_paid or registration.payment_status == "paid":
        logger.warning("Registration %s already paid; refusing a new order", registration_id)
        raise AlreadyPaid(f"Registration {registration_id} already paid")

    amount = order_amount(registration)
    currency = settings.RAZORPAY_CURRENCY
    try:
        order = razorpay_client.create_order(
            amount=amount,
            receipt=registration_id,
            notes={"registrationId": registration_id},
            currency=currency,
        )
    except razorpay_client.RazorpayError as e:
        raise GatewayOrderFailed(str(e), detail=e.detail)

    try:
        record_payment_outcome(registration_id, razorpay_order_id=order["id"], payment_status="created")
    except PersistenceFailed as e:
        raise Unexpected(str(e)) from e
    key_id, _ = razorpay_client.get_credentials()
    return {
        "key_id": key_id,
        "order_id": order["id"],
        "amount": amount,
        "currency": order.get("currency") or currency,
    }


def verify_payment(registration_id, razorpay_order_id, razorpay_payment_id, razorpay_signature) -> VerificationResult:
    """Check a checkout signature and persist ``paid`` or ``failed``.

    Re-running with the same inputs re-asserts the same state; the gateway
    identifiers are overwritten on every attempt.
    """
    values = dict(zip(VERIFY_FIELDS, (registration_id, razorpay_order_id, razorpay_payment_id, razorpay_signature)))
    missing = [name for name, value in values.items() if not str(value or "").strip()]
    if missing:
        raise MissingFields(missing, body=values)

    _, key_secret = razorpay_client.get_credentials()
    expected_hex, expected_b64 = expected_signatures(key_secret, razorpay_order_id, razorpay_payment_id)
    audit = {
        "razorpay_order_id": razorpay_order_id,
        "razorpay_payment_id": razorpay_payment_id,
        "razorpay_signature": razorpay_signature,
    }

    if not signature_matches(razorpay_signature, expected_hex, expected_b64):
        record_payment_outcome(registration_id, payment_status="failed", **audit)
        logger.warning(
            "Registration %s -> failed: signature mismatch for order=%s payment=%s",
            registration_id,
            razorpay_order_id,
            razorpay_payment_id,
        )
        return VerificationResult(
            authentic=False,
            expected_hex=expected_hex,
            expected_base64=expected_b64,
            provided=razorpay_signature,
        )

    record_payment_outcome(
        registration_id,
        is_paid=True,
        payment_status="paid",
        paid_at=timezone.now(),
        **audit,
    )
    logger.info("Registration %s -> paid (order=%s payment=%s)", registration_id, razorpay_order_id, razorpay_payment_id)
    return VerificationResult(authentic=True, provided=razorpay_signature)
