import base64
import hashlib
import hmac
from unittest.mock import patch

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from requests import ConnectionError as RequestsConnectionError
from requests.auth import HTTPBasicAuth

from registrations.models import Registration

from . import services
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

SECRET = "test-razorpay-secret"


def sign(order_id, payment_id, secret=SECRET):
    msg = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), msg, hashlib.sha256).digest()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class SignatureTests(SimpleTestCase):
    def test_expected_signatures_are_hex_and_base64_of_same_digest(self):
        digest = sign("order_A", "pay_B")
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        self.assertEqual(hex_sig, digest.hex())
        self.assertEqual(b64_sig, base64.b64encode(digest).decode())

    def test_hex_matches_case_insensitively(self):
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        self.assertTrue(signature_matches(hex_sig, hex_sig, b64_sig))
        self.assertTrue(signature_matches(hex_sig.upper(), hex_sig, b64_sig))

    def test_base64_matches_exactly(self):
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        self.assertTrue(signature_matches(b64_sig, hex_sig, b64_sig))
        swapped = b64_sig.swapcase()
        if swapped != b64_sig:
            self.assertFalse(signature_matches(swapped, hex_sig, b64_sig))

    def test_surrounding_whitespace_is_ignored(self):
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        self.assertTrue(signature_matches(f"  {hex_sig}\n", hex_sig, b64_sig))
        self.assertTrue(signature_matches(f"{b64_sig} ", hex_sig, b64_sig))

    def test_flipped_character_does_not_match(self):
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        flipped = ("0" if hex_sig[0] != "0" else "1") + hex_sig[1:]
        self.assertFalse(signature_matches(flipped, hex_sig, b64_sig))
        self.assertFalse(signature_matches("deadbeef", hex_sig, b64_sig))
        self.assertFalse(signature_matches("", hex_sig, b64_sig))

    def test_other_secret_does_not_match(self):
        hex_sig, b64_sig = expected_signatures(SECRET, "order_A", "pay_B")
        self.assertFalse(signature_matches(sign("order_A", "pay_B", "other").hex(), hex_sig, b64_sig))


class RazorpayClientTests(SimpleTestCase):
    def test_create_order_posts_with_basic_auth(self):
        order = {"id": "order_123", "amount": 35000, "currency": "INR"}
        with patch("payments.integrations.razorpay_client.requests.post", return_value=FakeResponse(200, order)) as post:
            data = razorpay_client.create_order(amount=35000, receipt="r1", notes={"registrationId": "r1"})

        self.assertEqual(data, order)
        post.assert_called_once()
        self.assertEqual(post.call_args.args[0], "https://api.razorpay.com/v1/orders")
        self.assertEqual(
            post.call_args.kwargs["json"],
            {
                "amount": 35000,
                "currency": "INR",
                "receipt": "r1",
                "notes": {"registrationId": "r1"},
                "payment_capture": 1,
            },
        )
        self.assertEqual(post.call_args.kwargs["auth"], HTTPBasicAuth("rzp_test_key", SECRET))

    def test_non_2xx_raises_with_gateway_detail(self):
        error = {"error": {"code": "BAD_REQUEST_ERROR", "description": "amount invalid"}}
        with patch("payments.integrations.razorpay_client.requests.post", return_value=FakeResponse(400, error)):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR") as cm:
                with self.assertRaises(razorpay_client.RazorpayError) as ctx:
                    razorpay_client.create_order(amount=100, receipt="r1")

        self.assertEqual(ctx.exception.detail, error)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertNotIn(SECRET, "\n".join(cm.output))

    def test_malformed_body_raises(self):
        with patch(
            "payments.integrations.razorpay_client.requests.post",
            return_value=FakeResponse(200, None, text="<html>gateway</html>"),
        ):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
                with self.assertRaises(razorpay_client.RazorpayError) as ctx:
                    razorpay_client.create_order(amount=100, receipt="r1")
        self.assertEqual(ctx.exception.detail, {"raw": "<html>gateway</html>"})

    def test_order_without_id_raises(self):
        with patch("payments.integrations.razorpay_client.requests.post", return_value=FakeResponse(200, {"amount": 1})):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
                with self.assertRaises(razorpay_client.RazorpayError):
                    razorpay_client.create_order(amount=100, receipt="r1")

    def test_transport_error_raises(self):
        with patch(
            "payments.integrations.razorpay_client.requests.post",
            side_effect=RequestsConnectionError("connection refused"),
        ):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
                with self.assertRaises(razorpay_client.RazorpayError):
                    razorpay_client.create_order(amount=100, receipt="r1")

    @override_settings(RAZORPAY_USE_LIVE=True, RAZORPAY_KEY_ID_LIVE="rzp_live_key", RAZORPAY_KEY_SECRET_LIVE="live-secret")
    def test_live_credentials_selected(self):
        self.assertEqual(razorpay_client.get_credentials(), ("rzp_live_key", "live-secret"))

    @override_settings(RAZORPAY_USE_LIVE=True, RAZORPAY_KEY_ID_LIVE="", RAZORPAY_KEY_SECRET_LIVE="")
    def test_missing_live_credentials(self):
        with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
            with self.assertRaisesMessage(ImproperlyConfigured, "Missing LIVE Razorpay credentials"):
                razorpay_client.get_credentials()


class CreateOrderServiceTests(TestCase):
    def _create(self, registration_id, order=None):
        order = order or {"id": "order_XYZ", "amount": 0, "currency": "INR"}
        with patch("payments.integrations.razorpay_client.requests.post", return_value=FakeResponse(200, order)) as post:
            result = services.create_order(registration_id)
        return result, post

    def test_stored_fee_wins_over_category(self):
        Registration.objects.create(id="r1", fees=500, gender="female")
        result, post = self._create("r1")
        self.assertEqual(result["amount"], 50000)
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 50000)

    def test_zero_fee_falls_back_to_category(self):
        Registration.objects.create(id="r2", fees=0, gender="female")
        result, post = self._create("r2")
        self.assertEqual(result["amount"], 25000)
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 25000)

    def test_missing_fee_and_category_uses_default(self):
        Registration.objects.create(id="r3", fees=None, gender="")
        result, _ = self._create("r3")
        self.assertEqual(result["amount"], 35000)

    def test_success_persists_order_and_created_status(self):
        Registration.objects.create(id="r1", fees=350)
        result, post = self._create("r1")

        self.assertEqual(
            result, {"key_id": "rzp_test_key", "order_id": "order_XYZ", "amount": 35000, "currency": "INR"}
        )
        self.assertEqual(post.call_args.kwargs["json"]["receipt"], "r1")
        self.assertEqual(post.call_args.kwargs["json"]["notes"], {"registrationId": "r1"})
        registration = Registration.objects.get(pk="r1")
        self.assertEqual(registration.razorpay_order_id, "order_XYZ")
        self.assertEqual(registration.payment_status, "created")
        self.assertFalse(registration.is_paid)

    def test_blank_id_is_bad_request(self):
        with self.assertRaises(BadRequest):
            services.create_order("  ")

    def test_unknown_registration(self):
        with patch("payments.integrations.razorpay_client.requests.post") as post:
            with self.assertRaises(NotFound):
                services.create_order("nope")
        post.assert_not_called()

    def test_gateway_failure_persists_nothing(self):
        Registration.objects.create(id="r1", fees=350)
        error = {"error": {"code": "BAD_REQUEST_ERROR"}}
        with patch("payments.integrations.razorpay_client.requests.post", return_value=FakeResponse(401, error)):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
                with self.assertRaises(GatewayOrderFailed) as ctx:
                    services.create_order("r1")

        self.assertEqual(ctx.exception.detail, error)
        registration = Registration.objects.get(pk="r1")
        self.assertEqual(registration.payment_status, "")
        self.assertEqual(registration.razorpay_order_id, "")

    def test_paid_registration_is_refused(self):
        Registration.objects.create(
            id="r1", fees=350, payment_status="paid", is_paid=True, razorpay_order_id="order_OLD"
        )
        with patch("payments.integrations.razorpay_client.requests.post") as post:
            with self.assertLogs("payments.services", level="WARNING"):
                with self.assertRaises(AlreadyPaid):
                    services.create_order("r1")

        post.assert_not_called()
        registration = Registration.objects.get(pk="r1")
        self.assertEqual(registration.payment_status, "paid")
        self.assertTrue(registration.is_paid)
        self.assertEqual(registration.razorpay_order_id, "order_OLD")

    def test_failed_registration_can_open_new_order(self):
        Registration.objects.create(id="r1", fees=350, payment_status="failed", razorpay_order_id="order_OLD")
        result, _ = self._create("r1", order={"id": "order_NEW", "amount": 35000, "currency": "INR"})

        self.assertEqual(result["order_id"], "order_NEW")
        registration = Registration.objects.get(pk="r1")
        self.assertEqual(registration.payment_status, "created")
        self.assertEqual(registration.razorpay_order_id, "order_NEW")

    def test_persistence_failure_after_order_is_unexpected(self):
        Registration.objects.create(id="r1", fees=350)
        with patch(
            "payments.services.record_payment_outcome",
            side_effect=PersistenceFailed("database is locked", detail="database is locked"),
        ):
            with self.assertRaises(Unexpected) as ctx:
                self._create("r1")
        self.assertEqual(ctx.exception.as_payload(), {"ok": False, "error": "unexpected_error"})


class VerifyPaymentServiceTests(TestCase):
    def setUp(self):
        self.registration = Registration.objects.create(
            id="r1", fees=350, full_name="Asha Rao", school_name="JNV Lucknow", parent_name="Ravi Rao",
            payment_status="created", razorpay_order_id="order_1",
        )

    def test_authentic_hex_signature_marks_paid(self):
        result = services.verify_payment("r1", "order_1", "pay_1", sign("order_1", "pay_1").hex())

        self.assertTrue(result.authentic)
        self.registration.refresh_from_db()
        self.assertTrue(self.registration.is_paid)
        self.assertEqual(self.registration.payment_status, "paid")
        self.assertIsNotNone(self.registration.paid_at)
        self.assertEqual(self.registration.razorpay_payment_id, "pay_1")

    def test_authentic_base64_signature_marks_paid(self):
        sig = base64.b64encode(sign("order_1", "pay_1")).decode()
        self.assertTrue(services.verify_payment("r1", "order_1", "pay_1", sig).authentic)
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "paid")

    def test_signature_with_whitespace_still_matches(self):
        sig = " " + sign("order_1", "pay_1").hex() + "  "
        self.assertTrue(services.verify_payment("r1", "order_1", "pay_1", sig).authentic)

    def test_verification_is_idempotent(self):
        sig = sign("order_1", "pay_1").hex()
        services.verify_payment("r1", "order_1", "pay_1", sig)
        services.verify_payment("r1", "order_1", "pay_1", sig)

        self.registration.refresh_from_db()
        self.assertTrue(self.registration.is_paid)
        self.assertEqual(self.registration.payment_status, "paid")
        self.assertIsNotNone(self.registration.paid_at)

    def test_mismatch_marks_failed_and_keeps_audit_fields(self):
        with self.assertLogs("payments.services", level="WARNING") as cm:
            result = services.verify_payment("r1", "order_1", "pay_1", "deadbeef")

        self.assertFalse(result.authentic)
        self.assertEqual(result.provided, "deadbeef")
        self.assertEqual(result.expected_hex, sign("order_1", "pay_1").hex())
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "failed")
        self.assertFalse(self.registration.is_paid)
        self.assertIsNone(self.registration.paid_at)
        self.assertEqual(self.registration.razorpay_signature, "deadbeef")
        self.assertNotIn("Traceback", "\n".join(cm.output))
        self.assertNotIn(SECRET, "\n".join(cm.output))

    def test_repeated_failures_overwrite_audit_fields(self):
        with self.assertLogs("payments.services", level="WARNING"):
            services.verify_payment("r1", "order_1", "pay_1", "bad-one")
            services.verify_payment("r1", "order_1", "pay_2", "bad-two")
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "failed")
        self.assertEqual(self.registration.razorpay_payment_id, "pay_2")
        self.assertEqual(self.registration.razorpay_signature, "bad-two")

    def test_missing_inputs_change_nothing(self):
        with self.assertRaises(MissingFields) as ctx:
            services.verify_payment("r1", "order_1", "", None)
        self.assertEqual(ctx.exception.missing, ["razorpay_payment_id", "razorpay_signature"])
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "created")
        self.assertEqual(self.registration.razorpay_payment_id, "")

    def test_personal_fields_untouched(self):
        services.verify_payment("r1", "order_1", "pay_1", sign("order_1", "pay_1").hex())
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.full_name, "Asha Rao")
        self.assertEqual(self.registration.school_name, "JNV Lucknow")
        self.assertEqual(self.registration.parent_name, "Ravi Rao")
        self.assertEqual(self.registration.fees, 350)

    def test_unknown_registration(self):
        with self.assertRaises(NotFound):
            services.verify_payment("missing", "order_1", "pay_1", sign("order_1", "pay_1").hex())

    def test_database_error_is_persistence_failure(self):
        with patch.object(Registration.objects, "filter", side_effect=DatabaseError("disk I/O error")):
            with self.assertLogs("payments.services", level="ERROR"):
                with self.assertRaises(PersistenceFailed) as ctx:
                    services.verify_payment("r1", "order_1", "pay_1", sign("order_1", "pay_1").hex())
        self.assertEqual(ctx.exception.detail, "disk I/O error")


class RecordPaymentOutcomeTests(TestCase):
    def test_rejects_non_payment_fields(self):
        Registration.objects.create(id="r1", full_name="Asha")
        with self.assertRaises(ValueError):
            services.record_payment_outcome("r1", payment_status="paid", full_name="Mallory")
        self.assertEqual(Registration.objects.get(pk="r1").full_name, "Asha")

    def test_updates_single_row(self):
        Registration.objects.create(id="r1")
        Registration.objects.create(id="r2")
        self.assertEqual(services.record_payment_outcome("r1", payment_status="created"), 1)
        self.assertEqual(Registration.objects.get(pk="r2").payment_status, "")
