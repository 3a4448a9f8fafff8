import hashlib
import hmac
import json
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.urls import reverse

from registrations.models import Registration

from .exceptions import PersistenceFailed
from .tests import SECRET, FakeResponse


def hex_signature(order_id, payment_id):
    return hmac.new(SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class PaymentEndpointTestMixin:
    def _post(self, name, payload, **extra):
        return self.client.post(
            reverse(name),
            data=json.dumps(payload),
            content_type='application/json',
            **extra,
        )

    def _gateway(self, status_code=200, payload=None):
        payload = payload if payload is not None else {"id": "order_R1", "amount": 35000, "currency": "INR"}
        return patch(
            "payments.integrations.razorpay_client.requests.post",
            return_value=FakeResponse(status_code, payload),
        )


class CreateOrderViewTests(PaymentEndpointTestMixin, TestCase):
    def setUp(self):
        Registration.objects.create(id="r1", fees=350)

    def test_success(self):
        with self._gateway():
            resp = self._post('payments:create_order', {"registrationId": "r1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"ok": True, "key_id": "rzp_test_key", "order_id": "order_R1", "amount": 35000, "currency": "INR"},
        )
        self.assertNotIn(SECRET, resp.content.decode())

    def test_client_amount_is_ignored(self):
        with self._gateway() as post:
            resp = self._post('payments:create_order', {"registrationId": "r1", "amount": 100})
        self.assertEqual(resp.json()["amount"], 35000)
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 35000)

    def test_missing_registration_id(self):
        resp = self._post('payments:create_order', {})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "missing_registrationId"})

    def test_invalid_json_is_missing_registration_id(self):
        resp = self.client.post(reverse('payments:create_order'), data="not json", content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "missing_registrationId")

    def test_unknown_registration(self):
        resp = self._post('payments:create_order', {"registrationId": "ghost"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"ok": False, "error": "registration_not_found"})

    def test_gateway_rejection(self):
        error = {"error": {"code": "BAD_REQUEST_ERROR", "description": "Authentication failed"}}
        with self._gateway(401, error):
            with self.assertLogs("payments.integrations.razorpay_client", level="ERROR"):
                resp = self._post('payments:create_order', {"registrationId": "r1"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "rzp_order_failed", "detail": error})
        self.assertEqual(Registration.objects.get(pk="r1").payment_status, "")

    @override_settings(RAZORPAY_USE_LIVE=True, RAZORPAY_KEY_ID_LIVE="", RAZORPAY_KEY_SECRET_LIVE="")
    def test_unexpected_error(self):
        with self.assertLogs("payments", level="ERROR"):
            resp = self._post('payments:create_order', {"registrationId": "r1"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"ok": False, "error": "unexpected_error"})

    def test_get_not_allowed(self):
        resp = self.client.get(reverse('payments:create_order'))
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json()["error"], "method_not_allowed")

    def test_paid_registration_gets_conflict(self):
        Registration.objects.filter(pk="r1").update(
            payment_status="paid", is_paid=True, razorpay_order_id="order_OLD"
        )
        with self._gateway() as post:
            with self.assertLogs("payments.services", level="WARNING"):
                resp = self._post('payments:create_order', {"registrationId": "r1"})

        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json(), {"ok": False, "error": "already_paid"})
        post.assert_not_called()
        registration = Registration.objects.get(pk="r1")
        self.assertEqual((registration.payment_status, registration.razorpay_order_id), ("paid", "order_OLD"))

    def test_failure_recording_created_status_is_unexpected(self):
        with self._gateway():
            with patch(
                "payments.services.record_payment_outcome",
                side_effect=PersistenceFailed("database is locked", detail="database is locked"),
            ):
                resp = self._post('payments:create_order', {"registrationId": "r1"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"ok": False, "error": "unexpected_error"})


class VerifyViewTests(PaymentEndpointTestMixin, TestCase):
    def setUp(self):
        self.registration = Registration.objects.create(
            id="r1", fees=350, payment_status="created", razorpay_order_id="order_R1"
        )

    def _verify(self, signature, payment_id="pay_R1"):
        return self._post('payments:verify', {
            "registrationId": "r1",
            "razorpay_order_id": "order_R1",
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        })

    def test_success(self):
        resp = self._verify(hex_signature("order_R1", "pay_R1"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True})

    def test_mismatch_returns_debug_payload(self):
        with self.assertLogs("payments.services", level="WARNING"):
            resp = self._verify("deadbeef")
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["ok"], False)
        self.assertEqual(body["error"], "signature_mismatch")
        self.assertEqual(body["debug"]["provided"], "deadbeef")
        self.assertEqual(body["debug"]["expected_hex"], hex_signature("order_R1", "pay_R1"))
        self.assertIn("expected_base64", body["debug"])
        self.assertNotIn(SECRET, resp.content.decode())

    @override_settings(RAZORPAY_EXPOSE_EXPECTED_SIGNATURE=False)
    def test_mismatch_can_withhold_expected_signature(self):
        with self.assertLogs("payments.services", level="WARNING"):
            resp = self._verify("deadbeef")
        self.assertEqual(resp.json()["debug"], {"provided": "deadbeef"})

    def test_missing_fields(self):
        payload = {"registrationId": "r1", "razorpay_order_id": "order_R1"}
        resp = self._post('payments:verify', payload)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {
            "ok": False,
            "error": "missing_fields",
            "missing": ["razorpay_payment_id", "razorpay_signature"],
            "body": payload,
        })
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "created")

    def test_db_update_failure(self):
        with patch(
            "payments.services.record_payment_outcome",
            side_effect=PersistenceFailed("database is locked", detail="database is locked"),
        ):
            resp = self._verify(hex_signature("order_R1", "pay_R1"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"ok": False, "error": "db_update_failed", "detail": "database is locked"})

    def test_gateway_strings_are_stored_as_received(self):
        with self.assertLogs("payments.services", level="WARNING"):
            resp = self._verify("  deadbeef \n", payment_id=" pay_R1")

        self.assertEqual(resp.json()["debug"]["provided"], "  deadbeef \n")
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.razorpay_signature, "  deadbeef \n")
        self.assertEqual(self.registration.razorpay_payment_id, " pay_R1")

    def test_padded_authentic_signature_is_paid_and_stored_as_received(self):
        signature = " " + hex_signature("order_R1", "pay_R1") + "\n"
        resp = self._verify(signature)

        self.assertEqual(resp.json(), {"ok": True})
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "paid")
        self.assertEqual(self.registration.razorpay_signature, signature)

    def test_overlong_value_is_invalid_not_missing(self):
        resp = self._post('payments:verify', {
            "registrationId": "r1",
            "razorpay_order_id": "o" * 65,
            "razorpay_payment_id": "pay_R1",
            "razorpay_signature": "deadbeef",
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "invalid_fields", "fields": ["razorpay_order_id"]})
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.payment_status, "created")

    def test_unknown_registration(self):
        resp = self._post('payments:verify', {
            "registrationId": "ghost",
            "razorpay_order_id": "order_R1",
            "razorpay_payment_id": "pay_R1",
            "razorpay_signature": hex_signature("order_R1", "pay_R1"),
        })
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "registration_not_found")


class PaymentFlowTests(PaymentEndpointTestMixin, TestCase):
    """Order creation followed by checkout verification."""

    def setUp(self):
        Registration.objects.create(id="r1", fees=350, full_name="Asha Rao")

    def _create_order(self):
        with self._gateway():
            resp = self._post('payments:create_order', {"registrationId": "r1"})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_order_then_authentic_payment(self):
        order = self._create_order()
        self.assertEqual((order["ok"], order["amount"], order["currency"]), (True, 35000, "INR"))
        self.assertEqual(Registration.objects.get(pk="r1").payment_status, "created")

        resp = self._post('payments:verify', {
            "registrationId": "r1",
            "razorpay_order_id": order["order_id"],
            "razorpay_payment_id": "pay_R1",
            "razorpay_signature": hex_signature(order["order_id"], "pay_R1"),
        })
        self.assertEqual(resp.json(), {"ok": True})
        registration = Registration.objects.get(pk="r1")
        self.assertTrue(registration.is_paid)
        self.assertEqual(registration.payment_status, "paid")
        self.assertEqual(registration.full_name, "Asha Rao")

    def test_order_then_forged_signature(self):
        order = self._create_order()
        with self.assertLogs("payments.services", level="WARNING"):
            resp = self._post('payments:verify', {
                "registrationId": "r1",
                "razorpay_order_id": order["order_id"],
                "razorpay_payment_id": "pay_R1",
                "razorpay_signature": "deadbeef",
            })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "signature_mismatch")
        registration = Registration.objects.get(pk="r1")
        self.assertEqual(registration.payment_status, "failed")
        self.assertFalse(registration.is_paid)


class CorsTests(PaymentEndpointTestMixin, TestCase):
    def test_preflight_from_allowed_origin(self):
        resp = self.client.options(
            reverse('payments:verify'),
            HTTP_ORIGIN="https://ntexam.in",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
            HTTP_ACCESS_CONTROL_REQUEST_HEADERS="content-type",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Access-Control-Allow-Origin"], "https://ntexam.in")
        self.assertEqual(resp["Access-Control-Allow-Methods"], "POST, OPTIONS")
        self.assertEqual(
            resp["Access-Control-Allow-Headers"], "authorization, x-client-info, apikey, content-type"
        )

    def test_preflight_from_unknown_origin_gets_no_allow_origin(self):
        resp = self.client.options(
            reverse('payments:create_order'),
            HTTP_ORIGIN="https://evil.example",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )
        self.assertNotIn("Access-Control-Allow-Origin", resp)

    def test_post_response_carries_allow_origin(self):
        resp = self._post('payments:create_order', {}, HTTP_ORIGIN="http://localhost:5173")
        self.assertEqual(resp["Access-Control-Allow-Origin"], "http://localhost:5173")
