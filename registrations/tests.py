import json
from io import StringIO
from smtplib import SMTPException
from unittest.mock import patch

import jwt
from django.core import mail
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from .fees import fee_for_category
from .models import Registration
from .tokens import issue_session_token, read_session_token


class FeeForCategoryTests(SimpleTestCase):
    def test_female_in_any_case(self):
        self.assertEqual(fee_for_category("female"), 250)
        self.assertEqual(fee_for_category("FEMALE"), 250)
        self.assertEqual(fee_for_category(" Female "), 250)

    def test_everything_else_is_default(self):
        for category in ("male", "other", "", None, "fem", "females"):
            with self.subTest(category=category):
                self.assertEqual(fee_for_category(category), 350)


class ResolvedFeeTests(SimpleTestCase):
    def test_positive_stored_fee_wins(self):
        self.assertEqual(Registration(fees=500, gender="female").resolved_fee(), 500)

    def test_non_positive_or_missing_fee_uses_category(self):
        self.assertEqual(Registration(fees=0, gender="female").resolved_fee(), 250)
        self.assertEqual(Registration(fees=-10, gender="male").resolved_fee(), 350)
        self.assertEqual(Registration(fees=None, gender="").resolved_fee(), 350)


class RegistrationModelTests(TestCase):
    def test_generated_id(self):
        registration = Registration.objects.create(full_name="Asha Rao")
        self.assertEqual(len(registration.id), 32)
        self.assertEqual(registration.payment_status, "")
        self.assertFalse(registration.is_paid)

    def test_payment_fields_exclude_personal_data(self):
        for name in ("full_name", "email", "school_name", "parent_name", "fees", "gender"):
            self.assertNotIn(name, Registration.PAYMENT_FIELDS)


class SessionTokenTests(SimpleTestCase):
    def test_round_trip(self):
        claims = read_session_token(issue_session_token("ops@ntexam.in", "admin"))
        self.assertEqual(claims["sub"], "ops@ntexam.in")
        self.assertEqual(claims["role"], "admin")
        self.assertGreater(claims["exp"], claims["iat"])

    def test_expired_token_rejected(self):
        self.assertIsNone(read_session_token(issue_session_token("r1", "student", minutes=-1)))

    def test_tampered_token_rejected(self):
        forged = jwt.encode({"sub": "x", "role": "admin", "exp": 9999999999}, "wrong-secret-for-hs256-signing-key!", algorithm="HS256")
        self.assertIsNone(read_session_token(forged))
        self.assertIsNone(read_session_token("not-a-token"))
        self.assertIsNone(read_session_token(""))

    def test_unknown_role_refused(self):
        with self.assertRaises(ValueError):
            issue_session_token("x", "superuser")


class SendWelcomeViewTests(TestCase):
    def setUp(self):
        Registration.objects.create(id="r1", full_name="Asha Rao", email="asha@example.com")

    def _post(self, payload, token=None):
        extra = {}
        if token:
            extra["HTTP_AUTHORIZATION"] = f"Bearer {token}"
        return self.client.post(
            reverse("registrations:send_welcome"),
            data=json.dumps(payload),
            content_type="application/json",
            **extra,
        )

    def _admin(self):
        return issue_session_token("ops@ntexam.in", "admin")

    def test_requires_token(self):
        resp = self._post({"to": "asha@example.com"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"ok": False, "error": "unauthorized"})

    def test_student_token_is_not_enough(self):
        resp = self._post({"to": "asha@example.com"}, token=issue_session_token("r1", "student"))
        self.assertEqual(resp.status_code, 401)

    def test_sends_welcome_with_registration_name(self):
        resp = self._post({"to": "asha@example.com", "registrationId": "r1"}, token=self._admin())

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True})
        self.assertEqual(len(mail.outbox), 1)
        msg = mail.outbox[0]
        self.assertEqual(msg.to, ["asha@example.com"])
        self.assertEqual(msg.from_email, "NTExam <noreply@ntexam.in>")
        self.assertIn("Welcome, Asha Rao!", msg.body)
        self.assertIn("r1", msg.body)
        self.assertEqual(msg.alternatives[0][1], "text/html")

    def test_explicit_sender(self):
        resp = self._post({"to": "asha@example.com", "from": "exams@ntexam.in", "name": "Asha"}, token=self._admin())
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(mail.outbox[0].from_email, "exams@ntexam.in")

    def test_missing_recipient(self):
        resp = self._post({"name": "Asha"}, token=self._admin())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "missing_from_or_to"})
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(DEFAULT_FROM_EMAIL="", WELCOME_FROM_EMAIL="")
    def test_missing_sender(self):
        resp = self._post({"to": "asha@example.com"}, token=self._admin())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "missing_from_or_to")

    def test_invalid_recipient(self):
        resp = self._post({"to": "not-an-email"}, token=self._admin())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"ok": False, "error": "invalid_fields", "fields": ["to"]})

    def test_send_failure(self):
        with patch("registrations.views.send_welcome_email", side_effect=SMTPException("relay refused")):
            with self.assertLogs("registrations.views", level="ERROR"):
                resp = self._post({"to": "asha@example.com"}, token=self._admin())
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"ok": False, "error": "send_failed", "detail": "relay refused"})


class IssueSessionTokenCommandTests(SimpleTestCase):
    def test_prints_admin_token(self):
        out = StringIO()
        call_command("issue_session_token", "--subject", "ops@ntexam.in", "--minutes", "5", stdout=out)
        claims = read_session_token(out.getvalue().strip())
        self.assertEqual(claims["sub"], "ops@ntexam.in")
        self.assertEqual(claims["role"], "admin")
