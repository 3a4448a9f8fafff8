class PaymentError(Exception):
    """Base for payment failures that map to a JSON error response."""

    code = "payment_error"
    status = 400

    def __init__(self, message="", detail=None):
        super().__init__(message or self.code)
        self.detail = detail

    def as_payload(self) -> dict:
        payload = {"ok": False, "error": self.code}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class BadRequest(PaymentError):
    code = "missing_registrationId"


class MissingFields(PaymentError):
    code = "missing_fields"

    def __init__(self, missing, body=None):
        super().__init__(f"Missing fields: {', '.join(missing)}")
        self.missing = list(missing)
        self.body = body if body is not None else {}

    def as_payload(self) -> dict:
        return {"ok": False, "error": self.code, "missing": self.missing, "body": self.body}


class InvalidFields(PaymentError):
    code = "invalid_fields"

    def __init__(self, fields):
        super().__init__(f"Invalid fields: {', '.join(fields)}")
        self.fields = list(fields)

    def as_payload(self) -> dict:
        return {"ok": False, "error": self.code, "fields": self.fields}


class NotFound(PaymentError):
    code = "registration_not_found"
    status = 404


class AlreadyPaid(PaymentError):
    code = "already_paid"
    status = 409


class GatewayOrderFailed(PaymentError):
    code = "rzp_order_failed"


class PersistenceFailed(PaymentError):
    code = "db_update_failed"
    status = 500


class Unexpected(PaymentError):
    code = "unexpected_error"
    status = 500
