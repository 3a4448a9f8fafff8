import json
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from . import services
from .exceptions import BadRequest, InvalidFields, MissingFields, PaymentError, Unexpected
from .forms import CreateOrderForm, VerifyPaymentForm

logger = logging.getLogger(__name__)


def _json_body(request):
    try:
        body = json.loads(request.body.decode("utf-8"))
    except Exception:
        return {}
    return body if isinstance(body, dict) else {}


def _method_not_allowed():
    return JsonResponse({"ok": False, "error": "method_not_allowed"}, status=405)


def _error_response(err: PaymentError):
    return JsonResponse(err.as_payload(), status=err.status)


@csrf_exempt
def create_order_view(request):
    if request.method != "POST":
        return _method_not_allowed()
    try:
        form = CreateOrderForm(_json_body(request))
        if not form.is_valid():
            raise BadRequest("registrationId required")
        order = services.create_order(form.cleaned_data["registrationId"])
        return JsonResponse({"ok": True, **order})
    except PaymentError as e:
        return _error_response(e)
    except Exception:
        logger.exception("Unexpected error while creating Razorpay order")
        return _error_response(Unexpected())


@csrf_exempt
def verify_payment_view(request):
    if request.method != "POST":
        return _method_not_allowed()
    body = _json_body(request)
    try:
        form = VerifyPaymentForm(body)
        if not form.is_valid():
            errors = form.errors.as_data()
            missing = [
                name for name in services.VERIFY_FIELDS
                if any(e.code == "required" for e in errors.get(name, ()))
            ]
            if missing:
                raise MissingFields(missing, body=body)
            raise InvalidFields([name for name in services.VERIFY_FIELDS if name in errors])
        data = form.cleaned_data
        result = services.verify_payment(
            data["registrationId"],
            data["razorpay_order_id"],
            data["razorpay_payment_id"],
            data["razorpay_signature"],
        )
    except PaymentError as e:
        return _error_response(e)
    except Exception:
        logger.exception("Unexpected error while verifying Razorpay payment")
        return _error_response(Unexpected())

    if result.authentic:
        return JsonResponse({"ok": True})

    debug = {"provided": result.provided}
    if settings.RAZORPAY_EXPOSE_EXPECTED_SIGNATURE:
        debug["expected_hex"] = result.expected_hex
        debug["expected_base64"] = result.expected_base64
    return JsonResponse({"ok": False, "error": "signature_mismatch", "debug": debug}, status=400)
