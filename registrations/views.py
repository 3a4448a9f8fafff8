import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .emails import send_welcome_email, welcome_sender
from .forms import WelcomeEmailForm
from .models import Registration
from .tokens import session_token_required

logger = logging.getLogger(__name__)


def _json_body(request):
    try:
        body = json.loads(request.body.decode("utf-8"))
    except Exception:
        return {}
    return body if isinstance(body, dict) else {}


@csrf_exempt
@session_token_required("admin")
def send_welcome_view(request):
    if request.method != "POST":
        return JsonResponse({"ok": False, "error": "method_not_allowed"}, status=405)

    form = WelcomeEmailForm(_json_body(request))
    if not form.is_valid():
        return JsonResponse(
            {"ok": False, "error": "invalid_fields", "fields": sorted(form.errors.keys())}, status=400
        )
    data = form.cleaned_data

    sender = welcome_sender(data.get("from"))
    to = data.get("to")
    if not sender or not to:
        return JsonResponse({"ok": False, "error": "missing_from_or_to"}, status=400)

    registration_id = (data.get("registrationId") or "").strip()
    name = (data.get("name") or "").strip()
    if registration_id and not name:
        name = (
            Registration.objects.filter(pk=registration_id).values_list("full_name", flat=True).first()
            or ""
        )

    try:
        send_welcome_email(sender=sender, to=to, name=name, registration_id=registration_id)
    except Exception as e:
        logger.exception("Failed to send welcome email to %s", to)
        return JsonResponse({"ok": False, "error": "send_failed", "detail": str(e)}, status=500)

    logger.info("Welcome email requested by %s for %s", request.session_claims["sub"], to)
    return JsonResponse({"ok": True})
