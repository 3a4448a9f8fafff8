from django.conf import settings
import logging
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string


logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to NTExam"


def welcome_sender(explicit: str | None = None) -> str:
    """Pick the From address: explicit value, WELCOME_FROM_EMAIL, then DEFAULT_FROM_EMAIL."""
    return (
        (explicit or "").strip()
        or (getattr(settings, "WELCOME_FROM_EMAIL", "") or "").strip()
        or (getattr(settings, "DEFAULT_FROM_EMAIL", "") or "").strip()
    )


def template_exists(path: str) -> bool:
    """Best-effort check for template existence without raising errors."""
    from django.template import engines

    try:
        engines["django"].get_template(path)
        return True
    except Exception:
        return False


def send_welcome_email(*, sender: str, to: str, name: str = "", registration_id: str = "") -> int:
    """Send the post-registration welcome email (text + HTML).

    Errors propagate so the caller can report the failure; returns the
    number of messages sent.
    """
    context = {"name": name, "registration_id": registration_id}

    text_body = render_to_string("emails/welcome_email.txt", context)
    msg = EmailMultiAlternatives(WELCOME_SUBJECT, text_body, sender, [to])
    if template_exists("emails/welcome_email.html"):
        msg.attach_alternative(render_to_string("emails/welcome_email.html", context), "text/html")

    sent = msg.send(fail_silently=False)
    logger.info("Welcome email sent to %s for registration %s", to, registration_id or "-")
    return sent
