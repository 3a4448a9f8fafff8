"""Server-issued session tokens for students and administrators."""

import functools
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)

ROLES = ("admin", "student")
ALGORITHM = "HS256"


def issue_session_token(subject: str, role: str, minutes: int | None = None) -> str:
    """Return a signed HS256 token for ``subject`` acting as ``role``.

    The token carries ``sub``, ``role``, ``iat``, ``exp`` and a random
    ``jti``; it expires after ``minutes`` (``settings.SESSION_TOKEN_MINUTES``
    when omitted).
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if not subject:
        raise ValueError("subject is required")

    lifetime = settings.SESSION_TOKEN_MINUTES if minutes is None else minutes
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(subject),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=lifetime)).timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.SESSION_TOKEN_SECRET, algorithm=ALGORITHM)


def read_session_token(token: str):
    """Return verified claims, or ``None`` for expired, tampered or malformed tokens."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            settings.SESSION_TOKEN_SECRET,
            algorithms=[ALGORITHM],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.PyJWTError as e:
        logger.info("Rejected session token: %s", e.__class__.__name__)
        return None
    if claims.get("role") not in ROLES:
        return None
    return claims


def _bearer_token(request) -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return ""
    return auth.split(" ", 1)[1].strip()


def session_token_required(role: str):
    """Reject requests without a valid ``Authorization: Bearer`` token for ``role``."""

    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            claims = read_session_token(_bearer_token(request))
            if claims is None or claims["role"] != role:
                return JsonResponse({"ok": False, "error": "unauthorized"}, status=401)
            request.session_claims = claims
            return view(request, *args, **kwargs)

        return wrapper

    return decorator
