"""
Admin authentication with a signed token in an httpOnly cookie.

The token is a `django.core.signing` payload ({"uid", "email"}) valid for
DRCARCOLD_AUTH_TOKEN_MAX_AGE seconds. A missing, tampered or expired
cookie leaves the request anonymous.
"""

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core import signing
from rest_framework.authentication import BaseAuthentication

logger = logging.getLogger(__name__)

TOKEN_SALT = "drcarcold.auth-token"
DEFAULT_COOKIE_NAME = "auth-token"
DEFAULT_MAX_AGE = 7 * 24 * 60 * 60


def get_cookie_name() -> str:
    return getattr(settings, "DRCARCOLD_AUTH_COOKIE_NAME", DEFAULT_COOKIE_NAME)


def get_token_max_age() -> int:
    return getattr(settings, "DRCARCOLD_AUTH_TOKEN_MAX_AGE", DEFAULT_MAX_AGE)


def create_auth_token(user) -> str:
    return signing.dumps({"uid": user.pk, "email": user.email}, salt=TOKEN_SALT)


def read_auth_token(token: str) -> Optional[dict]:
    """Return the token payload, or None if invalid or expired."""
    try:
        return signing.loads(token, salt=TOKEN_SALT, max_age=get_token_max_age())
    except signing.SignatureExpired:
        logger.debug("Auth token expired")
    except signing.BadSignature:
        logger.warning("Rejected auth token with a bad signature")
    return None


def set_auth_cookie(response, user) -> None:
    response.set_cookie(
        get_cookie_name(),
        create_auth_token(user),
        max_age=get_token_max_age(),
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Lax",
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(get_cookie_name(), samesite="Lax")


class CookieTokenAuthentication(BaseAuthentication):
    """DRF authentication reading the signed `auth-token` cookie."""

    def authenticate(self, request):
        token = request.COOKIES.get(get_cookie_name())
        if not token:
            return None

        payload = read_auth_token(token)
        if not payload:
            return None

        user = get_user_model().objects.filter(pk=payload.get("uid"), is_active=True).first()
        if user is None:
            return None
        return (user, token)

    def authenticate_header(self, request):
        # Makes DRF answer unauthenticated requests with 401 instead of 403
        return 'Cookie realm="api"'
