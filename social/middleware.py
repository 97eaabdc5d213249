"""
================================================================================
HEARTH - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Bearer-token authentication and per-user timezone activation

MODULE PURPOSE
================================================================================
1. BearerTokenMiddleware
   - Resolves "Authorization: Bearer <token>" to a User
   - Attaches the user to request.user for the rest of the chain
   - Records why authentication failed in request.auth_error

2. TimezoneMiddleware
   - Activates the authenticated user's timezone so serialized timestamps
     carry the viewer's offset
   - Falls back to UTC for anonymous users or invalid timezones

ORDERING
================================================================================
Both classes must sit after django.contrib.auth's AuthenticationMiddleware,
and BearerTokenMiddleware must come before TimezoneMiddleware:

    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'social.middleware.BearerTokenMiddleware',
    'social.middleware.TimezoneMiddleware',

ERROR HANDLING
================================================================================
The middleware never rejects a request itself. A missing or bad token leaves
request.user anonymous; social.decorators.api_view answers 401 for endpoints
that need a user, using request.auth_error as the message.

================================================================================
"""

import logging

import pytz
from django.contrib.auth import get_user_model
from django.core import signing
from django.utils import timezone

from .tokens import read_token

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token."


def extract_bearer(header):
    """Return the token from an Authorization header value, or None."""
    if not header:
        return None
    parts = header.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, value = parts[0].strip(), parts[1].strip()
    if scheme.lower() != "bearer" or not value:
        return None
    return value


# ============================================================================
# BEARER TOKEN MIDDLEWARE
# ============================================================================

class BearerTokenMiddleware:
    """
    Authenticate API requests from a bearer token.

    Flow:
        1. No Authorization header: leave request.user untouched
        2. Header present but not a bearer token: auth_error = "Unauthorized"
        3. Signature bad or expired: auth_error = "Invalid or expired token."
        4. Token names a missing or inactive user: same as 3
        5. Otherwise request.user is the token's user

    Attributes:
        get_response: Next middleware or view in the chain
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.auth_error = None
        header = request.META.get('HTTP_AUTHORIZATION', '')

        if header:
            user = self.authenticate(request, header)
            if user is not None:
                request.user = user

        return self.get_response(request)

    def authenticate(self, request, header):
        token = extract_bearer(header)
        if token is None:
            request.auth_error = "Unauthorized"
            return None

        try:
            payload = read_token(token)
        except signing.SignatureExpired:
            logger.info(f"Expired token on {request.path}")
            request.auth_error = INVALID_TOKEN_MESSAGE
            return None
        except signing.BadSignature:
            logger.info(f"Rejected token on {request.path}")
            request.auth_error = INVALID_TOKEN_MESSAGE
            return None

        User = get_user_model()
        user = User.objects.filter(pk=payload['id'], is_active=True).first()
        if user is None:
            logger.info(f"Token for unknown or inactive user {payload['id']}")
            request.auth_error = INVALID_TOKEN_MESSAGE
        return user


# ============================================================================
# TIMEZONE MIDDLEWARE
# ============================================================================

class TimezoneMiddleware:
    """
    Activate user-specific timezone for serialized datetimes.

    Example:
        User.timezone = 'America/New_York'
        Message created 2026-02-05 09:30:00 UTC
        Serialized as "2026-02-05T04:30:00-05:00"

    Error Handling:
        - pytz.UnknownTimeZoneError: Invalid timezone string -> UTC
        - AttributeError: User has no timezone attribute -> UTC
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)

        if user is not None and user.is_authenticated:
            try:
                timezone.activate(pytz.timezone(user.timezone))
            except (pytz.UnknownTimeZoneError, AttributeError):
                timezone.activate(pytz.UTC)
        else:
            timezone.activate(pytz.UTC)

        try:
            return self.get_response(request)
        finally:
            timezone.deactivate()
