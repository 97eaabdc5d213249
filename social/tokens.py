"""Bearer tokens signed with Django's signing framework."""

from django.conf import settings
from django.core import signing


TOKEN_SALT = 'social.auth.token'


def issue_token(user):
    """Return a signed, timestamped token naming the user."""
    return signing.dumps({'id': user.pk, 'username': user.username}, salt=TOKEN_SALT)


def read_token(token):
    """
    Decode a token issued by issue_token.

    Returns:
        dict: Payload with 'id' and 'username'

    Raises:
        signing.SignatureExpired: Token older than AUTH_TOKEN_MAX_AGE
        signing.BadSignature: Token tampered with or malformed
    """
    payload = signing.loads(token, salt=TOKEN_SALT, max_age=settings.AUTH_TOKEN_MAX_AGE)
    if not isinstance(payload, dict) or 'id' not in payload:
        raise signing.BadSignature("Token payload is missing the user id")
    return payload
