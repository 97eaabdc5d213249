"""
View helpers for the JSON API.

`api_view` is stacked on every endpoint in social.views. It rejects
unexpected methods, enforces bearer authentication and turns exceptions
into JSON error bodies:

    ApiError subclass   -> {"error": message}, error.status_code
    malformed JSON body -> {"error": "Malformed JSON body."}, 400
    anything else       -> {"error": "Internal server error."}, 500 (logged)
"""

import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .errors import ApiError, BadRequest, Unauthorized

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ('multipart/form-data', 'application/x-www-form-urlencoded')


def api_view(*methods, auth=True):
    """
    Wrap a function view as a JSON API endpoint.

    Args:
        *methods: Allowed HTTP methods (all methods when empty)
        auth: Require an authenticated user (401 otherwise)

    Example:
        @api_view("GET", "POST")
        def conversation_messages(request, conversation_id):
            ...
    """

    def decorator(view):

        @csrf_exempt
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if methods and request.method not in methods:
                response = JsonResponse(
                    {"error": f"{request.method} request not allowed"}, status=405
                )
                response['Allow'] = ", ".join(methods)
                return response

            try:
                if auth and not request.user.is_authenticated:
                    raise Unauthorized(getattr(request, 'auth_error', None) or "Unauthorized")
                return view(request, *args, **kwargs)

            except ApiError as e:
                return JsonResponse(e.as_dict(), status=e.status_code)

            except Exception:
                logger.exception(f"Unhandled error in {view.__name__} ({request.method} {request.path})")
                return JsonResponse({"error": "Internal server error."}, status=500)

        return wrapper

    return decorator


def read_payload(request):
    """
    Return the request's fields as a dict-like object.

    Form and multipart bodies come from request.POST; everything else is
    parsed as a JSON object. An empty body yields {}.
    """
    if request.content_type in FORM_CONTENT_TYPES:
        return request.POST

    if not request.body:
        return {}

    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise BadRequest("Malformed JSON body.")

    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object.")
    return data


def int_param(value, name, default=None):
    """Parse an optional integer query/body parameter (400 when not an integer)."""
    if value is None or value == '':
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"{name} must be an integer.")
