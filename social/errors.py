"""
API error types.

Domain functions raise these; `social.decorators.api_view` turns them into
`{"error": message}` JSON responses with the matching status code.
"""


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        # Extra keys merged into the JSON body (e.g. attemptsLeft)
        self.extra = extra
        super().__init__(self.message)

    def as_dict(self):
        return {"error": self.message, **self.extra}


class BadRequest(ApiError):
    status_code = 400
    default_message = "Invalid request."


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Already exists"
