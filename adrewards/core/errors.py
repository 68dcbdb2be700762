"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``adrewards.main`` turns them into the
``{"success": false, "error": ...}`` envelope with the matching status code.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class PermissionDenied(AuthError):
    status_code = 403
    default_message = "Admin access required"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    # Business-rule rejections are reported as plain 400s to clients
    status_code = 400
    default_message = "Request conflicts with current state"


class ExternalCapabilityError(AppError):
    """The external verification backend is unreachable or misconfigured.

    Distinct from a user verdict ("not completed"), which is a ValidationError.
    """
    status_code = 500
    default_message = "Verification service unavailable"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
