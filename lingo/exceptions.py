"""
Domain error taxonomy

Every error carries the HTTP status and error code the API answers with.
Running out of hearts is not an error: see GradeOutcome.HEARTS_EXHAUSTED.
"""


class LingoError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)


class Unauthorized(LingoError):
    """Unauthorized."""

    status_code = 401
    error = "unauthorized"


class NotFoundError(LingoError):
    """Resource not found."""

    status_code = 404
    error = "not_found"


class InvalidOperation(LingoError):
    """Operation not allowed in the current state."""

    status_code = 400
    error = "invalid_operation"


class WebhookVerificationFailed(LingoError):
    """Webhook payload could not be verified."""

    status_code = 400
    error = "webhook_verification_failed"


class UpstreamBillingError(LingoError):
    """Billing provider request failed."""

    status_code = 502
    error = "upstream_billing_error"
