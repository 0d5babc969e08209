"""
Domain errors

Every error raised by the services carries the HTTP status and the stable
error code the API reports for it. The handlers in main.py turn them into
the standard response envelope.
"""


class PGFinderError(Exception):
    status_code = 500
    error = "Internal"
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(PGFinderError):
    status_code = 400
    error = "ValidationError"
    default_message = "Validation failed"


class Conflict(PGFinderError):
    status_code = 400
    error = "Conflict"
    default_message = "User with this email already exists"


class InvalidCredentials(PGFinderError):
    status_code = 401
    error = "InvalidCredentials"
    default_message = "Invalid email or password"


class InvalidOrExpiredCode(PGFinderError):
    status_code = 400
    error = "InvalidOrExpiredCode"
    default_message = "Invalid or expired OTP"


class NotFound(PGFinderError):
    status_code = 404
    error = "NotFound"
    default_message = "Resource not found"


class Forbidden(PGFinderError):
    status_code = 403
    error = "Forbidden"
    default_message = "Not authorized to perform this action"


class AlreadyOwner(PGFinderError):
    status_code = 400
    error = "AlreadyOwner"
    default_message = "User is already an owner"


class TooManyRequests(PGFinderError):
    status_code = 429
    error = "TooManyRequests"
    default_message = "Too many requests, please try again later"


class DeliveryFailed(PGFinderError):
    status_code = 500
    error = "DeliveryFailed"
    default_message = "Failed to send email"
