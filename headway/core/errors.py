"""Application error taxonomy.

Every error carries the HTTP status it maps to; the handlers registered in
``headway.main`` render them as ``{"error": message}``.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class GoneError(AppError):
    status_code = 410


class RateLimitError(AppError):
    status_code = 429

    def __init__(self, message: str = "Too many requests. Try again later.", retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class GatewayError(AppError):
    """Non-2xx or transport failure talking to the payment processor."""

    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None, body: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class InternalError(AppError):
    status_code = 500
