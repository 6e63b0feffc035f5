class ApiError(Exception):
    """Operational error whose message is safe to send to the client."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = 'fail' if str(status_code).startswith('4') else 'error'


class AIServiceError(ApiError):
    """Raised when the upstream AI provider fails or returns unusable output."""

    def __init__(self, message, status_code=502):
        super().__init__(message, status_code)
