"""Identity server specific exceptions."""


class IdentityServerError(Exception):
    """Base exception for all identity server operations."""
    pass


class IdentityServerAPIError(IdentityServerError):
    """HTTP error from the identity server REST APIs.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class NotAuthenticatedError(IdentityServerError):
    """Request attempted before any credentials were configured."""
    pass
