"""
Exception types raised by GraphMailKit.

Every failure surfaces synchronously to the caller; nothing here is retried.
"""

from typing import Optional


class GraphMailError(Exception):
    """Base exception for GraphMailKit errors."""
    pass


class ConfigurationError(GraphMailError, ValueError):
    """Raised when required settings or credentials are missing."""
    pass


class NotInitializedError(GraphMailError, RuntimeError):
    """Raised when an operation runs before credentials were supplied."""
    pass


class AuthenticationError(GraphMailError):
    """
    Raised when the identity provider rejects a client-credentials request.

    Attributes:
        status_code: HTTP status from the token endpoint (0 when unreachable)
        body: Raw error body returned by the token endpoint
    """

    def __init__(self, message: str, status_code: int = 0, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body or ""


class GraphRequestError(GraphMailError):
    """
    Raised when a Microsoft Graph call does not succeed.

    Attributes:
        status_code: HTTP status from Graph (0 when the request never completed)
        body: Raw response body
    """

    def __init__(self, message: str, status_code: int = 0, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body or ""


class MimeDecodeError(GraphMailError, ValueError):
    """Raised when attachment content cannot be decoded for saving."""
    pass
