"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class BiliCliError(Exception):
    """Base exception for all application-specific errors."""


class TransportError(BiliCliError):
    """
    Raised when an HTTP request fails at the network level or returns a
    non-2xx status. The status and response body are kept for diagnostics.
    """

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    @classmethod
    def from_response(cls, url: str, status: int, body: str) -> "TransportError":
        return cls(f"HTTP {status} for {url}: {body[:200]}", status=status, body=body)


class DescriptorInvalidError(BiliCliError):
    """Raised when the WBI key descriptors returned by the API are blank."""


class ResponseFormatError(BiliCliError):
    """Raised when a successful response body cannot be decoded as JSON."""


class ConfigurationError(BiliCliError):
    """Raised for issues related to configuration loading or validation."""
