from typing import Optional


class WhatsMyIpError(Exception):
    """Base class for all exceptions in this application."""
    pass


class AddressParseError(WhatsMyIpError):
    """Raised when a text is neither a valid IPv4 nor IPv6 address."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid IP address {text!r}")


class TransportError(WhatsMyIpError):
    """Raised when an HTTP provider cannot be reached or answers with a bad status."""

    def __init__(
        self,
        url: str,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None
    ):
        self.url = url
        self.status = status
        self.cause = cause

        if status is not None:
            message = f"HTTP status {status}"
        else:
            message = str(cause) or type(cause).__name__
        super().__init__(message)


class GatewayError(WhatsMyIpError):
    """Raised when no IGD router is found or it refuses to report its address."""
    pass


class AddressNotFoundError(WhatsMyIpError):
    """Raised when every enabled discovery source failed."""

    def __init__(self, message: str = "Unable to find any IP address"):
        super().__init__(message)
