"""
Custom exceptions for rest_core.

Every failure surfaced by the library is a RestException. Callers that
only care about "the call failed" catch the base class; the subclasses
identify the kind of failure for callers that need to distinguish them.
"""

from typing import Optional


class RestException(Exception):
    """Base exception for all rest_core errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidArgumentError(RestException):
    """Raised when a caller supplies unusable arguments (e.g. odd route params)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Invalid argument: {message}", cause)


class MalformedEndpointError(RestException):
    """Raised when the resolved request URL cannot be parsed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Malformed endpoint: {message}", cause)


class ProtocolError(RestException):
    """Raised for illegal HTTP methods and HTTP protocol violations."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)


class TransportError(RestException):
    """Raised when I/O fails while connecting, writing or reading."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Transport error: {message}", cause)


class TimeoutError(TransportError):
    """Raised when a connect or read operation times out."""

    def __init__(
        self,
        message: str,
        timeout: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if timeout is not None:
            message = f"{message} (timeout: {timeout}s)"
        super().__init__(f"timed out: {message}", cause)
        self.timeout = timeout


class TypeMismatchError(RestException):
    """Raised when a response result cannot be coerced to the requested shape."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Type mismatch: {message}", cause)


class StreamError(RestException):
    """Raised when a single-use stream is reused or a closed stream is accessed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)
