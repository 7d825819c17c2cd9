"""
rest_core - Small synchronous HTTP request-execution library

Configure a Client with a base URL and default headers, derive Requests
with route params and query strings, and execute them. Responses are
classified by content type into text, decoded JSON or an open byte
stream.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .client import Client, ClientConfig, Request, new_client
from .engine import ExecutionEngine, ExecutionState, Exchange, Method, resolve_payload
from .exceptions import (
    RestException,
    InvalidArgumentError,
    MalformedEndpointError,
    ProtocolError,
    TransportError,
    TimeoutError,
    TypeMismatchError,
    StreamError,
)
from .payloads import (
    UNKNOWN_LENGTH,
    Payload,
    TextPayload,
    StreamPayload,
    URLEncodedForm,
    MultipartForm,
)
from .response import Response, ResultKind
from .serializer import JSONSerializer
from .streams import ConnectionStream
from .transport import Transport, HTTPTransport

__all__ = [
    "Client",
    "ClientConfig",
    "Request",
    "new_client",
    "ExecutionEngine",
    "ExecutionState",
    "Exchange",
    "Method",
    "resolve_payload",
    "RestException",
    "InvalidArgumentError",
    "MalformedEndpointError",
    "ProtocolError",
    "TransportError",
    "TimeoutError",
    "TypeMismatchError",
    "StreamError",
    "UNKNOWN_LENGTH",
    "Payload",
    "TextPayload",
    "StreamPayload",
    "URLEncodedForm",
    "MultipartForm",
    "Response",
    "ResultKind",
    "JSONSerializer",
    "ConnectionStream",
    "Transport",
    "HTTPTransport",
]
