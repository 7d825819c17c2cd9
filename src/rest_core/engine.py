"""
Request execution for rest_core.

ExecutionEngine turns one Exchange (method, URL template, headers,
body, route params) into one HTTP request and one Response:

    BUILT -> CONNECTED -> BODY_SENT -> RESPONSE_RECEIVED -> CLOSED
                                                         -> STREAMING_OPEN

The connection is always disconnected before execute() returns, except
when the response body is handed to the caller as a ConnectionStream;
closing that stream disconnects it.
"""

import codecs
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ProtocolError, RestException, StreamError, TransportError
from .http11 import HTTP11Connection
from .payloads import (
    APPLICATION_JSON,
    TEXT_PLAIN,
    Payload,
    StreamPayload,
    TextPayload,
)
from .response import Response, ResultKind
from .routes import substitute_routes
from .serializer import JSONSerializer
from .streams import UTF_8, ConnectionStream, read_to_string
from .transport import Transport

logger = logging.getLogger(__name__)

_TEXT_OR_JSON = re.compile("text|json", re.IGNORECASE)
_CHARSET = re.compile(r"charset=\"?([\w.:-]+)", re.IGNORECASE)


class Method(str, Enum):
    """HTTP methods a Request can execute."""
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ExecutionState(Enum):
    """Progress of one execution."""
    BUILT = "built"
    CONNECTED = "connected"
    BODY_SENT = "body_sent"
    RESPONSE_RECEIVED = "response_received"
    CLOSED = "closed"
    STREAMING_OPEN = "streaming_open"


@dataclass(frozen=True)
class Exchange:
    """
    Everything needed to execute one request.

    ``url`` is the unresolved template (base URL + path + query).
    ``request_headers`` maps a name to None to remove a client header.
    """

    method: Method
    url: str
    client_headers: Mapping[str, str] = field(default_factory=dict)
    request_headers: Mapping[str, Optional[str]] = field(default_factory=dict)
    serializer: JSONSerializer = field(default_factory=JSONSerializer)
    body: Any = None
    routes: Tuple[str, ...] = ()


def resolve_payload(body: Any, serializer: JSONSerializer) -> Optional[Payload]:
    """
    Turn a caller-supplied body into a Payload.

    Args:
        body: None, a Payload, a byte stream, bytes, a string, or any
            object the serializer can encode as JSON
        serializer: Codec for structured bodies

    Returns:
        The payload, or None when there is no body
    """
    if body is None:
        return None
    if isinstance(body, Payload):
        return body
    if isinstance(body, (bytes, bytearray)):
        return StreamPayload.from_bytes(bytes(body))
    if isinstance(body, str):
        return TextPayload(body, TEXT_PLAIN)
    if callable(getattr(body, "read", None)):
        return StreamPayload(body)
    return TextPayload(serializer.encode(body), APPLICATION_JSON)


def merge_headers(
    client_headers: Mapping[str, str],
    request_headers: Mapping[str, Optional[str]],
) -> Dict[str, str]:
    """
    Merge client defaults with request headers; the request wins.

    Names compare case-insensitively. A request header set to None
    removes the client header of that name.
    """
    merged: Dict[str, Tuple[str, str]] = {}
    for name, value in client_headers.items():
        merged[name.lower()] = (name, value)
    for name, value in request_headers.items():
        if value is None:
            merged.pop(name.lower(), None)
        else:
            merged[name.lower()] = (name, value)
    return {name: value for name, value in merged.values()}


def _charset(content_type: str) -> str:
    match = _CHARSET.search(content_type)
    if match:
        try:
            return codecs.lookup(match.group(1)).name
        except LookupError:
            logger.debug(f"Unknown charset {match.group(1)!r}, using {UTF_8}")
    return UTF_8


class ExecutionEngine:
    """Executes Exchanges over a Transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    def execute(self, exchange: Exchange) -> Response:
        """
        Execute one request.

        Status codes outside [200, 400) are not errors: the Response is
        returned with its status fields set and no result.

        Args:
            exchange: The request to execute

        Returns:
            The Response

        Raises:
            InvalidArgumentError: If the route params have odd length
            MalformedEndpointError: If the resolved URL cannot be parsed
            ProtocolError: On an illegal method or protocol violation
            TransportError: If I/O fails
        """
        start_time = time.time()
        state = ExecutionState.BUILT
        connection: Optional[HTTP11Connection] = None
        url = exchange.url
        try:
            url = substitute_routes(exchange.url, exchange.routes)
            payload = resolve_payload(exchange.body, exchange.serializer)

            connection = self._transport.open(url, exchange.method.value)
            if payload is not None:
                connection.set_header("Content-Type", payload.content_type)
            for name, value in merge_headers(
                exchange.client_headers, exchange.request_headers
            ).items():
                connection.set_header(name, value)

            if payload is not None and payload.streamable and payload.length >= 0:
                connection.set_fixed_length_streaming_mode(payload.length)
                connection.set_header("Content-Length", str(payload.length))

            connection.do_input = True
            connection.do_output = payload is not None
            connection.connect()
            state = self._transition(state, ExecutionState.CONNECTED)

            if payload is not None:
                try:
                    payload.write(connection.get_output_stream())
                except ValueError as e:
                    # e.g. reading a file object that was already closed
                    raise StreamError(f"Cannot read request body: {e}", e) from e
                state = self._transition(state, ExecutionState.BODY_SENT)

            code = connection.response_code
            message = connection.response_message
            length = connection.content_length
            content_type = connection.content_type
            headers = connection.response_headers
            state = self._transition(state, ExecutionState.RESPONSE_RECEIVED)

            kind, result = ResultKind.NONE, None
            if 200 <= code < 400:
                if _TEXT_OR_JSON.search(content_type):
                    charset = _charset(content_type)
                    try:
                        text = read_to_string(connection.get_input_stream(), charset)
                    except UnicodeDecodeError as e:
                        raise ProtocolError(
                            f"Response body is not valid {charset}: {e}", e
                        ) from e
                    if "text" in content_type.lower():
                        kind, result = ResultKind.TEXT, text
                    else:
                        kind = ResultKind.JSON
                        result = exchange.serializer.decode(text) if text.strip() else None
                else:
                    kind = ResultKind.STREAM
                    result = ConnectionStream(connection, connection.get_input_stream())
                    state = self._transition(state, ExecutionState.STREAMING_OPEN)

            response = Response(
                code=code,
                message=message,
                content_type=content_type,
                length=length,
                headers=headers,
                kind=kind,
                result=result,
                serializer=exchange.serializer,
            )
        except RestException as e:
            logger.error(f"{exchange.method.value} {url} failed: {e}")
            raise
        except OSError as e:
            # Raised by payload sources rather than the connection
            logger.error(f"{exchange.method.value} {url} failed: {e}")
            raise TransportError(str(e), e) from e
        finally:
            if state is not ExecutionState.STREAMING_OPEN and connection is not None:
                connection.disconnect()
                state = self._transition(state, ExecutionState.CLOSED)

        duration = time.time() - start_time
        logger.debug(
            f"{exchange.method.value} {url} -> {response.code} "
            f"{response.kind.value} ({duration:.3f}s)"
        )
        return response

    @staticmethod
    def _transition(current: ExecutionState, new: ExecutionState) -> ExecutionState:
        logger.debug(f"Execution state: {current.value} -> {new.value}")
        return new
