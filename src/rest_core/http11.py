"""
HTTP/1.1 connection implementation for rest_core.

HTTP11Connection carries exactly one request/response exchange over a
NetworkStream, using h11 for the protocol state machine. Its surface is
modelled on a classic URL connection object: configure method and
headers, connect, write the body to the output stream, then read the
status line, headers and body.

The request body is either sent as it is written (fixed-length
streaming mode, when the caller knows the size up front) or buffered in
memory and sent with a computed Content-Length once the response is
requested.
"""

import logging
import socket
import time
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import quote

import h11

from .exceptions import (
    InvalidArgumentError,
    MalformedEndpointError,
    ProtocolError,
    StreamError,
    TimeoutError,
    TransportError,
)
from .network.backend import NetworkBackend
from .network.stream import NetworkStream
from .network.utils import format_host_header, parse_url

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """States of an HTTP/1.1 connection."""
    NEW = "new"                              # Configurable, not yet connected
    CONNECTED = "connected"                  # Socket open, request not complete
    REQUEST_SENT = "request_sent"            # Request fully written
    RESPONSE_RECEIVED = "response_received"  # Status line and headers read
    CLOSED = "closed"                        # Disconnected, cannot be reused


@contextmanager
def _translate_errors(action: str, timeout: Optional[float] = None) -> Iterator[None]:
    """Map socket and h11 failures onto the rest_core exception hierarchy."""
    try:
        yield
    except h11.ProtocolError as e:
        raise ProtocolError(f"{action}: {e}", e) from e
    except UnicodeEncodeError as e:
        raise ProtocolError(f"{action}: {e}", e) from e
    except socket.timeout as e:
        raise TimeoutError(action, timeout, e) from e
    except OSError as e:
        raise TransportError(f"{action}: {e}", e) from e


class FixedLengthRequestBody:
    """
    Output stream that sends each write straight to the connection.

    Exactly ``length`` bytes must be written before the stream is closed.
    """

    def __init__(self, connection: "HTTP11Connection", length: int) -> None:
        self._connection = connection
        self._length = length
        self._written = 0
        self._closed = False
        self._failed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise StreamError("Cannot write to closed request body")
        if self._written + len(data) > self._length:
            self._failed = True
            raise ProtocolError(
                f"Request body exceeds declared length ({self._length} bytes)"
            )
        try:
            self._connection._send_event(h11.Data(data=bytes(data)))
        except Exception:
            self._failed = True
            raise
        self._written += len(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Finish the request body; the byte count must match."""
        if self._closed:
            return
        self._closed = True
        if self._failed:
            return
        if self._written != self._length:
            raise ProtocolError(
                f"Request body has {self._written} bytes, {self._length} declared"
            )
        self._connection._send_event(h11.EndOfMessage())

    @property
    def closed(self) -> bool:
        return self._closed


class BufferedRequestBody:
    """Output stream that collects the body in memory until the request is sent."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise StreamError("Cannot write to closed request body")
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self._closed = True

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed


class ResponseBody:
    """Input stream over the response body, pulled from h11 on demand."""

    def __init__(self, connection: "HTTP11Connection") -> None:
        self._connection = connection
        self._buffer = bytearray()
        self._eof = False
        self._closed = False

    def _fill(self) -> None:
        chunk = self._connection._receive_body_chunk()
        if chunk is None:
            self._eof = True
        else:
            self._buffer += chunk

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise StreamError("Cannot read from closed response body")
        if size is None or size < 0:
            while not self._eof:
                self._fill()
            data = bytes(self._buffer)
            self._buffer.clear()
            return data
        while not self._buffer and not self._eof:
            self._fill()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def close(self) -> None:
        self._closed = True
        self._buffer.clear()

    @property
    def closed(self) -> bool:
        return self._closed


class HTTP11Connection:
    """
    Single-use HTTP/1.1 connection.

    Headers are case-insensitive; setting a header twice keeps the last
    value. Every request is sent with ``Connection: close`` because
    connections are never reused.
    """

    ALLOWED_METHODS = ("GET", "POST", "HEAD", "OPTIONS", "PUT", "DELETE", "TRACE")

    # Default configuration
    DEFAULT_CONNECT_TIMEOUT = 30.0  # 30 seconds
    DEFAULT_READ_TIMEOUT = 30.0  # 30 seconds
    DEFAULT_USER_AGENT = "rest_core"
    READ_CHUNK_SIZE = 65536  # 64KB

    def __init__(
        self,
        url: str,
        backend: NetworkBackend,
        method: str = "GET",
        connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT,
    ):
        """
        Initialize HTTP/1.1 connection.

        Args:
            url: Absolute http or https URL
            backend: The NetworkBackend that opens the socket
            method: HTTP method
            connect_timeout: Timeout for connecting in seconds (None blocks)
            read_timeout: Timeout for each read or write in seconds (None blocks)

        Raises:
            MalformedEndpointError: If url cannot be parsed
            ProtocolError: If method is not a supported HTTP method
        """
        try:
            self._url = parse_url(url)
        except ValueError as e:
            raise MalformedEndpointError(str(e), e) from e

        self._backend = backend
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._state = ConnectionState.NEW
        self._method = "GET"
        self.method = method

        self._headers: Dict[str, Tuple[str, str]] = {}
        self._fixed_length: Optional[int] = None
        self.do_input = True
        self.do_output = False

        self._stream: Optional[NetworkStream] = None
        self._h11_connection = h11.Connection(h11.CLIENT)
        self._output: Optional[Union[FixedLengthRequestBody, BufferedRequestBody]] = None
        self._response: Optional[h11.Response] = None
        self._body: Optional[ResponseBody] = None

        # Metrics
        self._bytes_sent = 0
        self._bytes_received = 0
        self._opened_at: Optional[float] = None

    @property
    def url(self) -> str:
        u = self._url
        return f"{u.scheme}://{format_host_header(u.host, u.port, u.scheme)}{u.target}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def method(self) -> str:
        return self._method

    @method.setter
    def method(self, method: str) -> None:
        self._require_state(ConnectionState.NEW, "set the request method")
        normalized = str(method).upper()
        if normalized not in self.ALLOWED_METHODS:
            raise ProtocolError(f"Invalid HTTP method: {method}")
        self._method = normalized

    def set_header(self, name: str, value: str) -> None:
        """Set a request header, replacing any value under the same name."""
        self._require_state(ConnectionState.NEW, "set a request header")
        self._headers[name.lower()] = (name, str(value))

    def get_header(self, name: str) -> Optional[str]:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    @property
    def request_headers(self) -> Dict[str, str]:
        return {name: value for name, value in self._headers.values()}

    def set_fixed_length_streaming_mode(self, length: int) -> None:
        """Send the body as it is written, announcing exactly ``length`` bytes."""
        self._require_state(ConnectionState.NEW, "set fixed-length streaming mode")
        if length < 0:
            raise InvalidArgumentError(f"Invalid content length: {length}")
        self._fixed_length = length

    @property
    def fixed_length(self) -> Optional[int]:
        return self._fixed_length

    def connect(self) -> None:
        """
        Open the network connection. Does nothing if already connected.

        Raises:
            TimeoutError: If connecting times out
            TransportError: If the connection cannot be opened
        """
        if self._state != ConnectionState.NEW:
            return

        host, port = self._url.host, self._url.port
        with _translate_errors(f"Connecting to {host}:{port}", self._connect_timeout):
            stream = self._backend.connect_tcp(host, port, self._connect_timeout)
            self._stream = stream
            if self._url.scheme == "https":
                stream = self._backend.connect_tls(stream, host, self._connect_timeout)
                self._stream = stream
            stream.set_timeout(self._read_timeout)

        self._state = ConnectionState.CONNECTED
        self._opened_at = time.time()
        logger.debug(f"Connection opened: {self._method} {self.url}")

    def get_output_stream(self) -> Union[FixedLengthRequestBody, BufferedRequestBody]:
        """
        Get the stream the request body is written to.

        In fixed-length mode the request line and headers are sent
        immediately; otherwise the body is buffered.

        Raises:
            ProtocolError: If output is not enabled or the request was sent
        """
        if not self.do_output:
            raise ProtocolError("Output is not enabled on this connection")
        if self._output is not None:
            return self._output
        if self._state == ConnectionState.NEW:
            self.connect()
        self._require_state(ConnectionState.CONNECTED, "open the request body")

        if self._fixed_length is not None:
            self._send_head(self._fixed_length)
            self._output = FixedLengthRequestBody(self, self._fixed_length)
        else:
            self._output = BufferedRequestBody()
        return self._output

    def get_input_stream(self) -> ResponseBody:
        """
        Get the response body stream, sending the request first if needed.

        Raises:
            ProtocolError: If input is not enabled
        """
        if not self.do_input:
            raise ProtocolError("Input is not enabled on this connection")
        self._ensure_response()
        assert self._body is not None
        return self._body

    @property
    def response_code(self) -> int:
        return self._ensure_response().status_code

    @property
    def response_message(self) -> str:
        return self._ensure_response().reason.decode("latin-1")

    @property
    def response_headers(self) -> Dict[str, str]:
        """Response headers with lower-cased names; repeated headers are joined."""
        headers: Dict[str, str] = {}
        for name, value in self._ensure_response().headers:
            key = name.decode("latin-1").lower()
            text = value.decode("latin-1")
            headers[key] = f"{headers[key]}, {text}" if key in headers else text
        return headers

    @property
    def content_length(self) -> int:
        """Declared Content-Length of the response, -1 if absent or invalid."""
        value = self.response_headers.get("content-length")
        try:
            return int(value) if value is not None else -1
        except ValueError:
            return -1

    @property
    def content_type(self) -> str:
        return self.response_headers.get("content-type", "")

    def disconnect(self) -> None:
        """Close the network connection. Safe to call repeatedly."""
        if self._state == ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError as e:
                logger.warning(f"Error closing connection to {self._url.host}: {e}")
        duration = time.time() - self._opened_at if self._opened_at else 0.0
        logger.debug(
            f"Connection closed: {self._bytes_sent} bytes sent, "
            f"{self._bytes_received} bytes received ({duration:.3f}s)"
        )

    @property
    def is_closed(self) -> bool:
        return self._state == ConnectionState.CLOSED

    @property
    def metrics(self) -> Dict[str, object]:
        return {
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
            "state": self._state.value,
        }

    def _require_state(self, state: ConnectionState, action: str) -> None:
        if self._state != state:
            raise ProtocolError(f"Cannot {action} in state {self._state.value}")

    def _request_target(self) -> str:
        # Escape only what may not appear raw on the request line
        return quote(self._url.target, safe="!#$%&'()*+,/:;=?@[]~")

    def _build_headers(self, content_length: Optional[int]) -> List[Tuple[bytes, bytes]]:
        headers = dict(self._headers)
        headers.pop("content-length", None)
        headers.pop("transfer-encoding", None)
        headers.setdefault(
            "host", ("Host", format_host_header(self._url.host, self._url.port, self._url.scheme))
        )
        headers.setdefault("user-agent", ("User-Agent", self.DEFAULT_USER_AGENT))
        headers["connection"] = ("Connection", "close")
        if content_length is not None:
            headers["content-length"] = ("Content-Length", str(content_length))
        return [
            (name.encode("ascii"), value.encode("utf-8"))
            for name, value in headers.values()
        ]

    def _send_head(self, content_length: Optional[int]) -> None:
        with _translate_errors(f"Building request for {self._url.host}"):
            request = h11.Request(
                method=self._method,
                target=self._request_target(),
                headers=self._build_headers(content_length),
            )
        self._send_event(request)

    def _send_event(self, event: h11.Event) -> None:
        """
        Send an h11 event to the network stream.

        Args:
            event: The h11 event to send
        """
        assert self._stream is not None
        with _translate_errors(f"Sending request to {self._url.host}", self._read_timeout):
            data = self._h11_connection.send(event)
            if data:
                self._stream.write(data)
                self._bytes_sent += len(data)

    def _finish_request(self) -> None:
        if self._output is None:
            # No body: only announce an empty one for methods that expect it
            length = 0 if self.do_output or self._method in ("POST", "PUT") else None
            self._send_head(length)
            self._send_event(h11.EndOfMessage())
        elif isinstance(self._output, BufferedRequestBody):
            data = self._output.getvalue()
            self._send_head(len(data))
            if data:
                self._send_event(h11.Data(data=data))
            self._send_event(h11.EndOfMessage())
        else:
            # Fixed-length bodies end their message on close
            self._output.close()
        self._state = ConnectionState.REQUEST_SENT

    def _ensure_response(self) -> h11.Response:
        if self._response is not None:
            return self._response
        if self._state == ConnectionState.CLOSED:
            raise ProtocolError("Connection is closed")
        if self._state == ConnectionState.NEW:
            self.connect()
        if self._state == ConnectionState.CONNECTED:
            self._finish_request()

        while True:
            event = self._next_event()
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                self._response = event
                break
            raise ProtocolError(f"Unexpected event while awaiting response: {event!r}")

        self._state = ConnectionState.RESPONSE_RECEIVED
        self._body = ResponseBody(self)
        logger.debug(f"{self._method} {self.url} -> {self._response.status_code}")
        return self._response

    def _next_event(self) -> h11.Event:
        assert self._stream is not None
        with _translate_errors(f"Reading response from {self._url.host}", self._read_timeout):
            while True:
                event = self._h11_connection.next_event()
                if event is not h11.NEED_DATA:
                    if isinstance(event, h11.ConnectionClosed) and self._response is None:
                        raise ProtocolError("Connection closed before a response was received")
                    return event
                data = self._stream.read(self.READ_CHUNK_SIZE)
                self._bytes_received += len(data)
                self._h11_connection.receive_data(data)

    def _receive_body_chunk(self) -> Optional[bytes]:
        """
        Receive a chunk of response body.

        Returns:
            Chunk of data or None if end of body
        """
        event = self._next_event()
        if isinstance(event, h11.Data):
            return bytes(event.data)
        # EndOfMessage, ConnectionClosed or PAUSED
        return None
