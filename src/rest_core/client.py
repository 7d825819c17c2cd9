"""
Client and request configuration for rest_core.

A Client holds the base URL, default headers, the JSON serializer and
the transport. A Request is derived from a Client and captures the
client configuration as it was at that moment; later changes to the
client never reach requests that already exist. Requests carry their
own header overlay and query string and execute the HTTP verbs.

    client = Client("https://httpbin.org/").basic("user", "secret")
    response = client.new_request("basic-auth/{user}/{pass}").get(
        "user", "user", "pass", "secret"
    )
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from typing_extensions import Self

from .auth import AUTHORIZATION, basic_auth_header
from .engine import ExecutionEngine, Exchange, Method, merge_headers
from .exceptions import ProtocolError
from .http11 import HTTP11Connection
from .payloads import APPLICATION_JSON
from .response import Response
from .routes import encode_query
from .serializer import JSONSerializer
from .transport import HTTPTransport, Transport


@dataclass(frozen=True)
class ClientConfig:
    """Immutable snapshot of a Client's settings."""

    url: str
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    serializer: JSONSerializer = field(default_factory=JSONSerializer)
    transport: Transport = field(default_factory=HTTPTransport)


class _Configurable(ABC):
    """Fluent header and serializer settings shared by Client and Request."""

    def header(self, key: str, value: str) -> Self:
        """Set a header, replacing any value under the same name."""
        self._set_header(key, str(value))
        return self

    def clear(self, key: str) -> Self:
        """Remove a header, e.g. ``clear("User-Agent")``."""
        self._set_header(key, None)
        return self

    def basic(self, username: str, password: str) -> Self:
        """Use HTTP basic authentication."""
        return self.header(AUTHORIZATION, basic_auth_header(username, password))

    def nobasic(self) -> Self:
        """Stop sending basic authentication."""
        return self.clear(AUTHORIZATION)

    def json(self) -> Self:
        """Send and accept JSON (sets Accept and Content-Type)."""
        self.header("Accept", APPLICATION_JSON)
        self.header("Content-Type", APPLICATION_JSON)
        return self

    def serializer(self, serializer: JSONSerializer) -> Self:
        """Use serializer for JSON bodies and responses."""
        self._set_serializer(serializer)
        return self

    @abstractmethod
    def _set_header(self, key: str, value: Optional[str]) -> None:
        pass

    @abstractmethod
    def _set_serializer(self, serializer: JSONSerializer) -> None:
        pass


def _without(headers: Dict[str, Any], key: str) -> None:
    for name in [name for name in headers if name.lower() == key.lower()]:
        del headers[name]


class Client(_Configurable):
    """
    Entry point for making requests against one endpoint.

    Edits are thread safe; each one replaces the immutable ClientConfig
    that new requests copy.
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        serializer: Optional[JSONSerializer] = None,
        transport: Optional[Transport] = None,
        connect_timeout: Optional[float] = HTTP11Connection.DEFAULT_CONNECT_TIMEOUT,
        read_timeout: Optional[float] = HTTP11Connection.DEFAULT_READ_TIMEOUT,
    ) -> None:
        """
        Initialize Client.

        Args:
            url: Base endpoint, typically starting with http:// or https://
            headers: Default headers for every request
            serializer: JSON codec; a compact JSONSerializer by default
            transport: Connection factory; HTTPTransport over blocking
                sockets by default
            connect_timeout: Connect timeout in seconds for the default
                transport (None blocks)
            read_timeout: Read timeout in seconds for the default
                transport (None blocks)
        """
        if transport is None:
            transport = HTTPTransport(
                connect_timeout=connect_timeout, read_timeout=read_timeout
            )
        self._lock = threading.Lock()
        self._config = ClientConfig(
            url=url,
            headers=MappingProxyType(dict(headers or {})),
            serializer=serializer or JSONSerializer(),
            transport=transport,
        )

    @property
    def config(self) -> ClientConfig:
        """The current configuration snapshot."""
        return self._config

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def headers(self) -> Mapping[str, str]:
        return self._config.headers

    def new_request(self, path: str = "") -> "Request":
        """
        Create a request for ``path`` relative to the client URL.

        The path may contain route params such as ``{id}``. The request
        uses the client headers (including auth) current at this call.
        """
        return Request(self._config, path)

    def _set_header(self, key: str, value: Optional[str]) -> None:
        with self._lock:
            headers = dict(self._config.headers)
            _without(headers, key)
            if value is not None:
                headers[key] = value
            self._config = replace(self._config, headers=MappingProxyType(headers))

    def _set_serializer(self, serializer: JSONSerializer) -> None:
        with self._lock:
            self._config = replace(self._config, serializer=serializer)


class Request(_Configurable):
    """
    One endpoint of a Client, executed with the HTTP verb methods.

    Query parameters accumulate and may contain route params. Executions
    are thread safe; they snapshot the headers and query string under
    the request lock.
    """

    def __init__(self, config: ClientConfig, path: str = "") -> None:
        self._config = config
        self._path = path
        self._headers: Dict[str, Optional[str]] = {}
        self._query = ""
        self._serializer: Optional[JSONSerializer] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def path(self) -> str:
        return self._path

    @property
    def query_string(self) -> str:
        return self._query

    @property
    def headers(self) -> Dict[str, str]:
        """Effective headers: client defaults overlaid with this request's."""
        with self._lock:
            overlay = dict(self._headers)
        return merge_headers(self._config.headers, overlay)

    def query(self, name: str, value: Any) -> Self:
        """
        Append a query parameter; the value is URL-encoded.

        Parameters accumulate (repeating a name adds another pair) and
        may contain route params in the form ``{param}``.
        """
        with self._lock:
            self._query += ("&" if self._query else "?") + encode_query(name, str(value))
        return self

    def get(self, *routes: str) -> Response:
        """
        Execute a GET with the given route params.

        To replace ``{id}`` in the URL or query string pass
        ``"id", "myidvalue"``.
        """
        return self.execute(Method.GET, None, *routes)

    def head(self, *routes: str) -> Response:
        return self.execute(Method.HEAD, None, *routes)

    def post(self, body: Any = None, *routes: str) -> Response:
        """
        Execute a POST.

        Args:
            body: A Payload (e.g. MultipartForm), byte stream, bytes,
                string, or an object to send as JSON
            routes: Route params as name, value pairs
        """
        return self.execute(Method.POST, body, *routes)

    def put(self, body: Any = None, *routes: str) -> Response:
        return self.execute(Method.PUT, body, *routes)

    def delete(self, *routes: str) -> Response:
        return self.execute(Method.DELETE, None, *routes)

    def execute(self, method: Any, body: Any = None, *routes: str) -> Response:
        """
        Execute the request with any supported method.

        Raises:
            ProtocolError: If method is not a supported HTTP method
            RestException: For any other failure; see ExecutionEngine
        """
        try:
            method = Method(str(getattr(method, "value", method)).upper())
        except ValueError as e:
            raise ProtocolError(f"Invalid HTTP method: {method}", e) from e

        with self._lock:
            exchange = Exchange(
                method=method,
                url=self._config.url + self._path + self._query,
                client_headers=self._config.headers,
                request_headers=dict(self._headers),
                serializer=self._serializer or self._config.serializer,
                body=body,
                routes=tuple(routes),
            )
        return ExecutionEngine(self._config.transport).execute(exchange)

    def _set_header(self, key: str, value: Optional[str]) -> None:
        with self._lock:
            _without(self._headers, key)
            self._headers[key] = value

    def _set_serializer(self, serializer: JSONSerializer) -> None:
        with self._lock:
            self._serializer = serializer


def new_client(url: str, **kwargs: Any) -> Client:
    """Create a client for the given endpoint."""
    return Client(url, **kwargs)
