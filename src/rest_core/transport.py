"""
Transports for rest_core.

A Transport opens one HTTP11Connection per request. HTTPTransport is
the default; tests plug in a MockNetworkBackend to run without sockets.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .http11 import HTTP11Connection
from .network.backend import NetworkBackend
from .network.socket_backend import SocketNetworkBackend


class Transport(ABC):
    """Interface for opening request connections."""

    @abstractmethod
    def open(self, url: str, method: str) -> HTTP11Connection:
        """
        Create an unconnected connection for one request.

        Args:
            url: Absolute request URL
            method: HTTP method

        Returns:
            A connection in the NEW state

        Raises:
            MalformedEndpointError: If url cannot be parsed
            ProtocolError: If method is not supported
        """


class HTTPTransport(Transport):
    """Opens HTTP/1.1 connections over a NetworkBackend."""

    def __init__(
        self,
        backend: Optional[NetworkBackend] = None,
        connect_timeout: Optional[float] = HTTP11Connection.DEFAULT_CONNECT_TIMEOUT,
        read_timeout: Optional[float] = HTTP11Connection.DEFAULT_READ_TIMEOUT,
    ) -> None:
        """
        Initialize HTTPTransport.

        Args:
            backend: Network backend; blocking sockets when omitted
            connect_timeout: Connect timeout in seconds (None blocks)
            read_timeout: Read/write timeout in seconds (None blocks)
        """
        self._backend = backend or SocketNetworkBackend()
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout

    @property
    def backend(self) -> NetworkBackend:
        return self._backend

    def open(self, url: str, method: str) -> HTTP11Connection:
        return HTTP11Connection(
            url,
            self._backend,
            method=method,
            connect_timeout=self._connect_timeout,
            read_timeout=self._read_timeout,
        )
