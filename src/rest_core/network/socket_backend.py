"""
Blocking socket backend for rest_core.
"""

import logging
import socket
import ssl
from typing import Any, Optional

from .backend import NetworkBackend
from .stream import NetworkStream
from .utils import create_connection_socket, create_ssl_context, set_socket_timeout

logger = logging.getLogger(__name__)


class SocketNetworkStream(NetworkStream):
    """NetworkStream over a blocking (optionally TLS-wrapped) socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closed = False

    def read(self, max_bytes: int = 65536) -> bytes:
        if self._closed:
            raise OSError("Stream is closed")
        return self._sock.recv(max_bytes)

    def write(self, data: bytes) -> None:
        if self._closed:
            raise OSError("Stream is closed")
        self._sock.sendall(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected by the peer
            pass
        self._sock.close()

    def set_timeout(self, timeout: Optional[float]) -> None:
        set_socket_timeout(self._sock, timeout)

    def get_extra_info(self, name: str) -> Optional[Any]:
        if name == "socket":
            return self._sock
        if name == "ssl_object":
            return isinstance(self._sock, ssl.SSLSocket)
        try:
            if name == "peername":
                return self._sock.getpeername()
            if name == "sockname":
                return self._sock.getsockname()
        except OSError:
            return None
        return None

    @property
    def is_closed(self) -> bool:
        return self._closed


class SocketNetworkBackend(NetworkBackend):
    """Opens blocking sockets; TLS uses the default SSL context."""

    def __init__(self) -> None:
        self._ssl_context: Optional[ssl.SSLContext] = None

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> SocketNetworkStream:
        sock = create_connection_socket(host, port, timeout)
        logger.debug(f"Connected to {host}:{port}")
        return SocketNetworkStream(sock)

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> SocketNetworkStream:
        sock = stream.get_extra_info("socket")
        if sock is None:
            raise OSError("Stream has no underlying socket to wrap")
        if self._ssl_context is None:
            self._ssl_context = create_ssl_context()
        set_socket_timeout(sock, timeout)
        tls_sock = self._ssl_context.wrap_socket(sock, server_hostname=host)
        logger.debug(f"TLS established with {host} ({tls_sock.version()})")
        return SocketNetworkStream(tls_sock)
