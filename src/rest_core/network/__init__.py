"""
Network backend components for rest_core.

This module provides the low-level networking abstractions: the
backend that opens connections and the streams they produce.
"""

from .backend import NetworkBackend
from .stream import NetworkStream
from .mock import MockNetworkBackend, MockNetworkStream
from .socket_backend import SocketNetworkBackend, SocketNetworkStream
from .utils import (
    URLComponents,
    create_connection_socket,
    create_ssl_context,
    format_host_header,
    parse_url,
    set_socket_timeout,
    validate_port,
)

__all__ = [
    "NetworkBackend",
    "NetworkStream",
    "MockNetworkBackend",
    "MockNetworkStream",
    "SocketNetworkBackend",
    "SocketNetworkStream",
    "URLComponents",
    "create_connection_socket",
    "create_ssl_context",
    "format_host_header",
    "parse_url",
    "set_socket_timeout",
    "validate_port",
]
