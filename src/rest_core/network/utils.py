"""
Network utilities for rest_core.

This module provides utility functions for common network operations
including socket creation, SSL context setup, and URL parsing.
"""

import socket
import ssl
from typing import NamedTuple, Optional, Union
from urllib.parse import urlsplit

SUPPORTED_SCHEMES = ("http", "https")


class URLComponents(NamedTuple):
    """Components of a request URL needed to open a connection."""
    scheme: str
    host: str
    port: int
    target: str


def parse_url(url: str) -> URLComponents:
    """
    Parse URL into components.

    Args:
        url: Absolute http or https URL

    Returns:
        URLComponents with the request target (path plus query)

    Raises:
        ValueError: If URL is malformed
    """
    parsed = urlsplit(url)

    scheme = parsed.scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise ValueError(f"Unsupported or missing scheme in URL: {url!r}")

    host = parsed.hostname or ""
    if not host:
        raise ValueError(f"No hostname found in URL: {url!r}")

    # Accessing .port validates it
    port = parsed.port
    if port is None:
        port = 443 if scheme == "https" else 80

    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query

    return URLComponents(scheme=scheme, host=host, port=port, target=target)


def format_host_header(host: str, port: int, scheme: str) -> str:
    """
    Format host header for HTTP requests.

    Args:
        host: Hostname
        port: Port number
        scheme: URL scheme

    Returns:
        Formatted host header string
    """
    if ":" in host:
        host = f"[{host}]"
    if (scheme == "https" and port == 443) or (scheme == "http" and port == 80):
        return host
    return f"{host}:{port}"


def create_connection_socket(
    host: str,
    port: int,
    timeout: Optional[float] = None,
) -> socket.socket:
    """
    Open a blocking TCP connection.

    Args:
        host: Hostname or IP address
        port: Port number
        timeout: Connect timeout in seconds (None for blocking)

    Returns:
        Connected socket

    Raises:
        OSError: If the connection fails
    """
    sock = socket.create_connection((host, validate_port(port)), timeout=timeout)
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    return sock


def create_ssl_context() -> ssl.SSLContext:
    """Create the default client SSL context."""
    context = ssl.create_default_context()
    context.options |= ssl.OP_NO_COMPRESSION
    return context


def set_socket_timeout(sock: socket.socket, timeout: Optional[float]) -> None:
    """
    Set socket timeout.

    Args:
        sock: Socket object
        timeout: Timeout in seconds (None for blocking)
    """
    sock.settimeout(timeout)


def validate_port(port: Union[int, str]) -> int:
    """
    Validate and convert port to integer.

    Args:
        port: Port number (int or string)

    Returns:
        Port as integer

    Raises:
        ValueError: If port is invalid
    """
    try:
        port_int = int(port)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid port: {port}")

    if not (1 <= port_int <= 65535):
        raise ValueError(f"Port must be between 1 and 65535, got {port_int}")

    return port_int
