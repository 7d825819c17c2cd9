"""
Network backend interface for rest_core.

A NetworkBackend is what an HTTP11Connection uses to reach a server:
it opens the TCP socket and, for https URLs, wraps it in TLS.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .stream import NetworkStream


class NetworkBackend(ABC):
    """
    Opens blocking connections for HTTP11Connection.

    SocketNetworkBackend talks to real servers; MockNetworkBackend
    serves canned responses from memory.
    """

    @abstractmethod
    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        """
        Open a TCP connection to host:port.

        Args:
            host: Server name or IP address
            port: Server port
            timeout: Seconds to wait for the connection (None blocks)

        Returns:
            The connected stream

        Raises:
            OSError: If the server cannot be reached in time
        """

    @abstractmethod
    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        """
        Run the TLS handshake over an open TCP stream.

        Args:
            stream: Stream returned by connect_tcp()
            host: Server name to verify the certificate against
            timeout: Seconds to wait for the handshake (None blocks)

        Returns:
            The encrypted stream, replacing ``stream``

        Raises:
            OSError: If the handshake fails
        """
