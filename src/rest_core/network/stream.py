"""
Network stream interface for rest_core.

This module defines the NetworkStream interface that all network stream
implementations must follow for consistent behavior across the library.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class NetworkStream(ABC):
    """
    Interface for blocking network streams.

    This interface defines the contract that all network stream
    implementations must follow. It provides methods for reading,
    writing, and closing a single network connection.
    """

    @abstractmethod
    def read(self, max_bytes: int = 65536) -> bytes:
        """
        Read data from the stream.

        Args:
            max_bytes: Maximum number of bytes to read.

        Returns:
            The data read from the stream; empty once the peer closed it.

        Raises:
            OSError: If the stream is closed or a network error occurs.
        """

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write all of data to the stream.

        Raises:
            OSError: If the stream is closed or a network error occurs.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the stream and release the underlying socket."""

    @abstractmethod
    def get_extra_info(self, name: str) -> Optional[Any]:
        """
        Get extra information about the stream.

        Args:
            name: The name of the information to retrieve. Common values include:
                 - "socket": The underlying socket object
                 - "peername": The remote endpoint address
                 - "sockname": The local endpoint address
                 - "ssl_object": Whether the stream is SSL/TLS encrypted

        Returns:
            The requested information or None if not available.
        """

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Check if the stream is closed."""

    def set_timeout(self, timeout: Optional[float]) -> None:
        """Set the timeout for subsequent reads and writes (None blocks)."""
