"""
Mock network implementations for testing.

This module provides mock implementations of NetworkStream and NetworkBackend
that can be used for unit testing without requiring actual network connections.
"""

from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from .backend import NetworkBackend
from .stream import NetworkStream


class MockNetworkStream(NetworkStream):
    """
    Mock network stream for testing.

    This implementation simulates a network stream in memory,
    allowing tests to verify network behavior without actual I/O.
    """

    def __init__(self, data: bytes = b"", chunk_size: Optional[int] = None):
        """
        Initialize the mock stream.

        Args:
            data: Initial data to be available for reading.
            chunk_size: Largest read to hand out at once, to simulate
                data arriving in pieces.
        """
        self._data = data
        self._position = 0
        self._chunk_size = chunk_size
        self._closed = False
        self._extra_info: Dict[str, Any] = {}
        self._write_buffer: List[bytes] = []
        self.timeout: Optional[float] = None

    def read(self, max_bytes: int = 65536) -> bytes:
        """
        Read data from the mock stream.

        Raises:
            OSError: If the stream is closed.
        """
        if self._closed:
            raise OSError("Stream is closed")

        if self._chunk_size is not None:
            max_bytes = min(max_bytes, self._chunk_size)
        end = min(self._position + max_bytes, len(self._data))
        result = self._data[self._position:end]
        self._position = end
        return result

    def write(self, data: bytes) -> None:
        """
        Write data to the mock stream.

        Raises:
            OSError: If the stream is closed.
        """
        if self._closed:
            raise OSError("Stream is closed")

        self._write_buffer.append(data)

    def close(self) -> None:
        """Close the mock stream."""
        self._closed = True

    def set_timeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def get_extra_info(self, name: str) -> Optional[Any]:
        return self._extra_info.get(name)

    @property
    def is_closed(self) -> bool:
        """Check if the mock stream is closed."""
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the stream."""
        return b"".join(self._write_buffer)

    @property
    def write_calls(self) -> List[bytes]:
        """Get the individual write() payloads, in order."""
        return list(self._write_buffer)

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra_info[name] = value

    def add_data(self, data: bytes) -> None:
        """
        Add data to be available for reading.

        Args:
            data: The data to add.
        """
        self._data += data


class MockNetworkBackend(NetworkBackend):
    """
    Mock network backend for testing.

    Each connect_tcp() call opens a fresh MockNetworkStream preloaded
    with the next queued response; every stream handed out is kept in
    ``connections`` for inspection.
    """

    def __init__(self, chunk_size: Optional[int] = None):
        self._responses: Deque[bytes] = deque()
        self._failures: Deque[BaseException] = deque()
        self._chunk_size = chunk_size
        self.connections: List[MockNetworkStream] = []
        self.addresses: List[Tuple[str, int]] = []

    def queue_response(self, data: bytes) -> None:
        """Queue raw response bytes for the next connection."""
        self._responses.append(data)

    def fail_next_connect(self, error: BaseException) -> None:
        """Make the next connect_tcp() call raise error."""
        self._failures.append(error)

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> MockNetworkStream:
        if self._failures:
            raise self._failures.popleft()

        data = self._responses.popleft() if self._responses else b""
        stream = MockNetworkStream(data, chunk_size=self._chunk_size)
        stream.timeout = timeout
        stream.set_extra_info("socket", len(self.connections))
        stream.set_extra_info("peername", (host, port))
        stream.set_extra_info("sockname", ("127.0.0.1", 12345))
        self.connections.append(stream)
        self.addresses.append((host, port))
        return stream

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        if isinstance(stream, MockNetworkStream):
            stream.set_extra_info("ssl_object", True)
        return stream

    @property
    def last_connection(self) -> Optional[MockNetworkStream]:
        """The most recently opened stream, if any."""
        return self.connections[-1] if self.connections else None

    def reset(self) -> None:
        """Forget queued responses and recorded connections."""
        self._responses.clear()
        self._failures.clear()
        self.connections.clear()
        self.addresses.clear()
