"""
Byte streams for rest_core.

This module holds the byte-transfer helpers used to move request and
response bodies around, and the ConnectionStream handle returned for
streaming responses. A ConnectionStream owns the connection it reads
from: closing the stream releases the connection.
"""

import logging
from typing import IO, TYPE_CHECKING, Any, Iterator, Optional

from .exceptions import StreamError

if TYPE_CHECKING:
    from .http11 import HTTP11Connection  # Forward reference

logger = logging.getLogger(__name__)

BUFFER_SIZE = 16 * 1024
UTF_8 = "utf-8"


def close_quietly(resource: Optional[Any]) -> None:
    """
    Close a resource, logging rather than raising I/O failures.

    Args:
        resource: Anything with a close() method, or None
    """
    if resource is None:
        return
    try:
        resource.close()
    except OSError as e:
        logger.warning(f"Error closing {type(resource).__name__}: {e}")


def copy(source: IO[bytes], sink: Any, close: bool = False) -> int:
    """
    Copy every byte from source into sink.

    The sink is flushed once the source is exhausted. When ``close`` is
    set both ends are closed afterwards, whether or not the copy
    succeeded.

    Args:
        source: Readable byte stream
        sink: Writable byte sink
        close: Close source and sink when done

    Returns:
        Number of bytes copied
    """
    copied = 0
    try:
        while True:
            chunk = source.read(BUFFER_SIZE)
            if not chunk:
                break
            sink.write(chunk)
            copied += len(chunk)
        sink.flush()
    finally:
        if close:
            close_quietly(source)
            close_quietly(sink)
    return copied


def read_to_bytes(source: IO[bytes]) -> bytes:
    """Drain a byte stream, closing it afterwards."""
    chunks = []
    try:
        while True:
            chunk = source.read(BUFFER_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    finally:
        close_quietly(source)
    return b"".join(chunks)


def read_to_string(source: IO[bytes], encoding: str = UTF_8) -> str:
    """
    Drain a byte stream into text.

    Args:
        source: Readable byte stream, closed once drained
        encoding: Text encoding of the stream

    Returns:
        The decoded content
    """
    return read_to_bytes(source).decode(encoding)


class ConnectionStream:
    """
    Response body handle that owns its HTTP connection.

    Reads are delegated to the body stream of the connection. Closing
    the handle closes the body and then disconnects the connection; it
    is the only way the connection of a streaming response is released.
    """

    def __init__(self, connection: "HTTP11Connection", source: IO[bytes]) -> None:
        """
        Initialize ConnectionStream.

        Args:
            connection: The connection this stream takes ownership of
            source: The response body stream of that connection
        """
        self._connection = connection
        self._source = source
        self._closed = False
        self._bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when size is negative."""
        if self._closed:
            raise StreamError("Cannot read from closed stream")
        data = self._source.read(size)
        self._bytes_read += len(data)
        return data

    def readable(self) -> bool:
        return not self._closed

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(BUFFER_SIZE)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Close the body and release the connection."""
        if self._closed:
            return
        self._closed = True
        try:
            close_quietly(self._source)
        finally:
            self._connection.disconnect()
        logger.debug(f"Streaming response closed after {self._bytes_read} bytes")

    def __enter__(self) -> "ConnectionStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """Get whether the stream is closed."""
        return self._closed

    @property
    def bytes_read(self) -> int:
        """Get the number of bytes read so far."""
        return self._bytes_read
