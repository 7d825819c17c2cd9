"""
Request payloads for rest_core.

A Payload is a self-describing request body: it knows its content type,
its length in bytes when that is knowable, whether it can be sent with
a fixed Content-Length, and how to write itself to an output sink.

Payloads that wrap byte streams are single-use because the stream is
exhausted (and closed) by the first write.
"""

import io
import mimetypes
from abc import ABC, abstractmethod
from typing import IO, Any, List, Optional, Union

from .exceptions import InvalidArgumentError, StreamError
from .routes import encode_value
from .serializer import JSONSerializer
from .streams import UTF_8, close_quietly, copy

UNKNOWN_LENGTH = -1
CRLF = "\r\n"

TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"
OCTET_STREAM = "application/octet-stream"
FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"


class Payload(ABC):
    """
    Base interface for all request bodies.

    Subclasses report content_type, length and reusable, and implement
    _write_to(); write() guards single-use payloads.
    """

    _consumed = False

    @property
    @abstractmethod
    def content_type(self) -> str:
        """The value for the Content-Type header."""

    @property
    @abstractmethod
    def length(self) -> int:
        """Body size in bytes, or UNKNOWN_LENGTH."""

    @property
    def streamable(self) -> bool:
        """Whether the body can be sent with a fixed Content-Length."""
        return self.length >= 0

    @property
    def reusable(self) -> bool:
        """Whether write() may be called more than once."""
        return True

    def write(self, sink: Any) -> None:
        """
        Write the whole body to sink, then close the sink.

        Raises:
            StreamError: If a single-use payload was already written
        """
        if self._consumed and not self.reusable:
            raise StreamError(f"{type(self).__name__} has already been consumed")
        self._consumed = True
        self._write_to(sink)

    @abstractmethod
    def _write_to(self, sink: Any) -> None:
        pass


class TextPayload(Payload):
    """In-memory text body, encoded as UTF-8."""

    def __init__(self, text: str, content_type: str = TEXT_PLAIN) -> None:
        self._data = text.encode(UTF_8)
        self._content_type = content_type

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def length(self) -> int:
        return len(self._data)

    def _write_to(self, sink: Any) -> None:
        copy(io.BytesIO(self._data), sink, close=True)


class StreamPayload(Payload):
    """
    Body read from a byte stream.

    The stream is drained and closed by write(). Without a known length
    the payload is not streamable and the connection buffers it.
    """

    def __init__(
        self,
        stream: IO[bytes],
        length: int = UNKNOWN_LENGTH,
        content_type: str = OCTET_STREAM,
    ) -> None:
        self._stream = stream
        self._length = length if length >= 0 else UNKNOWN_LENGTH
        self._content_type = content_type

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str = OCTET_STREAM) -> "StreamPayload":
        """Create a payload of known length from in-memory bytes."""
        return cls(io.BytesIO(data), len(data), content_type)

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def length(self) -> int:
        return self._length

    @property
    def reusable(self) -> bool:
        return False

    def _write_to(self, sink: Any) -> None:
        copy(self._stream, sink, close=True)


class URLEncodedForm(Payload):
    """``application/x-www-form-urlencoded`` body built from key/value pairs."""

    def __init__(self) -> None:
        self._data = ""

    def add(self, key: str, value: Any) -> "URLEncodedForm":
        """Append one field; the value is percent-encoded."""
        pair = f"{key}={encode_value(str(value))}"
        self._data = f"{self._data}&{pair}" if self._data else pair
        return self

    put = add

    @property
    def content_type(self) -> str:
        return FORM_URLENCODED

    @property
    def length(self) -> int:
        return len(self._data.encode(UTF_8))

    @property
    def streamable(self) -> bool:
        return True

    def __str__(self) -> str:
        return self._data

    def _write_to(self, sink: Any) -> None:
        copy(io.BytesIO(self._data.encode(UTF_8)), sink, close=True)


class LiteralPart:
    """A precomputed run of bytes in a multipart body."""

    def __init__(self, data: Union[str, bytes]) -> None:
        self.data = data.encode(UTF_8) if isinstance(data, str) else data

    @property
    def length(self) -> int:
        return len(self.data)

    def write(self, sink: Any) -> None:
        sink.write(self.data)


class StreamPart:
    """A file body in a multipart form; the source is closed once copied."""

    def __init__(self, source: IO[bytes], length: int = UNKNOWN_LENGTH) -> None:
        self.source = source
        self.length = length if length >= 0 else UNKNOWN_LENGTH

    def write(self, sink: Any) -> None:
        try:
            copy(self.source, sink)
        finally:
            close_quietly(self.source)


Part = Union[LiteralPart, StreamPart]


def guess_content_type(filename: str) -> str:
    """Guess a MIME type from a file name, defaulting to octet-stream."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or OCTET_STREAM


class MultipartForm(Payload):
    """
    ``multipart/form-data`` body.

    Fields and files are kept as an ordered list of parts. The total
    length is known only when every file part declared its length;
    otherwise the form is not streamable and gets buffered.
    """

    DEFAULT_BOUNDARY = "RestCoreFormBoundary7MA4YWxkTrZu0gW"

    def __init__(
        self,
        boundary: str = DEFAULT_BOUNDARY,
        serializer: Optional[JSONSerializer] = None,
    ) -> None:
        if not boundary:
            raise InvalidArgumentError("Multipart boundary must not be empty")
        self._boundary = boundary
        self._serializer = serializer or JSONSerializer()
        self._parts: List[Part] = []

    def add(self, field: str, value: Any) -> "MultipartForm":
        """
        Append a plain form field.

        Non-string values are serialized to JSON first. The value is
        percent-encoded in the body.

        Args:
            field: Form field name
            value: Field value
        """
        text = value if isinstance(value, str) else self._serializer.encode(value)
        self._parts.append(
            LiteralPart(
                f"--{self._boundary}{CRLF}"
                f'Content-Disposition: form-data; name="{field}"{CRLF}'
                f"Content-Type: {TEXT_PLAIN}; charset=UTF-8{CRLF}"
                f"{CRLF}"
                f"{encode_value(text)}{CRLF}"
            )
        )
        return self

    put = add

    def add_file(
        self,
        field: str,
        filename: str,
        content: Union[IO[bytes], bytes, str],
        length: int = UNKNOWN_LENGTH,
    ) -> "MultipartForm":
        """
        Append a file upload.

        Args:
            field: Form field name
            filename: File name reported to the server; also used to
                guess the Content-Type of the part
            content: Byte stream, bytes or text (encoded as UTF-8)
            length: Size of a stream in bytes if known; ignored for
                in-memory content, whose size is always known
        """
        if isinstance(content, str):
            content = content.encode(UTF_8)
        if isinstance(content, (bytes, bytearray)):
            length = len(content)
            content = io.BytesIO(content)

        self._parts.append(
            LiteralPart(
                f"--{self._boundary}{CRLF}"
                f'Content-Disposition: form-data; name="{field}"; filename="{filename}"{CRLF}'
                f"Content-Type: {guess_content_type(filename)}{CRLF}"
                f"Content-Transfer-Encoding: binary{CRLF}"
                f"{CRLF}"
            )
        )
        self._parts.append(StreamPart(content, length))
        self._parts.append(LiteralPart(CRLF))
        return self

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def parts(self) -> List[Part]:
        return list(self._parts)

    @property
    def content_type(self) -> str:
        return f"{MULTIPART_FORM_DATA}; boundary={self._boundary}"

    @property
    def length(self) -> int:
        total = len(self._closing())
        for part in self._parts:
            if part.length < 0:
                return UNKNOWN_LENGTH
            total += part.length
        return total

    @property
    def reusable(self) -> bool:
        return not any(isinstance(part, StreamPart) for part in self._parts)

    def _closing(self) -> bytes:
        return f"--{self._boundary}--{CRLF}".encode(UTF_8)

    def _write_to(self, sink: Any) -> None:
        try:
            for part in self._parts:
                part.write(sink)
            sink.write(self._closing())
            sink.flush()
        finally:
            close_quietly(sink)
