"""
HTTP responses for rest_core.

A Response carries the status line metadata and at most one
materialized result. Which kind of result it holds is decided by the
execution engine from the response content type; as_type() then
converts it on demand to the shape the caller asks for.
"""

import io
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import TypeMismatchError
from .serializer import JSONSerializer
from .streams import ConnectionStream

STREAM_SHAPES = (ConnectionStream, typing.BinaryIO, typing.IO, io.IOBase)


class ResultKind(Enum):
    """What a Response holds."""
    NONE = "none"      # Non 2xx/3xx status, nothing materialized
    TEXT = "text"      # Decoded text body
    JSON = "json"      # Decoded JSON value
    STREAM = "stream"  # Open ConnectionStream, owned by the caller


def _name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))


@dataclass(frozen=True)
class Response:
    """
    Immutable HTTP response representation.

    The status fields are always populated. ``result`` holds the value
    for ``kind``: None, a str, a decoded JSON value or a
    ConnectionStream. A streaming response keeps its connection open
    until the stream (or the response) is closed.
    """

    code: int
    message: str = ""
    content_type: str = ""
    length: int = -1
    headers: Mapping[str, str] = field(default_factory=dict)
    kind: ResultKind = ResultKind.NONE
    result: Any = None
    serializer: JSONSerializer = field(default_factory=JSONSerializer, repr=False)

    @property
    def has_result(self) -> bool:
        """Does this response contain a materialized result?"""
        return self.kind is not ResultKind.NONE

    @property
    def is_streaming(self) -> bool:
        return self.kind is ResultKind.STREAM

    @property
    def ok(self) -> bool:
        """True for 2xx and 3xx status codes."""
        return 200 <= self.code < 400

    def as_type(self, target: Any) -> Any:
        """
        Convert the result to the requested shape.

        Text results can be returned as ``str`` or parsed as JSON into
        any target. JSON results can be rendered back to ``str``,
        narrowed to ``dict`` or ``list``, returned unchanged for
        ``object``/``Any``, or converted into any other target by the
        serializer. Streaming results can only be returned as a stream.

        Args:
            target: The requested shape

        Returns:
            The converted result, or None when there is no result

        Raises:
            TypeMismatchError: If the result cannot take that shape
        """
        if self.kind is ResultKind.NONE:
            return None

        if self.kind is ResultKind.STREAM:
            if target in STREAM_SHAPES:
                return self.result
            raise TypeMismatchError(
                f"Cannot convert streaming response to [{_name(target)}]"
            )

        if self.kind is ResultKind.JSON:
            if target is str:
                return self.serializer.encode(self.result)
            if target in (dict, list):
                if not isinstance(self.result, target):
                    raise TypeMismatchError(
                        f"JSON {type(self.result).__name__} is not a {target.__name__}"
                    )
                return self.result
            return self.serializer.convert(self.result, target)

        if target is str:
            return self.result
        return self.serializer.decode(self.result, target)

    def as_string(self) -> Optional[str]:
        return self.as_type(str)

    def as_json_object(self) -> Optional[Dict[str, Any]]:
        return self.as_type(dict)

    def as_json_array(self) -> Optional[List[Any]]:
        return self.as_type(list)

    def as_stream(self) -> Optional[ConnectionStream]:
        return self.as_type(ConnectionStream)

    def close(self) -> None:
        """Release the connection of a streaming response; no-op otherwise."""
        if self.kind is ResultKind.STREAM:
            self.result.close()

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
