"""
JSON codec for rest_core.

JSONSerializer turns request bodies into JSON text and turns response
text or already-decoded JSON values into the shape a caller asks for.
"""

import dataclasses
import json
from typing import Any, Optional

from .exceptions import InvalidArgumentError, ProtocolError, TypeMismatchError

_PASSTHROUGH = (object, Any)


def _default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if hasattr(obj, "__dict__"):
        return vars(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JSONSerializer:
    """
    Structured-text codec backed by the json module.

    Encoding understands dataclasses and plain objects in addition to
    the JSON-native types. Decoding targets may be JSON-native types,
    ``object``/``Any`` (no conversion), dataclasses (built from a JSON
    object) or any callable taking the decoded value.
    """

    def __init__(self, indent: Optional[int] = None, sort_keys: bool = False) -> None:
        self._indent = indent
        self._sort_keys = sort_keys

    def encode(self, obj: Any) -> str:
        """
        Render an object as JSON text.

        Raises:
            InvalidArgumentError: If the object has no JSON form or is circular
        """
        try:
            return json.dumps(
                obj,
                default=_default,
                indent=self._indent,
                sort_keys=self._sort_keys,
                ensure_ascii=False,
            )
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Cannot encode {type(obj).__name__} as JSON: {e}", e
            ) from e

    def decode(self, text: str, target: Any = Any) -> Any:
        """
        Parse JSON text into the requested shape.

        Args:
            text: JSON document
            target: Shape to convert the parsed value into

        Returns:
            The converted value

        Raises:
            ProtocolError: If the text is not valid JSON
            TypeMismatchError: If the value cannot take the target shape
        """
        try:
            value = json.loads(text)
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON document: {e}", e) from e
        return self.convert(value, target)

    def convert(self, value: Any, target: Any) -> Any:
        """
        Convert an already-decoded JSON value into the target shape.

        Raises:
            TypeMismatchError: If the value cannot take the target shape
        """
        if target in _PASSTHROUGH:
            return value
        if target is str:
            return value if isinstance(value, str) else self.encode(value)
        if isinstance(target, type) and isinstance(value, target):
            # bool is an int subclass, but true is not a number here
            if not (isinstance(value, bool) and target is not bool):
                return value
        if isinstance(target, type) and dataclasses.is_dataclass(target):
            if not isinstance(value, dict):
                raise TypeMismatchError(
                    f"Cannot build {target.__name__} from {type(value).__name__}"
                )
            try:
                return target(**value)
            except TypeError as e:
                raise TypeMismatchError(f"Cannot build {target.__name__}: {e}", e) from e
        if target in (dict, list, bool) or value is None:
            raise TypeMismatchError(
                f"Cannot convert {type(value).__name__} to {_name(target)}"
            )
        try:
            return target(value)
        except (TypeError, ValueError) as e:
            raise TypeMismatchError(
                f"Cannot convert {type(value).__name__} to {_name(target)}", e
            ) from e


def _name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))
