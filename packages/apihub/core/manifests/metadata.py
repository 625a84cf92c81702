"""Typed accessor over free-form manifest metadata.

Documents and operations carry a JSON object ``metadata`` whose shape the
builder owns. ``Metadata`` extracts typed views from it; lenient getters
return an empty value on a type mismatch while strict getters raise
``MetadataTypeError`` so the caller can turn it into a domain error.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class MetadataTypeError(ValueError):
    """A metadata value does not have the requested shape."""


_JSON_TYPES = {
    type(None): "null",
    bool: "boolean",
    int: "number",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
}


def _json_type(value: Any) -> str:
    return _JSON_TYPES.get(type(value), type(value).__name__)


class Metadata:
    """Read-only typed view of a ``str -> Any`` mapping."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: Mapping[str, Any] = data or {}

    def __len__(self) -> int:
        return len(self._data)

    def get_string_value(self, key: str) -> str:
        value = self._data.get(key)
        return value if isinstance(value, str) else ""

    def get_int_value(self, key: str) -> int:
        """Integer value; JSON numbers decoded as float are truncated."""
        value = self._data.get(key)
        if isinstance(value, bool):
            return 0
        if isinstance(value, (int, float)):
            return int(value)
        return 0

    def get_string_array(self, key: str) -> list[str]:
        value = self._data.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def get_object(self, key: str) -> Any:
        """Raw value, ``None`` when absent."""
        return self._data.get(key)

    def get_object_array(self, key: str) -> list[dict[str, Any]]:
        """List of JSON objects, empty when the key is absent.

        Raises:
            MetadataTypeError: If the value is null or not a list of objects
        """
        if key not in self._data:
            return []
        value = self._data[key]
        if not isinstance(value, list):
            raise MetadataTypeError(
                f"field '{key}' has type {_json_type(value)}, expected array of objects"
            )
        for i, item in enumerate(value):
            if not isinstance(item, dict):
                raise MetadataTypeError(
                    f"field '{key}' item {i} has type {_json_type(item)}, expected object"
                )
        return list(value)

    def get_map_string_to_any(self, key: str) -> dict[str, Any]:
        """Copy of a JSON object value, empty when the key is absent.

        Raises:
            MetadataTypeError: If the value is null or not an object
        """
        if key not in self._data:
            return {}
        value = self._data[key]
        if not isinstance(value, dict):
            raise MetadataTypeError(
                f"field '{key}' has type {_json_type(value)}, expected object"
            )
        return dict(value)

    def get_path(self) -> str:
        return self.get_string_value("path")

    def get_method(self) -> str:
        return self.get_string_value("method")

    def get_type(self) -> str:
        return self.get_string_value("type")
