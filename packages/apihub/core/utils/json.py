"""JSON encoding shared by manifests, archives and config files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def _encode_extra(value: Any) -> Any:
    # Models are written with their camelCase field names.
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    return str(value)


def dumps_bytes(obj: Any) -> bytes:
    """Compact UTF-8 JSON, as the builder writes manifests."""
    return json.dumps(obj, ensure_ascii=False, default=_encode_extra).encode("utf-8")


def read_json(path: str | Path) -> dict[str, Any]:
    """Parse a JSON file whose top level must be an object.

    Raises:
        ValueError: Malformed JSON or a non-object top level
    """
    with open(path, encoding="utf-8") as f:
        content = json.load(f)
    if isinstance(content, dict):
        return content
    raise ValueError(f"Expected JSON object, got {type(content).__name__}")
