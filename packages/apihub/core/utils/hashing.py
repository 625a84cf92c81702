"""Deterministic checksums and composite identifiers.

All identifiers are hex-encoded MD5 digests. They are content-address keys,
not security primitives.
"""

from __future__ import annotations

import hashlib


def get_encoded_checksum(*parts: bytes) -> str:
    """Checksum over the concatenation of ``parts``.

    Args:
        *parts: Byte ranges hashed in order

    Returns:
        Hex digest

    Example:
        >>> get_encoded_checksum(b"data", b"api.yaml", b"text/plain; charset=utf-8")
    """
    digest = hashlib.md5()
    for part in parts:
        digest.update(part)
    return digest.hexdigest()


def make_version_comparison_id(
    package_id: str,
    version: str,
    revision: int,
    previous_version_package_id: str,
    previous_version: str,
    previous_version_revision: int,
) -> str:
    """Deterministic id of a version comparison from its six identity fields."""
    unique = (
        f"{package_id}@{version}@{revision}@"
        f"{previous_version_package_id}@{previous_version}@{previous_version_revision}"
    )
    return get_encoded_checksum(unique.encode("utf-8"))


def make_operation_group_id(
    package_id: str, version: str, revision: int, api_type: str, group_name: str
) -> str:
    """Deterministic id of an operation group."""
    unique = f"{package_id}@{version}@{revision}@{api_type}@{group_name}"
    return get_encoded_checksum(unique.encode("utf-8"))
