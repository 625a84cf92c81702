"""Version reference keys and file id helpers."""

from __future__ import annotations

import posixpath


def make_version_ref_key(version: str, revision: int) -> str:
    """Canonical ``<version>@<revision>`` key, empty when either part is unset."""
    if not version or revision == 0:
        return ""
    return f"{version}@{revision}"


def make_package_version_ref_key(package_id: str, version: str) -> str:
    """Canonical ``<packageId>@<version>`` key, empty when either part is unset."""
    if not package_id or not version:
        return ""
    return f"{package_id}@{version}"


def split_version_revision(version: str) -> tuple[str, int]:
    """Split ``<version>@<revision>`` into its parts.

    A version without ``@`` has revision 0.

    Raises:
        ValueError: If the suffix is not a positive integer or more than one
            ``@`` is present
    """
    if "@" not in version:
        return version, 0
    parts = version.split("@")
    if len(parts) != 2:
        raise ValueError(f"version '{version}' has more than one '@'")
    name, revision_str = parts
    if not (revision_str.isascii() and revision_str.isdigit()):
        raise ValueError(f"revision '{revision_str}' is not a number")
    revision = int(revision_str)
    if revision <= 0:
        raise ValueError(f"revision must be positive, got {revision}")
    return name, revision


def split_file_id(file_id: str) -> tuple[str, str]:
    """Split a file id into ``(path, name)`` on the last ``/``.

    The path is normalized, so ``./specs//api.yaml`` lives in ``specs``.

    Example:
        >>> split_file_id("specs/v1/api.yaml")
        ('specs/v1', 'api.yaml')
        >>> split_file_id("api.yaml")
        ('', 'api.yaml')
    """
    path = posixpath.normpath(posixpath.dirname(file_id))
    name = "" if file_id.endswith("/") else posixpath.basename(file_id)
    if path in (".", "/", "//"):
        path = ""
    return path, name
