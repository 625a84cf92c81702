"""Shared pytest fixtures for apihub ingestion tests.

The baseline fixtures describe one valid ``build`` archive: package ``pkg``
version ``2.0`` (revision 1) with one REST document, one operation and one
comparison against ``pkg@1.0@1``. Tests copy and tweak them to reach each
failure path.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from apihub.core.archive.index import ArchiveIndex
from apihub.core.archive.reader import BuildResultArchive
from apihub.core.archive.writer import BuildResultArchiveWriter
from apihub.core.catalog import InMemoryCatalog
from apihub.core.manifests.models import BuildConfig
from apihub.core.utils.json import dumps_bytes

ArchiveFactory = Callable[[dict[str, Any]], bytes]

API_YAML = b"openapi: 3.0.0\ninfo:\n  title: Pets\n"
OPERATION_DATA = b'{"operationId":"get-pets"}'

# ============================================================================
# Baseline Manifests
# ============================================================================


@pytest.fixture
def info_data() -> dict[str, Any]:
    """info.json of the baseline build."""
    return {
        "packageId": "pkg",
        "kind": "package",
        "buildType": "build",
        "version": "2.0",
        "status": "release",
        "previousVersion": "1.0",
        "previousVersionPackageId": "",
        "revision": 1,
        "previousVersionRevision": 1,
        "builderVersion": "1.4.2",
        "refs": [],
    }


@pytest.fixture
def documents_data() -> dict[str, Any]:
    """documents.json with one OpenAPI document."""
    return {
        "documents": [
            {
                "fileId": "api.yaml",
                "filename": "api.yaml",
                "slug": "api-yaml",
                "title": "Pets API",
                "type": "openapi-3-0",
                "format": "yaml",
                "operationIds": ["get-pets"],
            }
        ]
    }


@pytest.fixture
def operations_data() -> dict[str, Any]:
    """operations.json with one REST operation."""
    return {
        "operations": [
            {
                "operationId": "get-pets",
                "title": "List pets",
                "apiType": "rest",
                "dataHash": "hash-get-pets",
                "apiKind": "bwc",
                "apiAudience": "external",
                "tags": ["pets"],
                "metadata": {"path": "/pets", "method": "get", "originalPath": "/pets"},
                "searchScopes": {"request": {}},
            }
        ]
    }


@pytest.fixture
def comparisons_data() -> dict[str, Any]:
    """comparisons.json with the main comparison 2.0@1 -> 1.0@1."""
    return {
        "comparisons": [
            {
                "packageId": "pkg",
                "version": "2.0",
                "revision": 1,
                "previousVersionPackageId": "pkg",
                "previousVersion": "1.0",
                "previousVersionRevision": 1,
                "comparisonFileId": "cmp-main",
                "operationTypes": [
                    {
                        "apiType": "rest",
                        "changesSummary": {"breaking": 1},
                        "numberOfImpactedOperations": {"breaking": 1},
                    }
                ],
            }
        ]
    }


@pytest.fixture
def operation_changes_data() -> dict[str, Any]:
    """comparisons/cmp-main change file."""
    return {
        "operations": [
            {
                "operationId": "get-pets",
                "dataHash": "hash-get-pets",
                "previousOperationId": "get-pets",
                "previousDataHash": "hash-get-pets-old",
                "changeSummary": {"breaking": 1},
                "changes": [{"action": "remove", "description": "parameter removed"}],
            }
        ]
    }


@pytest.fixture
def notifications_data() -> dict[str, Any]:
    """notifications.json with one warning."""
    return {"notifications": [{"severity": 1, "message": "unused schema", "fileId": "api.yaml"}]}


@pytest.fixture
def build_config_data() -> dict[str, Any]:
    """Build config matching the baseline info."""
    return {
        "packageId": "pkg",
        "version": "2.0",
        "buildType": "build",
        "previousVersion": "1.0",
        "previousVersionPackageId": "",
        "status": "release",
        "files": [{"fileId": "api.yaml", "publish": True}],
    }


@pytest.fixture
def build_config(build_config_data: dict[str, Any]) -> BuildConfig:
    """Parsed baseline build config."""
    return BuildConfig.model_validate(build_config_data)


# ============================================================================
# Archive Fixtures
# ============================================================================


@pytest.fixture
def build_result_files(
    info_data: dict[str, Any],
    documents_data: dict[str, Any],
    operations_data: dict[str, Any],
    comparisons_data: dict[str, Any],
    operation_changes_data: dict[str, Any],
    notifications_data: dict[str, Any],
) -> dict[str, Any]:
    """Entry name -> payload of the baseline archive (dicts are JSON-encoded)."""
    return {
        "info.json": info_data,
        "documents.json": documents_data,
        "operations.json": operations_data,
        "comparisons.json": comparisons_data,
        "notifications.json": notifications_data,
        "documents/api.yaml": API_YAML,
        "operations/get-pets": OPERATION_DATA,
        "comparisons/cmp-main": operation_changes_data,
    }


@pytest.fixture
def make_archive() -> ArchiveFactory:
    """Factory zipping ``name -> bytes | dict`` into a build-result blob."""

    def _make(files: dict[str, Any]) -> bytes:
        writer = BuildResultArchiveWriter()
        for name, payload in files.items():
            if not isinstance(payload, bytes):
                payload = dumps_bytes(payload)
            writer.add_raw(name, payload)
        return writer.to_bytes()

    return _make


@pytest.fixture
def archive_bytes(make_archive: ArchiveFactory, build_result_files: dict[str, Any]) -> bytes:
    """Baseline archive blob."""
    return make_archive(build_result_files)


@pytest.fixture
def open_archive() -> Iterator[Callable[[bytes], BuildResultArchive]]:
    """Factory indexing a blob and reading every manifest.

    Indexes opened through the factory are closed at teardown.
    """
    opened: list[ArchiveIndex] = []

    def _open(data: bytes) -> BuildResultArchive:
        index = ArchiveIndex.from_bytes(data)
        opened.append(index)
        archive = BuildResultArchive(index)
        archive.read_all()
        return archive

    yield _open

    for index in opened:
        index.close()


# ============================================================================
# Catalog Fixtures
# ============================================================================


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Catalog holding the previous version ``pkg@1.0`` revision 1."""
    catalog = InMemoryCatalog()
    catalog.add_version("pkg", "1.0", revision=1, status="release")
    return catalog


# ============================================================================
# Path Fixtures
# ============================================================================


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Factory writing bytes, text or JSON-encodable data under tmp_path."""

    def _write(name: str, content: Any) -> Path:
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        elif isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(dumps_bytes(content))
        return path

    return _write
