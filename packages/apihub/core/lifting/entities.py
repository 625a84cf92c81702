"""Persistence-ready records produced by lifting a build-result archive.

Metadata records and payload records are kept apart: payloads are
content-addressed by checksum or data hash so the store can deduplicate them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from apihub.core.manifests.models import (
    ChangeSummary,
    DeprecatedItem,
    OperationTypeSummary,
    PackageDocument,
)


class EntityModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class PublishedContentEntity(EntityModel):
    """Metadata of one published document."""

    package_id: str
    version: str
    revision: int
    file_id: str
    checksum: str
    index: int
    slug: str
    name: str
    path: str
    data_type: str
    format: str
    title: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    operation_ids: list[str] = Field(default_factory=list)
    filename: str


class PublishedContentDataEntity(EntityModel):
    """Payload of one published document, keyed by checksum."""

    package_id: str
    checksum: str
    media_type: str
    data: bytes


class OperationEntity(EntityModel):
    """Metadata of one operation."""

    package_id: str
    version: str
    revision: int
    operation_id: str
    data_hash: str
    deprecated: bool
    kind: str
    type: str
    title: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    deprecated_items: list[DeprecatedItem] = Field(default_factory=list)
    deprecated_info: str = ""
    previous_release_versions: list[str] = Field(default_factory=list)
    models: dict[str, str] = Field(default_factory=dict)
    custom_tags: dict[str, Any] = Field(default_factory=dict)
    api_audience: str


class OperationDataEntity(EntityModel):
    """Payload of one operation, keyed by data hash."""

    data_hash: str
    data: bytes
    search_scope: dict[str, Any] | None = None


class VersionComparisonEntity(EntityModel):
    """Comparison between two package versions.

    Only the main comparison (the one describing the published version)
    carries ``refs``: the ids of every other comparison in the archive.
    """

    package_id: str = ""
    version: str = ""
    revision: int = 0
    previous_package_id: str = ""
    previous_version: str = ""
    previous_revision: int = 0
    comparison_id: str
    operation_types: list[OperationTypeSummary] | None = None
    refs: list[str] = Field(default_factory=list)
    no_content: bool = False
    builder_version: str = ""


class OperationComparisonEntity(EntityModel):
    """Changes of one operation within a version comparison."""

    package_id: str
    version: str
    revision: int
    operation_id: str
    previous_package_id: str
    previous_version: str
    previous_revision: int
    previous_operation_id: str
    comparison_id: str
    data_hash: str
    previous_data_hash: str
    changes_summary: ChangeSummary
    changes: dict[str, Any]


class TransformedContentDataEntity(EntityModel):
    """Bundled output of a transformation build."""

    package_id: str
    version: str
    revision: int
    api_type: str
    build_type: str
    format: str
    group_id: str
    data: bytes
    documents_info: list[PackageDocument] = Field(default_factory=list)


class BuilderNotificationEntity(EntityModel):
    """Builder notification stamped with the publish it belongs to."""

    build_id: str
    severity: int
    message: str
    file_id: str
