"""Typed models for build-result manifests and build configs.

All manifests are camelCase JSON. Unknown fields are ignored and explicit
``null`` values fall back to the field default, so a builder that omits or
nulls an optional field is accepted. Presence of required values is not
enforced at parse time: the semantic validator reports missing fields as a
domain error (see ``apihub.core.manifests.required``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ManifestModel(BaseModel):
    """Base for camelCase manifest records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Python field names checked by the semantic validator.
    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def to_json_dict(self) -> dict[str, Any]:
        """Manifest JSON as the builder writes it."""
        return self.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# info.json
# ---------------------------------------------------------------------------


class PackageRef(ManifestModel):
    """Reference from a package version to another package version.

    ``version`` uses the ``<version>@<revision>`` form.
    """

    ref_id: str = ""
    version: str = ""
    parent_ref_id: str = ""
    parent_version: str = ""
    excluded: bool = False


class OperationExternalMetadata(ManifestModel):
    """Externally supplied custom tags for one operation."""

    api_type: str = ""
    method: str = ""
    path: str = ""
    external_metadata: dict[str, Any] = Field(default_factory=dict)


class ExternalMetadata(ManifestModel):
    operations: list[OperationExternalMetadata] = Field(default_factory=list)


class PackageInfo(ManifestModel):
    """Identity and lineage of the package version in the archive.

    ``kind``, ``revision`` and ``previous_version_revision`` are normally
    assigned by the catalog; a builder may still send them.
    """

    required_fields: ClassVar[tuple[str, ...]] = ("package_id", "version", "status")

    package_id: str = ""
    kind: str = ""
    build_type: str = ""
    version: str = ""
    status: str = ""
    previous_version: str = ""
    previous_version_package_id: str = ""
    metadata: dict[str, Any] | None = None
    refs: list[PackageRef] = Field(default_factory=list)
    revision: int = 0
    previous_version_revision: int = 0
    created_by: str = ""
    builder_version: str = ""
    published_at: datetime | None = None
    migration_build: bool = False
    migration_id: str = ""
    no_changelog: bool = Field(default=False, alias="noChangeLog")
    api_type: str = ""
    group_name: str = ""
    format: str = ""
    external_metadata: ExternalMetadata | None = None


class ChangelogInfo(ManifestModel):
    """View of PackageInfo checked by changelog builds."""

    required_fields: ClassVar[tuple[str, ...]] = (
        "package_id",
        "version",
        "previous_version_package_id",
        "previous_version",
    )

    build_type: str = ""
    package_id: str = ""
    version: str = ""
    previous_version_package_id: str = ""
    previous_version: str = ""
    revision: int = 0
    previous_version_revision: int = 0
    builder_version: str = ""

    @classmethod
    def from_package_info(cls, info: PackageInfo) -> ChangelogInfo:
        return cls(
            build_type=info.build_type,
            package_id=info.package_id,
            version=info.version,
            previous_version_package_id=info.previous_version_package_id,
            previous_version=info.previous_version,
            revision=info.revision,
            previous_version_revision=info.previous_version_revision,
            builder_version=info.builder_version,
        )


# ---------------------------------------------------------------------------
# documents.json
# ---------------------------------------------------------------------------


class PackageDocument(ManifestModel):
    required_fields: ClassVar[tuple[str, ...]] = (
        "file_id",
        "type",
        "slug",
        "title",
        "operation_ids",
        "filename",
    )

    file_id: str = ""
    filename: str = ""
    slug: str = ""
    title: str = ""
    type: str = ""
    format: str = ""
    description: str = ""
    version: str = ""
    operation_ids: list[str] | None = None
    metadata: dict[str, Any] | None = None


class PackageDocuments(ManifestModel):
    documents: list[PackageDocument] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# operations.json
# ---------------------------------------------------------------------------


class DeprecatedItem(ManifestModel):
    previous_release_versions: list[str] = Field(
        default_factory=list, alias="deprecatedInPreviousVersions"
    )
    declaration_json_paths: list[list[Any]] = Field(default_factory=list)
    description: str = ""
    hash: str = ""
    tolerant_hash: str = ""
    deprecated_info: str = ""


class Operation(ManifestModel):
    required_fields: ClassVar[tuple[str, ...]] = (
        "operation_id",
        "title",
        "api_type",
        "data_hash",
        "api_kind",
        "metadata",
        "search_scopes",
        "api_audience",
    )

    operation_id: str = ""
    data_hash: str = ""
    api_type: str = ""
    api_kind: str = ""
    api_audience: str = ""
    title: str = ""
    deprecated: bool = False
    deprecated_items: list[DeprecatedItem] = Field(default_factory=list)
    deprecated_info: str = ""
    previous_release_versions: list[str] = Field(
        default_factory=list, alias="deprecatedInPreviousVersions"
    )
    models: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    search_scopes: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None


class PackageOperations(ManifestModel):
    operations: list[Operation] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# comparisons.json and comparisons/<comparisonFileId>
# ---------------------------------------------------------------------------


class ChangeSummary(ManifestModel):
    breaking: int = 0
    semi_breaking: int = Field(default=0, alias="semi-breaking")
    deprecated: int = 0
    non_breaking: int = Field(default=0, alias="non-breaking")
    annotation: int = 0
    unclassified: int = 0


class ApiAudienceTransition(ManifestModel):
    current_audience: str = ""
    previous_audience: str = ""
    operations_count: int = 0


class OperationTypeSummary(ManifestModel):
    """Per-API-type change totals of one comparison."""

    required_fields: ClassVar[tuple[str, ...]] = ("api_type",)

    api_type: str = ""
    changes_summary: ChangeSummary = Field(default_factory=ChangeSummary)
    number_of_impacted_operations: ChangeSummary = Field(default_factory=ChangeSummary)
    api_audience_transitions: list[ApiAudienceTransition] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class Comparison(ManifestModel):
    """One version-to-version comparison produced by the builder."""

    required_fields: ClassVar[tuple[str, ...]] = ("operation_types",)

    package_id: str = ""
    version: str = ""
    revision: int = 0
    previous_version_package_id: str = ""
    previous_version: str = ""
    previous_version_revision: int = 0
    operation_types: list[OperationTypeSummary] | None = None
    from_cache: bool = False
    comparison_file_id: str = ""


class PackageComparisons(ManifestModel):
    comparisons: list[Comparison] = Field(default_factory=list)


class OperationComparison(ManifestModel):
    """One changed operation inside a comparison file."""

    operation_id: str = ""
    previous_operation_id: str = ""
    data_hash: str = ""
    previous_data_hash: str = ""
    change_summary: ChangeSummary = Field(default_factory=ChangeSummary)
    changes: list[Any] = Field(default_factory=list)
    json_path: list[str] = Field(default_factory=list)
    action: str = ""
    severity: str = ""
    metadata: dict[str, Any] | None = None


class PackageOperationChanges(ManifestModel):
    operation_comparisons: list[OperationComparison] = Field(
        default_factory=list, alias="operations"
    )


# ---------------------------------------------------------------------------
# notifications.json
# ---------------------------------------------------------------------------


class BuilderNotification(ManifestModel):
    severity: int = 0
    message: str = ""
    file_id: str = ""


class BuilderNotifications(ManifestModel):
    notifications: list[BuilderNotification] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Build config (what the build was asked to produce)
# ---------------------------------------------------------------------------


class BuildConfigFile(ManifestModel):
    """Source file entry of a build config."""

    file_id: str = ""
    slug: str = ""
    index: int = 0
    publish: bool | None = None
    labels: list[str] = Field(default_factory=list)
    blob_id: str = ""
    x_api_kind: str = ""


class BuildConfig(ManifestModel):
    package_id: str = ""
    version: str = ""
    build_type: str = ""
    previous_version: str = ""
    previous_version_package_id: str = ""
    status: str = ""
    refs: list[PackageRef] = Field(default_factory=list)
    files: list[BuildConfigFile] = Field(default_factory=list)
    publish_id: str = ""
    created_by: str = ""
    no_changelog: bool = Field(default=False, alias="noChangeLog")
    migration_build: bool = False
    migration_id: str = ""
    api_type: str = ""
    group_name: str = ""
    format: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
