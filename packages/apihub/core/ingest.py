"""End-to-end ingestion of uploaded archives.

Stages run in a fixed order and stop at the first failure. Nothing is
persisted here: the caller receives an ``IngestionResult`` and decides what
to store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from apihub.core.archive.index import ArchiveIndex, ManifestSlot, SourcesIndex
from apihub.core.archive.reader import BuildResultArchive
from apihub.core.catalog import CatalogLookup
from apihub.core.errors import ErrorCode, IngestError, invalid_packaged_file, raise_if_cancelled
from apihub.core.lifting.entities import (
    BuilderNotificationEntity,
    OperationComparisonEntity,
    OperationDataEntity,
    OperationEntity,
    PublishedContentDataEntity,
    PublishedContentEntity,
    TransformedContentDataEntity,
    VersionComparisonEntity,
)
from apihub.core.lifting.reader import BuildResultToEntitiesReader
from apihub.core.manifests.enums import DEFAULT_FORMAT, TRANSFORMED_BUILD_TYPES, BuildType
from apihub.core.manifests.models import BuildConfig, PackageInfo
from apihub.core.utils.logging import get_logger
from apihub.core.utils.refs import split_version_revision
from apihub.core.validation.semantic import PublishedValidator
from apihub.core.validation.structural import (
    validate_publish_build_result,
    validate_publish_sources,
)

logger = logging.getLogger(__name__)


class IngestionResult(BaseModel):
    """Entities lifted from one accepted build-result archive."""

    model_config = ConfigDict(frozen=True)

    publish_id: str
    build_type: str
    package_info: PackageInfo
    contents: list[PublishedContentEntity] = Field(default_factory=list)
    content_data: list[PublishedContentDataEntity] = Field(default_factory=list)
    operations: list[OperationEntity] = Field(default_factory=list)
    operation_data: list[OperationDataEntity] = Field(default_factory=list)
    version_comparisons: list[VersionComparisonEntity] = Field(default_factory=list)
    operation_comparisons: list[OperationComparisonEntity] = Field(default_factory=list)
    cached_comparison_ids: list[str] = Field(
        default_factory=list, description="Ids of comparisons reused from the catalog"
    )
    transformed: TransformedContentDataEntity | None = None
    notifications: list[BuilderNotificationEntity] = Field(default_factory=list)


def check_archive_size(data: bytes, max_archive_bytes: int | None) -> None:
    """Reject blobs above the configured limit.

    Raises:
        IngestError: ``InvalidPackageArchive``
    """
    if max_archive_bytes is not None and len(data) > max_archive_bytes:
        raise IngestError(
            ErrorCode.INVALID_PACKAGE_ARCHIVE,
            params={"error": f"archive size {len(data)} exceeds limit {max_archive_bytes}"},
        )


def ingest_sources(
    data: bytes, build_config: BuildConfig, *, max_archive_bytes: int | None = None
) -> SourcesIndex:
    """Index a sources archive and check it holds exactly the configured files.

    The returned index owns the zip; the caller closes it.

    Raises:
        IngestError: ``InvalidPackageArchive``, ``FileDuplicate``,
            ``FileMissing`` or ``FileRedundant``
    """
    check_archive_size(data, max_archive_bytes)
    sources = SourcesIndex.from_bytes(data)
    try:
        validate_publish_sources(sources, build_config)
    except IngestError:
        sources.close()
        raise
    logger.debug("Sources archive accepted: %d files", len(sources.files))
    return sources


def ingest_build_result(
    data: bytes,
    build_config: BuildConfig,
    catalog: CatalogLookup,
    publish_id: str,
    *,
    package_id: str | None = None,
    kind: str | None = None,
    revision: int | None = None,
    previous_version_revision: int | None = None,
    should_cancel: Callable[[], bool] | None = None,
    max_archive_bytes: int | None = None,
    default_format: str = DEFAULT_FORMAT,
) -> IngestionResult:
    """Validate a build-result archive and lift it into entities.

    Args:
        data: Zip blob uploaded by the builder
        build_config: Config the build was started with
        catalog: Read-only catalog lookups
        publish_id: Id stamped on builder notifications
        package_id: Package the upload was addressed to; checked against info
        kind: Catalog kind of the package; overrides the archive value
        revision: Revision assigned by the catalog; overrides the archive value
        previous_version_revision: Likewise for the previous version
        should_cancel: Polled between stages and entries
        max_archive_bytes: Largest accepted blob
        default_format: Format of transformed bundles whose info declares none

    Returns:
        IngestionResult with every lifted entity

    Raises:
        IngestError: On the first domain failure; catalog errors propagate
    """
    log = get_logger(__name__, publish_id=publish_id)
    check_archive_size(data, max_archive_bytes)

    with ArchiveIndex.from_bytes(data) as index:
        archive = BuildResultArchive(index)
        info = archive.read_package_info()

        if package_id is not None and info.package_id != package_id:
            raise invalid_packaged_file(
                "info",
                f"packageId:{info.package_id} provided by {ManifestSlot.INFO.value} "
                f"doesn't match packageId:{package_id} requested in path",
            )
        _apply_catalog_fields(info, kind, revision, previous_version_revision)

        validator = PublishedValidator(catalog)
        validator.validate_build_result_against_config(archive, build_config)
        raise_if_cancelled(should_cancel, "config check")

        reader = BuildResultToEntitiesReader(archive, should_cancel, default_format)
        build_type = info.build_type
        log.debug(f"Ingesting {build_type} build result for {info.package_id}@{info.version}")

        if build_type == BuildType.BUILD.value:
            result = _ingest_build(
                archive, build_config, validator, reader, publish_id, should_cancel
            )
        elif build_type == BuildType.CHANGELOG.value:
            result = _ingest_changelog(archive, validator, reader, publish_id, should_cancel)
        elif build_type in TRANSFORMED_BUILD_TYPES:
            result = _ingest_transformed(archive, reader, publish_id, should_cancel)
        else:
            raise IngestError(ErrorCode.UNKNOWN_BUILD_TYPE, params={"type": build_type})

    log.info(
        f"Accepted {build_type} build result for {info.package_id}@{info.version}: "
        f"{len(result.contents)} documents, {len(result.operations)} operations, "
        f"{len(result.version_comparisons)} comparisons"
    )
    return result


def _apply_catalog_fields(
    info: PackageInfo,
    kind: str | None,
    revision: int | None,
    previous_version_revision: int | None,
) -> None:
    if kind is not None:
        info.kind = kind
    if revision is not None:
        info.revision = revision
    if previous_version_revision is not None:
        info.previous_version_revision = previous_version_revision


def _ingest_build(
    archive: BuildResultArchive,
    build_config: BuildConfig,
    validator: PublishedValidator,
    reader: BuildResultToEntitiesReader,
    publish_id: str,
    should_cancel: Callable[[], bool] | None,
) -> IngestionResult:
    archive.read_package_documents()
    archive.read_package_operations()
    archive.read_package_comparisons()
    archive.read_builder_notifications()
    raise_if_cancelled(should_cancel, "manifest reading")

    validate_publish_build_result(
        archive.index,
        archive.package_documents,
        archive.package_operations,
        archive.package_comparisons,
    )
    raise_if_cancelled(should_cancel, "structural validation")

    validator.validate_package(archive, build_config)
    raise_if_cancelled(should_cancel, "semantic validation")

    contents, content_data = reader.read_documents()
    operations, operation_data = reader.read_operations()
    comparisons = reader.read_comparisons()
    return IngestionResult(
        publish_id=publish_id,
        build_type=archive.package_info.build_type,
        package_info=archive.package_info,
        contents=contents,
        content_data=content_data,
        operations=operations,
        operation_data=operation_data,
        version_comparisons=comparisons.version_comparisons,
        operation_comparisons=comparisons.operation_comparisons,
        cached_comparison_ids=comparisons.from_cache,
        notifications=reader.read_notifications(publish_id),
    )


def _ingest_changelog(
    archive: BuildResultArchive,
    validator: PublishedValidator,
    reader: BuildResultToEntitiesReader,
    publish_id: str,
    should_cancel: Callable[[], bool] | None,
) -> IngestionResult:
    archive.read_package_comparisons(required=True)
    archive.read_builder_notifications()
    raise_if_cancelled(should_cancel, "manifest reading")

    validate_publish_build_result(
        archive.index,
        archive.package_documents,
        archive.package_operations,
        archive.package_comparisons,
    )
    raise_if_cancelled(should_cancel, "structural validation")

    validator.validate_changes(archive)
    raise_if_cancelled(should_cancel, "semantic validation")

    comparisons = reader.read_comparisons()
    return IngestionResult(
        publish_id=publish_id,
        build_type=archive.package_info.build_type,
        package_info=archive.package_info,
        version_comparisons=comparisons.version_comparisons,
        operation_comparisons=comparisons.operation_comparisons,
        cached_comparison_ids=comparisons.from_cache,
        notifications=reader.read_notifications(publish_id),
    )


def _ingest_transformed(
    archive: BuildResultArchive,
    reader: BuildResultToEntitiesReader,
    publish_id: str,
    should_cancel: Callable[[], bool] | None,
) -> IngestionResult:
    archive.read_package_documents(required=True)
    archive.read_builder_notifications()
    raise_if_cancelled(should_cancel, "manifest reading")

    validate_publish_build_result(
        archive.index,
        archive.package_documents,
        archive.package_operations,
        archive.package_comparisons,
    )
    raise_if_cancelled(should_cancel, "structural validation")

    info = archive.package_info
    try:
        version, version_revision = split_version_revision(info.version)
    except ValueError as e:
        raise IngestError(
            ErrorCode.INVALID_REVISION_FORMAT, params={"version": info.version}, debug=str(e)
        ) from e
    info.version = version
    if version_revision:
        info.revision = version_revision

    return IngestionResult(
        publish_id=publish_id,
        build_type=info.build_type,
        package_info=info,
        transformed=reader.read_transformed(),
        notifications=reader.read_notifications(publish_id),
    )
