"""Lifting of a validated build-result archive into entity records.

``BuildResultToEntitiesReader`` assumes the archive already passed the
structural and semantic checks. Documents and operations whose file is not
in the archive are skipped. Output depends only on the archive bytes, so
ingesting the same archive twice yields equal records.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, NamedTuple

from apihub.core.archive.reader import BuildResultArchive
from apihub.core.archive.writer import zip_files
from apihub.core.errors import (
    invalid_archived_file,
    invalid_packaged_file,
    raise_if_cancelled,
)
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
from apihub.core.lifting.sniffing import detect_content_type
from apihub.core.manifests.enums import DEFAULT_FORMAT, ApiType, BuildType
from apihub.core.manifests.metadata import Metadata, MetadataTypeError
from apihub.core.manifests.models import (
    Operation,
    OperationComparison,
    PackageDocument,
    PackageOperationChanges,
)
from apihub.core.utils.hashing import (
    get_encoded_checksum,
    make_operation_group_id,
    make_version_comparison_id,
)
from apihub.core.utils.logging import log_performance
from apihub.core.utils.refs import split_file_id
from apihub.core.validation.semantic import is_main_comparison

logger = logging.getLogger(__name__)

ExternalMetadataKey = tuple[str, str, str]


class ComparisonEntities(NamedTuple):
    """Result of lifting comparisons."""

    version_comparisons: list[VersionComparisonEntity]
    operation_comparisons: list[OperationComparisonEntity]
    from_cache: list[str]


class BuildResultToEntitiesReader:
    """Builds entity records from a parsed build-result archive.

    Args:
        archive: Archive with its manifests already read
        should_cancel: Polled between entries; a true answer aborts with
            ``IngestionCancelled``
        default_format: Format of transformed bundles whose info declares none

    Example:
        >>> reader = BuildResultToEntitiesReader(archive)
        >>> contents, payloads = reader.read_documents()
        >>> comparisons = reader.read_comparisons()
    """

    def __init__(
        self,
        archive: BuildResultArchive,
        should_cancel: Callable[[], bool] | None = None,
        default_format: str = DEFAULT_FORMAT,
    ) -> None:
        self.archive = archive
        self.should_cancel = should_cancel
        self.default_format = default_format

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @log_performance
    def read_documents(
        self,
    ) -> tuple[list[PublishedContentEntity], list[PublishedContentDataEntity]]:
        """Lift documents into content and content-data records.

        Raises:
            IngestError: ``InvalidPackageArchivedFile`` if a file cannot be
                decompressed, ``InvalidPackagedFile`` if ``metadata.tags`` is
                not an array of objects
        """
        info = self.archive.package_info
        contents: list[PublishedContentEntity] = []
        payloads: list[PublishedContentDataEntity] = []

        for i, document in enumerate(self.archive.package_documents.documents):
            raise_if_cancelled(self.should_cancel, "documents")
            data = self._read_document_file(document)
            if data is None:
                continue

            media_type = detect_content_type(data)
            checksum = get_encoded_checksum(
                data, document.file_id.encode("utf-8"), media_type.encode("utf-8")
            )
            path, name = split_file_id(document.file_id)
            metadata = Metadata(document.metadata)

            index = i
            if info.migration_build:
                index = metadata.get_int_value("index")

            contents.append(
                PublishedContentEntity(
                    package_id=info.package_id,
                    version=info.version,
                    revision=info.revision,
                    file_id=document.file_id,
                    checksum=checksum,
                    index=index,
                    slug=document.slug,
                    name=name,
                    path=path,
                    data_type=document.type,
                    format=document.format,
                    title=document.title,
                    metadata=_document_metadata(document, metadata),
                    operation_ids=document.operation_ids or [],
                    filename=document.filename,
                )
            )
            payloads.append(
                PublishedContentDataEntity(
                    package_id=info.package_id,
                    checksum=checksum,
                    media_type=media_type,
                    data=data,
                )
            )

        return contents, payloads

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @log_performance
    def read_operations(self) -> tuple[list[OperationEntity], list[OperationDataEntity]]:
        """Lift operations into operation and operation-data records.

        ``metadata.customTags`` is merged with external metadata matched on
        ``(apiType, lowercased method, originalPath)``.

        Raises:
            IngestError: ``InvalidPackageArchivedFile`` if a file cannot be
                decompressed, ``InvalidPackagedFile`` if ``customTags`` is not
                an object
        """
        info = self.archive.package_info
        external = self._external_metadata_by_key()
        operations: list[OperationEntity] = []
        payloads: list[OperationDataEntity] = []

        for operation in self.archive.package_operations.operations:
            raise_if_cancelled(self.should_cancel, "operations")
            handle = self.archive.index.operation_files.get(operation.operation_id)
            if handle is None:
                continue
            data = self.archive.reader.read_bytes(handle, operation.operation_id)

            source = Metadata(operation.metadata)
            metadata = _operation_metadata(operation, source)
            custom_tags = _custom_tags(source)

            key = (
                operation.api_type,
                metadata.get("method", "").lower(),
                source.get_string_value("originalPath"),
            )
            external_tags = external.get(key)
            if external_tags:
                custom_tags.update(external_tags)

            operations.append(
                OperationEntity(
                    package_id=info.package_id,
                    version=info.version,
                    revision=info.revision,
                    operation_id=operation.operation_id,
                    data_hash=operation.data_hash,
                    deprecated=operation.deprecated,
                    kind=operation.api_kind,
                    type=operation.api_type,
                    title=operation.title,
                    metadata=metadata,
                    deprecated_items=operation.deprecated_items,
                    deprecated_info=operation.deprecated_info,
                    previous_release_versions=operation.previous_release_versions,
                    models=operation.models,
                    custom_tags=custom_tags,
                    api_audience=operation.api_audience,
                )
            )
            payloads.append(
                OperationDataEntity(
                    data_hash=operation.data_hash,
                    data=data,
                    search_scope=operation.search_scopes,
                )
            )

        return operations, payloads

    def _external_metadata_by_key(self) -> dict[ExternalMetadataKey, dict[str, Any]]:
        external = self.archive.package_info.external_metadata
        if external is None:
            return {}
        return {
            (meta.api_type, meta.method.lower(), meta.path): meta.external_metadata
            for meta in external.operations
        }

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def read_comparisons(self) -> ComparisonEntities:
        """Lift comparisons and their operation change files.

        Cached comparisons are returned as ids only. The last comparison of
        the published version is the main one and gets the ids of every other
        comparison as ``refs``; when that one is cached no emitted comparison
        carries refs.

        Raises:
            IngestError: ``InvalidPackageArchivedFile`` if a change file cannot
                be read or decoded, ``InvalidPackagedFile`` for an invalid
                change row or when no comparison matches the published version
        """
        info = self.archive.package_info
        version_comparisons: list[VersionComparisonEntity] = []
        operation_comparisons: list[OperationComparisonEntity] = []
        from_cache: list[str] = []
        main_position: int | None = None
        main_found = False
        refs: list[str] = []

        for comparison in self.archive.package_comparisons.comparisons:
            raise_if_cancelled(self.should_cancel, "comparisons")
            main = bool(comparison.version) and is_main_comparison(info, comparison)

            identity: dict[str, Any] = {}
            if comparison.version:
                identity.update(
                    package_id=comparison.package_id,
                    version=comparison.version,
                    revision=info.revision if main else comparison.revision,
                )
            if comparison.previous_version:
                identity.update(
                    previous_package_id=comparison.previous_version_package_id,
                    previous_version=comparison.previous_version,
                    previous_revision=comparison.previous_version_revision,
                )
            entity = VersionComparisonEntity(
                comparison_id=_comparison_id(identity),
                operation_types=comparison.operation_types,
                builder_version=info.builder_version,
                **identity,
            )

            if main:
                main_found = True
            else:
                refs.append(entity.comparison_id)

            if comparison.from_cache:
                if main:
                    main_position = None
                from_cache.append(entity.comparison_id)
                continue

            if main:
                main_position = len(version_comparisons)
            version_comparisons.append(entity)

            if not comparison.comparison_file_id:
                continue
            handle = self.archive.index.comparison_files.get(comparison.comparison_file_id)
            if handle is None:
                continue
            changes = self.archive.reader.read_json(
                handle,
                PackageOperationChanges,
                comparison.comparison_file_id,
                error="failed to unmarshal operation changes",
            )
            for row in changes.operation_comparisons:
                error = validate_operation_comparison(row)
                if error:
                    raise invalid_packaged_file(comparison.comparison_file_id, error)
                operation_comparisons.append(_operation_comparison(entity, row))

        if version_comparisons and not main_found:
            raise invalid_packaged_file(
                "comparisons", "comparison for a version specified in package info not found"
            )
        if main_position is not None:
            main_entity = version_comparisons[main_position]
            version_comparisons[main_position] = main_entity.model_copy(update={"refs": refs})

        return ComparisonEntities(version_comparisons, operation_comparisons, from_cache)

    # ------------------------------------------------------------------
    # Transformed documents
    # ------------------------------------------------------------------

    def read_transformed(self) -> TransformedContentDataEntity:
        """Bundle documents of a transformation build.

        A ``mergedSpecification`` build yields its single document as is;
        other build types yield a zip of every document under its filename.

        Raises:
            IngestError: ``InvalidPackageArchivedFile`` if a merged build does
                not have exactly one document or a file cannot be read
        """
        info = self.archive.package_info
        documents = self.archive.package_documents.documents

        if info.build_type == BuildType.MERGED_SPECIFICATION.value:
            if len(documents) != 1:
                raise invalid_archived_file(
                    "documents",
                    f"expected exactly 1 document for '{info.build_type}' buildType, "
                    f"documents: {len(documents)}",
                )
            data = self._read_document_file(documents[0]) or b""
        else:
            files: dict[str, bytes] = {}
            for document in documents:
                raise_if_cancelled(self.should_cancel, "transformed documents")
                content = self._read_document_file(document)
                if content is not None:
                    files[document.filename] = content
            data = zip_files(files)

        return TransformedContentDataEntity(
            package_id=info.package_id,
            version=info.version,
            revision=info.revision,
            api_type=info.api_type,
            build_type=info.build_type,
            format=info.format or self.default_format,
            group_id=make_operation_group_id(
                info.package_id, info.version, info.revision, info.api_type, info.group_name
            ),
            data=data,
            documents_info=list(documents),
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def read_notifications(self, publish_id: str) -> list[BuilderNotificationEntity]:
        return [
            BuilderNotificationEntity(
                build_id=publish_id,
                severity=n.severity,
                message=n.message,
                file_id=n.file_id,
            )
            for n in self.archive.builder_notifications.notifications
        ]

    def _read_document_file(self, document: PackageDocument) -> bytes | None:
        handle = self.archive.index.document_files.get(document.filename)
        if handle is None:
            return None
        return self.archive.reader.read_bytes(handle, document.slug)


def validate_operation_comparison(row: OperationComparison) -> str:
    """Consistency of ids and hashes in one change row.

    Returns:
        Error text, empty when the row is valid
    """
    if not row.operation_id:
        if row.data_hash:
            return (
                "invalid operation comparison: operationId is empty, "
                f"but dataHash is set to {row.data_hash}"
            )
    elif not row.data_hash:
        return (
            f"invalid operation comparison: operationId is set to {row.operation_id}, "
            "but dataHash is empty"
        )

    if not row.previous_operation_id:
        if row.previous_data_hash:
            return (
                "invalid operation comparison: previousOperationId is empty, "
                f"but previousDataHash is set to {row.previous_data_hash}"
            )
        if not row.operation_id:
            return (
                "invalid operation comparison: both operationId and previousOperationId "
                f"are empty, jsonPath={row.json_path}"
            )
    elif not row.previous_data_hash:
        return (
            "invalid operation comparison: previousOperationId is set to "
            f"{row.previous_operation_id}, but previousDataHash is empty"
        )
    return ""


def _comparison_id(identity: dict[str, Any]) -> str:
    return make_version_comparison_id(
        identity.get("package_id", ""),
        identity.get("version", ""),
        identity.get("revision", 0),
        identity.get("previous_package_id", ""),
        identity.get("previous_version", ""),
        identity.get("previous_revision", 0),
    )


def _operation_comparison(
    parent: VersionComparisonEntity, row: OperationComparison
) -> OperationComparisonEntity:
    return OperationComparisonEntity(
        package_id=parent.package_id,
        version=parent.version,
        revision=parent.revision,
        operation_id=row.operation_id,
        previous_package_id=parent.previous_package_id,
        previous_version=parent.previous_version,
        previous_revision=parent.previous_revision,
        previous_operation_id=row.previous_operation_id,
        comparison_id=parent.comparison_id,
        data_hash=row.data_hash,
        previous_data_hash=row.previous_data_hash,
        changes_summary=row.change_summary,
        changes={"changes": row.changes},
    )


def _document_metadata(document: PackageDocument, source: Metadata) -> dict[str, Any]:
    """Projection of document metadata stored with published content."""
    metadata: dict[str, Any] = {}
    if document.description:
        metadata["description"] = document.description
    if document.version:
        metadata["version"] = document.version
    if not len(source):
        return metadata

    labels = source.get_string_array("labels")
    if labels:
        metadata["labels"] = labels
    blob_id = source.get_string_value("blobId")
    if blob_id:
        metadata["blobId"] = blob_id
    for key in ("info", "externalDocs"):
        value = source.get_object(key)
        if value is not None:
            metadata[key] = value
    try:
        tags = source.get_object_array("tags")
    except MetadataTypeError as e:
        raise invalid_packaged_file(document.slug, str(e)) from e
    metadata["tags"] = tags
    return metadata


def _rest_metadata(operation: Operation, source: Metadata) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    if operation.tags:
        metadata["tags"] = list(operation.tags)
    metadata["path"] = source.get_string_value("path")
    metadata["method"] = source.get_string_value("method")
    return metadata


def _graphql_metadata(operation: Operation, source: Metadata) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    if operation.tags:
        metadata["tags"] = list(operation.tags)
    metadata["type"] = source.get_string_value("type")
    metadata["method"] = source.get_string_value("method")
    return metadata


def _protobuf_metadata(operation: Operation, source: Metadata) -> dict[str, Any]:
    return {
        "type": source.get_string_value("type"),
        "method": source.get_string_value("method"),
    }


_METADATA_BUILDERS = {
    ApiType.REST.value: _rest_metadata,
    ApiType.GRAPHQL.value: _graphql_metadata,
    ApiType.PROTOBUF.value: _protobuf_metadata,
}


def _operation_metadata(operation: Operation, source: Metadata) -> dict[str, Any]:
    builder = _METADATA_BUILDERS.get(operation.api_type)
    if builder is None:
        return {}
    return builder(operation, source)


def _custom_tags(source: Metadata) -> dict[str, Any]:
    try:
        return source.get_map_string_to_any("customTags")
    except MetadataTypeError as e:
        raise invalid_packaged_file(
            "operations.json",
            f"Unable to process field 'customTags' value '{source.get_object('customTags')}': {e}",
        ) from e

