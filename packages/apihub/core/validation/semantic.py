"""Cross-manifest validation of a parsed build-result archive.

``PublishedValidator`` runs after the structural check. Every stage fails
fast with an ``IngestError``; exceptions raised by the catalog propagate
unchanged.
"""

from __future__ import annotations

import logging

from apihub.core.archive.reader import BuildResultArchive
from apihub.core.catalog import CatalogLookup, CatalogVersion
from apihub.core.errors import (
    ErrorCode,
    IngestError,
    comparison_field_error,
    invalid_packaged_file,
)
from apihub.core.manifests.enums import (
    DEFAULT_FORMAT,
    GRAPHQL_OPERATION_TYPES,
    GRAPHQL_SEARCH_SCOPES,
    PROTOBUF_OPERATION_TYPES,
    REST_SEARCH_SCOPES,
    ApiAudience,
    ApiType,
    PackageKind,
    VersionStatus,
    is_valid_document_type,
)
from apihub.core.manifests.metadata import Metadata
from apihub.core.manifests.models import (
    BuildConfig,
    ChangelogInfo,
    Comparison,
    ManifestModel,
    Operation,
    PackageInfo,
)
from apihub.core.manifests.required import missing_required_fields
from apihub.core.utils.hashing import make_version_comparison_id
from apihub.core.utils.logging import log_performance
from apihub.core.utils.refs import make_package_version_ref_key, make_version_ref_key

logger = logging.getLogger(__name__)


def require_fields(model: ManifestModel, file: str) -> None:
    """Raise ``InvalidPackagedFile`` naming every missing required value."""
    missing = missing_required_fields(model)
    if missing:
        detail = IngestError(ErrorCode.REQUIRED_PARAMS_MISSING, params={"params": ", ".join(missing)})
        raise invalid_packaged_file(file, detail.render())


def is_main_comparison(info: PackageInfo, comparison: Comparison) -> bool:
    """Whether ``comparison`` describes the version being published.

    Revision 0 on the comparison matches any revision.
    """
    return (
        comparison.version != ""
        and (comparison.revision == info.revision or comparison.revision == 0)
        and comparison.version == info.version
        and comparison.package_id == info.package_id
    )


def _lookup_ref(version: str, revision: int) -> str:
    return make_version_ref_key(version, revision) or version


def _operation_error(operation: Operation, error: str) -> IngestError:
    return invalid_packaged_file(
        "operations",
        f"object with operationId = {operation.operation_id} is incorrect: {error}",
    )


class PublishedValidator:
    """Semantic checks for build, changelog and transformed archives.

    Args:
        catalog: Read-only catalog used for version and comparison lookups

    Example:
        >>> validator = PublishedValidator(InMemoryCatalog())
        >>> validator.validate_build_result_against_config(archive, build_config)
        >>> validator.validate_package(archive, build_config)
    """

    def __init__(self, catalog: CatalogLookup) -> None:
        self.catalog = catalog

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @log_performance
    def validate_package(self, archive: BuildResultArchive, build_config: BuildConfig) -> None:
        """Validate a ``build`` archive.

        Stages run in order: package info, kind against contents, documents,
        operations, comparisons, notifications.

        Raises:
            IngestError: On the first failed rule
        """
        self._validate_package_info(archive, build_config)
        self._validate_kind(archive)
        self._validate_documents(archive, build_config)
        self._validate_operations(archive)
        self._validate_comparisons(archive)
        require_fields(archive.builder_notifications, "notifications")

    def validate_build_result_against_config(
        self, archive: BuildResultArchive, build_config: BuildConfig
    ) -> None:
        """Check identity fields of ``info.json`` against the build config.

        An empty info format is accepted when the config asks for the default
        JSON format.

        Raises:
            IngestError: ``PackageForBuildConfigDiscrepancy`` naming the first
                mismatching parameter
        """
        info = archive.package_info
        pairs = (
            ("packageId", build_config.package_id, info.package_id),
            ("version", build_config.version, info.version),
            ("status", build_config.status, info.status),
            ("previousVersion", build_config.previous_version, info.previous_version),
            (
                "previousVersionPackageId",
                build_config.previous_version_package_id,
                info.previous_version_package_id,
            ),
            ("buildType", build_config.build_type, info.build_type),
        )
        for param, expected, actual in pairs:
            if expected != actual:
                raise _discrepancy(param, expected, actual)

        if info.format != build_config.format:
            if info.format != "" or build_config.format != DEFAULT_FORMAT:
                raise _discrepancy("format", build_config.format, info.format)

    @log_performance
    def validate_changes(self, archive: BuildResultArchive) -> None:
        """Validate a ``changelog`` archive.

        Comparison identities are checked as for a build, but referenced
        versions must be active.

        Raises:
            IngestError: On the first failed rule
        """
        info = archive.package_info
        require_fields(ChangelogInfo.from_package_info(info), "info")
        if info.revision == 0:
            raise invalid_packaged_file(
                "info", "version revision cannot be empty with changelog buildType"
            )
        if info.previous_version_revision == 0:
            raise invalid_packaged_file(
                "info", "previous version revision cannot be empty with changelog buildType"
            )

        comparisons = archive.package_comparisons
        if not comparisons.comparisons:
            raise invalid_packaged_file(
                "comparisons", "at least one comparison required for changelog buildType"
            )
        require_fields(comparisons, "comparisons")

        for comparison in comparisons.comparisons:
            _validate_comparison_fields(comparison)
            self._check_comparison_versions(info, comparison, include_deleted=False)
            self._check_cached_comparison(comparison)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate_package_info(self, archive: BuildResultArchive, build_config: BuildConfig) -> None:
        info = archive.package_info
        require_fields(info, "info")
        try:
            VersionStatus.parse(info.status)
        except ValueError as e:
            raise invalid_packaged_file("info", str(e)) from e

        if info.previous_version_package_id == info.package_id:
            raise IngestError(
                ErrorCode.INVALID_PREVIOUS_VERSION_PACKAGE,
                params={
                    "previousVersionPackageId": info.previous_version_package_id,
                    "packageId": info.package_id,
                },
            )
        if info.version == info.previous_version and not info.previous_version_package_id:
            raise IngestError(
                ErrorCode.VERSION_IS_EQUAL_TO_PREVIOUS_VERSION,
                params={"version": info.version, "previousVersion": info.previous_version},
            )

        packaged_refs = {(ref.ref_id, ref.version) for ref in info.refs}
        for ref in build_config.refs:
            if (ref.ref_id, ref.version) not in packaged_refs:
                raise IngestError(
                    ErrorCode.REFERENCE_MISSING_FROM_PACKAGE,
                    params={"refId": ref.ref_id, "version": ref.version},
                )

        if info.migration_build:
            if self.catalog.get_version(info.package_id, info.version) is None:
                raise IngestError(
                    ErrorCode.PUBLISHED_PACKAGE_VERSION_NOT_FOUND,
                    params={"version": info.version, "packageId": info.package_id},
                )

    def _validate_kind(self, archive: BuildResultArchive) -> None:
        documents = archive.package_documents.documents
        info = archive.package_info
        if not documents and not info.refs:
            raise IngestError(ErrorCode.EMPTY_DATA_FOR_PUBLISH)
        if documents and info.kind == PackageKind.GROUP.value:
            raise invalid_packaged_file(
                "documents", "cannot publish package with kind 'group' which contains documents"
            )
        if info.kind == PackageKind.PACKAGE.value and (info.refs or not documents):
            raise invalid_packaged_file(
                "refs", "cannot publish package with kind 'package' with refs or without documents"
            )

    def _validate_documents(self, archive: BuildResultArchive, build_config: BuildConfig) -> None:
        documents = archive.package_documents
        require_fields(documents, "documents")
        for document in documents.documents:
            if not is_valid_document_type(document.type):
                raise IngestError(ErrorCode.INVALID_DOCUMENT_TYPE, params={"type": document.type})

        packaged = {document.file_id for document in documents.documents}
        for file in build_config.files:
            if file.publish and file.file_id not in packaged:
                raise IngestError(
                    ErrorCode.DOCUMENT_MISSING_FROM_PACKAGE, params={"fileId": file.file_id}
                )

    def _validate_operations(self, archive: BuildResultArchive) -> None:
        operations = archive.package_operations
        require_fields(operations, "operations")
        for operation in operations.operations:
            try:
                api_type = ApiType.parse(operation.api_type)
            except ValueError as e:
                raise _operation_error(operation, str(e)) from e
            if not ApiAudience.is_valid(operation.api_audience):
                raise invalid_packaged_file(
                    "operations",
                    f"object with operationId = {operation.operation_id} "
                    f"has incorrect api_audience: {operation.api_audience}",
                )
            _OPERATION_CHECKS[api_type](operation)

    def _validate_comparisons(self, archive: BuildResultArchive) -> None:
        comparisons = archive.package_comparisons
        require_fields(comparisons, "comparisons")
        info = archive.package_info

        if info.no_changelog and comparisons.comparisons:
            raise IngestError(ErrorCode.CHANGES_ARE_NOT_EMPTY)

        if not info.no_changelog and info.previous_version and not comparisons.comparisons:
            self._check_previous_version_deleted(info)

        excluded_refs = {
            make_package_version_ref_key(ref.ref_id, ref.version)
            for ref in info.refs
            if ref.excluded
        }
        excluded_refs.discard("")

        for comparison in comparisons.comparisons:
            key = make_package_version_ref_key(
                comparison.package_id,
                make_version_ref_key(comparison.version, comparison.revision),
            )
            if key and key in excluded_refs:
                raise IngestError(
                    ErrorCode.EXCLUDED_COMPARISON_REFERENCE,
                    params={
                        "packageId": comparison.package_id,
                        "version": comparison.version,
                        "revision": comparison.revision,
                    },
                )
            _validate_comparison_fields(comparison)
            self._check_comparison_versions(info, comparison, include_deleted=True)
            self._check_cached_comparison(comparison)

    # ------------------------------------------------------------------
    # Catalog checks
    # ------------------------------------------------------------------

    def _check_previous_version_deleted(self, info: PackageInfo) -> None:
        """Comparisons may only be omitted when the previous version was deleted."""
        previous_package_id = info.previous_version_package_id or info.package_id
        previous = self.catalog.get_version_including_deleted(
            previous_package_id, info.previous_version
        )
        if previous is None:
            raise IngestError(
                ErrorCode.PUBLISHED_PACKAGE_VERSION_NOT_FOUND,
                params={"version": info.previous_version, "packageId": previous_package_id},
            )
        if not previous.deleted:
            raise invalid_packaged_file(
                "comparisons",
                "at least one comparison required for publishing package with previous version",
            )
        logger.debug(
            "Previous version %s of %s is deleted, comparisons are not required",
            info.previous_version,
            previous_package_id,
        )

    def _check_comparison_versions(
        self, info: PackageInfo, comparison: Comparison, include_deleted: bool
    ) -> None:
        if comparison.version and not is_main_comparison(info, comparison):
            self._require_version(
                comparison.package_id, comparison.version, comparison.revision, include_deleted
            )
        if comparison.previous_version:
            self._require_version(
                comparison.previous_version_package_id,
                comparison.previous_version,
                comparison.previous_version_revision,
                include_deleted,
            )

    def _require_version(
        self, package_id: str, version: str, revision: int, include_deleted: bool
    ) -> CatalogVersion:
        found: CatalogVersion | None
        if include_deleted:
            found = self.catalog.get_version_including_deleted(
                package_id, _lookup_ref(version, revision)
            )
        elif revision == 0:
            found = self.catalog.get_version(package_id, version)
        else:
            found = self.catalog.get_version_by_revision(package_id, version, revision)
        if found is None:
            raise IngestError(
                ErrorCode.PUBLISHED_VERSION_REVISION_NOT_FOUND,
                params={"version": version, "revision": revision, "packageId": package_id},
            )
        return found

    def _check_cached_comparison(self, comparison: Comparison) -> None:
        if not comparison.from_cache:
            return
        comparison_id = make_version_comparison_id(
            comparison.package_id,
            comparison.version,
            comparison.revision,
            comparison.previous_version_package_id,
            comparison.previous_version,
            comparison.previous_version_revision,
        )
        if self.catalog.get_version_comparison(comparison_id) is None:
            raise IngestError(
                ErrorCode.COMPARISON_NOT_FOUND,
                params={
                    "comparisonId": comparison_id,
                    "packageId": comparison.package_id,
                    "version": comparison.version,
                    "revision": comparison.revision,
                    "previousPackageId": comparison.previous_version_package_id,
                    "previousVersion": comparison.previous_version,
                    "previousRevision": comparison.previous_version_revision,
                },
            )


def _discrepancy(param: str, expected: str, actual: str) -> IngestError:
    return IngestError(
        ErrorCode.PACKAGE_FOR_BUILD_CONFIG_DISCREPANCY,
        params={"param": param, "expected": expected, "actual": actual},
    )


def _validate_comparison_fields(comparison: Comparison) -> None:
    if comparison.version and not comparison.package_id:
        raise comparison_field_error(
            "packageId", "packageId cannot be empty if version field is filled"
        )
    if not comparison.version and not comparison.previous_version:
        raise comparison_field_error("version", "version and previousVersion cannot both be empty")
    if comparison.previous_version:
        if not comparison.previous_version_package_id:
            raise comparison_field_error(
                "previousVersionPackageId",
                "previousVersionPackageId cannot be empty if previousVersion field is filled",
            )
        if comparison.previous_version_revision == 0:
            raise comparison_field_error(
                "previousVersionRevision",
                "previousVersionRevision cannot be empty if previousVersion field is filled",
            )
    if "@" in comparison.version:
        raise comparison_field_error("version", "version cannot contain '@' symbol")
    if "@" in comparison.previous_version:
        raise comparison_field_error("previousVersion", "previousVersion cannot contain '@' symbol")


# ---------------------------------------------------------------------------
# Per-API-type operation checks
# ---------------------------------------------------------------------------


def _check_scopes(operation: Operation, api_type: ApiType, valid: frozenset[str]) -> None:
    for scope in operation.search_scopes or {}:
        if scope not in valid:
            raise _operation_error(
                operation, f"search scope {scope} doesn't exist for {api_type.value} api type"
            )


def _check_rest(operation: Operation) -> None:
    metadata = Metadata(operation.metadata)
    if not metadata.get_path():
        raise _operation_error(operation, "Metadata.Path for operation is missing")
    if not metadata.get_method():
        raise _operation_error(operation, "Metadata.Method for operation is missing")
    _check_scopes(operation, ApiType.REST, REST_SEARCH_SCOPES)


def _check_graphql(operation: Operation) -> None:
    metadata = Metadata(operation.metadata)
    op_type = metadata.get_type()
    if not op_type:
        raise _operation_error(operation, "Metadata.Type for operation is missing")
    if op_type not in GRAPHQL_OPERATION_TYPES:
        raise IngestError(ErrorCode.INVALID_GRAPHQL_OPERATION_TYPE, params={"type": op_type})
    if not metadata.get_method():
        raise _operation_error(operation, "Metadata.Method for operation is missing")
    _check_scopes(operation, ApiType.GRAPHQL, GRAPHQL_SEARCH_SCOPES)


def _check_protobuf(operation: Operation) -> None:
    metadata = Metadata(operation.metadata)
    op_type = metadata.get_type()
    if not op_type:
        raise _operation_error(operation, "Metadata.Type for operation is missing")
    if op_type not in PROTOBUF_OPERATION_TYPES:
        raise IngestError(ErrorCode.INVALID_PROTOBUF_OPERATION_TYPE, params={"type": op_type})
    if not metadata.get_method():
        raise _operation_error(operation, "Metadata.Method for operation is missing")


_OPERATION_CHECKS = {
    ApiType.REST: _check_rest,
    ApiType.GRAPHQL: _check_graphql,
    ApiType.PROTOBUF: _check_protobuf,
}
