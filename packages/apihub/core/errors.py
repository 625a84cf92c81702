"""Structured ingestion errors.

Every domain failure raised by the ingestion core is an ``IngestError`` wrapping
an ``IngestErrorData`` record. The record is what the transport layer returns
to the builder; ``code`` is the stable machine-readable class.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Stable error classes."""

    FILE_MISSING_FROM_SOURCES = "FileMissingFromSources"
    INVALID_PACKAGE_ARCHIVE = "InvalidPackageArchive"
    INVALID_PACKAGE_ARCHIVED_FILE = "InvalidPackageArchivedFile"
    INVALID_PACKAGED_FILE = "InvalidPackagedFile"
    FILE_DUPLICATE = "FileDuplicate"
    FILE_MISSING = "FileMissing"
    FILE_REDUNDANT = "FileRedundant"
    EMPTY_DATA_FOR_PUBLISH = "EmptyDataForPublish"
    INVALID_DOCUMENT_TYPE = "InvalidDocumentType"
    INVALID_GRAPHQL_OPERATION_TYPE = "InvalidGraphQLOperationType"
    INVALID_PROTOBUF_OPERATION_TYPE = "InvalidProtobufOperationType"
    CHANGES_ARE_NOT_EMPTY = "ChangesAreNotEmpty"
    EXCLUDED_COMPARISON_REFERENCE = "ExcludedComparisonReference"
    INVALID_COMPARISON_FIELD = "InvalidComparisonField"
    INVALID_PREVIOUS_VERSION_PACKAGE = "InvalidPreviousVersionPackage"
    VERSION_IS_EQUAL_TO_PREVIOUS_VERSION = "VersionIsEqualToPreviousVersion"
    REFERENCE_MISSING_FROM_PACKAGE = "ReferenceMissingFromPackage"
    DOCUMENT_MISSING_FROM_PACKAGE = "DocumentMissingFromPackage"
    PACKAGE_FOR_BUILD_CONFIG_DISCREPANCY = "PackageForBuildConfigDiscrepancy"
    PUBLISHED_PACKAGE_VERSION_NOT_FOUND = "PublishedPackageVersionNotFound"
    PUBLISHED_VERSION_REVISION_NOT_FOUND = "PublishedVersionRevisionNotFound"
    COMPARISON_NOT_FOUND = "ComparisonNotFound"
    REQUIRED_PARAMS_MISSING = "RequiredParamsMissing"
    UNKNOWN_BUILD_TYPE = "UnknownBuildType"
    INVALID_REVISION_FORMAT = "InvalidRevisionFormat"
    INGESTION_CANCELLED = "IngestionCancelled"


MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.FILE_MISSING_FROM_SOURCES: "File $fileId is missing from the archive",
    ErrorCode.INVALID_PACKAGE_ARCHIVE: "Failed to read package archive: $error",
    ErrorCode.INVALID_PACKAGE_ARCHIVED_FILE: "Failed to read file $file from package archive: $error",
    ErrorCode.INVALID_PACKAGED_FILE: "Packaged file $file is invalid: $error",
    ErrorCode.FILE_DUPLICATE: "Files $fileIds are listed more than once in $configName",
    ErrorCode.FILE_MISSING: "Files $fileIds are missing from $location",
    ErrorCode.FILE_REDUNDANT: "Files $files in $location are not listed in any config",
    ErrorCode.EMPTY_DATA_FOR_PUBLISH: "Package has neither documents nor refs to publish",
    ErrorCode.INVALID_DOCUMENT_TYPE: "Document type $type is invalid",
    ErrorCode.INVALID_GRAPHQL_OPERATION_TYPE: "GraphQL operation type $type is invalid",
    ErrorCode.INVALID_PROTOBUF_OPERATION_TYPE: "Protobuf operation type $type is invalid",
    ErrorCode.CHANGES_ARE_NOT_EMPTY: "Comparisons must be empty when changelog is disabled",
    ErrorCode.EXCLUDED_COMPARISON_REFERENCE: (
        "Comparison refers to excluded reference $packageId version $version revision $revision"
    ),
    ErrorCode.INVALID_COMPARISON_FIELD: "Comparison field $field is invalid: $error",
    ErrorCode.INVALID_PREVIOUS_VERSION_PACKAGE: (
        "Previous version package $previousVersionPackageId must differ from package $packageId"
    ),
    ErrorCode.VERSION_IS_EQUAL_TO_PREVIOUS_VERSION: (
        "Version $version cannot be equal to previous version $previousVersion"
    ),
    ErrorCode.REFERENCE_MISSING_FROM_PACKAGE: (
        "Reference $refId with version $version from build config is missing from package"
    ),
    ErrorCode.DOCUMENT_MISSING_FROM_PACKAGE: (
        "Document for file $fileId from build config is missing from package"
    ),
    ErrorCode.PACKAGE_FOR_BUILD_CONFIG_DISCREPANCY: (
        "Build result parameter $param has value '$actual' while build config expects '$expected'"
    ),
    ErrorCode.PUBLISHED_PACKAGE_VERSION_NOT_FOUND: (
        "Published version $version not found in package $packageId"
    ),
    ErrorCode.PUBLISHED_VERSION_REVISION_NOT_FOUND: (
        "Published version $version with revision $revision not found in package $packageId"
    ),
    ErrorCode.COMPARISON_NOT_FOUND: "Comparison $comparisonId not found",
    ErrorCode.REQUIRED_PARAMS_MISSING: "Required parameters are missing: $params",
    ErrorCode.UNKNOWN_BUILD_TYPE: "Build type $type is unknown",
    ErrorCode.INVALID_REVISION_FORMAT: "Version $version has invalid revision format",
    ErrorCode.INGESTION_CANCELLED: "Ingestion was cancelled during $stage",
}


class IngestErrorData(BaseModel):
    """Structured data for an ingestion error.

    Args:
        status: HTTP status the surrounding service answers with
        code: Stable error class
        message: Message template with ``$param`` placeholders
        params: Template parameters
        debug: Low-level detail (parser error text and similar)
    """

    status: int = int(HTTPStatus.BAD_REQUEST)
    code: ErrorCode
    message: str
    params: dict[str, Any] = Field(default_factory=dict)
    debug: str = ""


class IngestError(Exception):
    """Domain validation failure raised by the ingestion core.

    Attributes:
        data: Structured error data (IngestErrorData)
        status: HTTP status
        code: Stable error class
        message: Unrendered message template
        params: Template parameters
        debug: Low-level detail
    """

    def __init__(
        self,
        code: ErrorCode,
        *,
        params: dict[str, Any] | None = None,
        debug: str = "",
        status: int = HTTPStatus.BAD_REQUEST,
        message: str | None = None,
    ) -> None:
        self.data = IngestErrorData(
            status=int(status),
            code=code,
            message=message if message is not None else MESSAGES[code],
            params=params or {},
            debug=debug,
        )
        self.status = self.data.status
        self.code = self.data.code
        self.message = self.data.message
        self.params = self.data.params
        self.debug = self.data.debug

        super().__init__(str(self))

    def render(self) -> str:
        """Message with ``$param`` placeholders substituted.

        Longer parameter names are substituted first so ``$fileIds`` is not
        clobbered by a ``$fileId`` parameter.
        """
        msg = self.message
        for key in sorted(self.params, key=len, reverse=True):
            msg = msg.replace(f"${key}", _format_param(self.params[key]))
        return msg

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready record for the transport layer."""
        return self.data.model_dump(mode="json")

    def __str__(self) -> str:
        msg = self.render()
        if self.debug:
            return f"{msg} | {self.debug}"
        return msg


def _format_param(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(str(v) for v in value) + "]"
    return str(value)


def invalid_packaged_file(file: str, error: str) -> IngestError:
    """``InvalidPackagedFile`` for ``file`` with a human-readable reason."""
    return IngestError(ErrorCode.INVALID_PACKAGED_FILE, params={"file": file, "error": error})


def invalid_archived_file(file: str, error: str, debug: str = "") -> IngestError:
    """``InvalidPackageArchivedFile`` for ``file``."""
    return IngestError(
        ErrorCode.INVALID_PACKAGE_ARCHIVED_FILE,
        params={"file": file, "error": error},
        debug=debug,
    )


def comparison_field_error(field: str, error: str) -> IngestError:
    """``InvalidComparisonField`` for ``field``."""
    return IngestError(ErrorCode.INVALID_COMPARISON_FIELD, params={"field": field, "error": error})


def raise_if_cancelled(should_cancel: Callable[[], bool] | None, stage: str) -> None:
    """Raise ``IngestionCancelled`` when the caller asked to stop.

    Raises:
        IngestError: ``IngestionCancelled`` naming ``stage``
    """
    if should_cancel is not None and should_cancel():
        raise IngestError(ErrorCode.INGESTION_CANCELLED, params={"stage": stage})
