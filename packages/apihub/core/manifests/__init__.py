"""Build-result manifest models and value sets."""

from apihub.core.manifests.enums import (
    DEFAULT_FORMAT,
    ApiAudience,
    ApiType,
    BuildType,
    DocumentFormat,
    PackageKind,
    VersionStatus,
)
from apihub.core.manifests.metadata import Metadata, MetadataTypeError
from apihub.core.manifests.models import (
    BuildConfig,
    BuildConfigFile,
    BuilderNotification,
    BuilderNotifications,
    ChangelogInfo,
    ChangeSummary,
    Comparison,
    ExternalMetadata,
    ManifestModel,
    Operation,
    OperationComparison,
    OperationExternalMetadata,
    OperationTypeSummary,
    PackageComparisons,
    PackageDocument,
    PackageDocuments,
    PackageInfo,
    PackageOperationChanges,
    PackageOperations,
    PackageRef,
)
from apihub.core.manifests.required import missing_required_fields

__all__ = [
    # Value sets
    "DEFAULT_FORMAT",
    "ApiAudience",
    "ApiType",
    "BuildType",
    "DocumentFormat",
    "PackageKind",
    "VersionStatus",
    # Metadata accessor
    "Metadata",
    "MetadataTypeError",
    # Manifests
    "ManifestModel",
    "PackageInfo",
    "PackageRef",
    "ExternalMetadata",
    "OperationExternalMetadata",
    "ChangelogInfo",
    "PackageDocument",
    "PackageDocuments",
    "Operation",
    "PackageOperations",
    "ChangeSummary",
    "OperationTypeSummary",
    "Comparison",
    "PackageComparisons",
    "OperationComparison",
    "PackageOperationChanges",
    "BuilderNotification",
    "BuilderNotifications",
    # Build config
    "BuildConfig",
    "BuildConfigFile",
    # Checks
    "missing_required_fields",
]
