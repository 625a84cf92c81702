"""Entity lifting and transformed-document bundling."""

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
from apihub.core.lifting.reader import (
    BuildResultToEntitiesReader,
    ComparisonEntities,
    validate_operation_comparison,
)
from apihub.core.lifting.sniffing import detect_content_type

__all__ = [
    # Entities
    "BuilderNotificationEntity",
    "OperationComparisonEntity",
    "OperationDataEntity",
    "OperationEntity",
    "PublishedContentDataEntity",
    "PublishedContentEntity",
    "TransformedContentDataEntity",
    "VersionComparisonEntity",
    # Lifting
    "BuildResultToEntitiesReader",
    "ComparisonEntities",
    "detect_content_type",
    "validate_operation_comparison",
]
