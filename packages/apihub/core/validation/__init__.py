"""Structural and semantic validation of uploaded archives."""

from apihub.core.validation.semantic import (
    PublishedValidator,
    is_main_comparison,
    require_fields,
)
from apihub.core.validation.structural import (
    FileSetDiff,
    validate_files,
    validate_publish_build_result,
    validate_publish_sources,
)

__all__ = [
    "FileSetDiff",
    "PublishedValidator",
    "is_main_comparison",
    "require_fields",
    "validate_files",
    "validate_publish_build_result",
    "validate_publish_sources",
]
