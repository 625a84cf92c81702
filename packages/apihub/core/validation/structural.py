"""File-set consistency checks for sources and build-result archives.

A bucket of archive entries is compared against the ids its config lists.
Only the first class of discrepancy is reported: duplicates, then missing,
then unknown. Result lists are ordered deterministically (config order for
duplicates and missing, archive order for unknown).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from apihub.core.archive.index import (
    COMPARISONS_FOLDER,
    DOCUMENTS_FOLDER,
    OPERATIONS_FOLDER,
    ArchiveIndex,
    ManifestSlot,
    SourcesIndex,
)
from apihub.core.errors import ErrorCode, IngestError
from apihub.core.manifests.models import (
    BuildConfig,
    PackageComparisons,
    PackageDocuments,
    PackageOperations,
)

logger = logging.getLogger(__name__)


class FileSetDiff(NamedTuple):
    """Discrepancies between a bucket and its expected ids."""

    duplicates: list[str]
    missing: list[str]
    unknown: list[str]

    def is_empty(self) -> bool:
        return not (self.duplicates or self.missing or self.unknown)


def validate_files(bucket: Mapping[str, object], expected_ids: Iterable[str]) -> FileSetDiff:
    """Compare bucket keys against expected ids.

    Args:
        bucket: Entries keyed by name (prefix already stripped)
        expected_ids: Ids listed by the config, possibly with repeats

    Returns:
        FileSetDiff where at most one list is non-empty

    Example:
        >>> validate_files({"a": h1}, ["a", "a"])
        FileSetDiff(duplicates=['a'], missing=[], unknown=[])
    """
    seen: dict[str, None] = {}
    duplicates: dict[str, None] = {}
    for file_id in expected_ids:
        if file_id in seen:
            duplicates[file_id] = None
        else:
            seen[file_id] = None
    if duplicates:
        return FileSetDiff(list(duplicates), [], [])

    missing = [file_id for file_id in seen if file_id not in bucket]
    if missing:
        return FileSetDiff([], missing, [])

    unknown = [name for name in bucket if name not in seen]
    return FileSetDiff([], [], unknown)


def validate_publish_sources(sources: SourcesIndex, build_config: BuildConfig) -> None:
    """Check the sources archive holds exactly the build config files.

    Raises:
        IngestError: ``FileDuplicate``, ``FileMissing`` or ``FileRedundant``
    """
    diff = validate_files(sources.files, (f.file_id for f in build_config.files))
    if diff.duplicates:
        raise IngestError(
            ErrorCode.FILE_DUPLICATE,
            params={"fileIds": diff.duplicates, "configName": "build config"},
        )
    if diff.missing:
        raise IngestError(
            ErrorCode.FILE_MISSING, params={"fileIds": diff.missing, "location": "sources"}
        )
    if diff.unknown:
        raise IngestError(
            ErrorCode.FILE_REDUNDANT, params={"files": diff.unknown, "location": "sources"}
        )


def validate_publish_build_result(
    index: ArchiveIndex,
    documents: PackageDocuments,
    operations: PackageOperations,
    comparisons: PackageComparisons,
) -> None:
    """Check each build-result folder against its manifest.

    Unknown entries of every folder are collected together with the
    uncategorized entries and reported once as ``FileRedundant``.

    Raises:
        IngestError: ``FileDuplicate``, ``FileMissing`` or ``FileRedundant``
    """
    unknown_files = list(index.uncategorized)

    checks = (
        (
            index.document_files,
            [d.filename for d in documents.documents],
            ManifestSlot.DOCUMENTS,
            DOCUMENTS_FOLDER,
        ),
        (
            index.operation_files,
            [o.operation_id for o in operations.operations],
            ManifestSlot.OPERATIONS,
            OPERATIONS_FOLDER,
        ),
        (
            index.comparison_files,
            [c.comparison_file_id for c in comparisons.comparisons if c.comparison_file_id],
            ManifestSlot.COMPARISONS,
            COMPARISONS_FOLDER,
        ),
    )
    for bucket, expected, manifest, folder in checks:
        diff = validate_files(bucket, expected)
        if diff.duplicates:
            raise IngestError(
                ErrorCode.FILE_DUPLICATE,
                params={"fileIds": diff.duplicates, "configName": f"{manifest.value} config"},
            )
        if diff.missing:
            raise IngestError(
                ErrorCode.FILE_MISSING,
                params={"fileIds": diff.missing, "location": f"{folder} folder in archive"},
            )
        unknown_files.extend(folder + name for name in diff.unknown)

    if unknown_files:
        raise IngestError(
            ErrorCode.FILE_REDUNDANT,
            params={"files": unknown_files, "location": "build result archive"},
        )
    logger.debug("Build result file set is consistent")
