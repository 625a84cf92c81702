"""In-memory index of build-result and sources archives.

Indexing only walks the zip central directory. Entry payloads are read on
demand through the handles kept in the bucket mappings.
"""

from __future__ import annotations

import io
import logging
import zipfile
from enum import Enum
from types import TracebackType
from typing import Self

from apihub.core.errors import ErrorCode, IngestError

logger = logging.getLogger(__name__)

# Opaque reference to a compressed entry; decompressed by ``read_entry``.
EntryHandle = zipfile.ZipInfo


class ManifestSlot(str, Enum):
    """Well-known manifest files at the archive root."""

    INFO = "info.json"
    DOCUMENTS = "documents.json"
    OPERATIONS = "operations.json"
    COMPARISONS = "comparisons.json"
    NOTIFICATIONS = "notifications.json"
    CHANGELOG = "changelog.json"


DOCUMENTS_FOLDER = "documents/"
OPERATIONS_FOLDER = "operations/"
COMPARISONS_FOLDER = "comparisons/"

_MANIFEST_NAMES = {slot.value: slot for slot in ManifestSlot}


def open_zip(data: bytes) -> zipfile.ZipFile:
    """Open a zip blob held in memory.

    Raises:
        IngestError: ``InvalidPackageArchive`` if the blob is not a readable zip
    """
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise IngestError(ErrorCode.INVALID_PACKAGE_ARCHIVE, params={"error": str(e)}) from e


class _ZipBacked:
    """Owns a ``ZipFile`` and releases it on close."""

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        self.zip_file = zip_file

    def read_entry(self, handle: EntryHandle) -> bytes:
        """Decompress one entry.

        Raises:
            zipfile.BadZipFile: On CRC mismatch or a corrupt stream
            zlib.error: On a corrupt deflate stream
            NotImplementedError: On an unsupported compression method
        """
        return self.zip_file.read(handle)

    def close(self) -> None:
        self.zip_file.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ArchiveIndex(_ZipBacked):
    """Build-result archive entries bucketed by well-known names.

    Every non-directory entry lands in exactly one place: a manifest slot,
    one of the three folder buckets (prefix stripped), or ``uncategorized``.

    Attributes:
        entries: All non-directory entries by name
        manifests: Manifest slot -> entry
        document_files: ``documents/<filename>`` entries keyed by filename
        operation_files: ``operations/<operationId>`` entries keyed by operation id
        comparison_files: ``comparisons/<comparisonFileId>`` entries keyed by file id
        uncategorized: Everything else, keyed by full name
    """

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        super().__init__(zip_file)
        self.entries: dict[str, EntryHandle] = {}
        self.manifests: dict[ManifestSlot, EntryHandle] = {}
        self.document_files: dict[str, EntryHandle] = {}
        self.operation_files: dict[str, EntryHandle] = {}
        self.comparison_files: dict[str, EntryHandle] = {}
        self.uncategorized: dict[str, EntryHandle] = {}
        self._split_entries()

    @classmethod
    def from_bytes(cls, data: bytes) -> ArchiveIndex:
        return cls(open_zip(data))

    def manifest(self, slot: ManifestSlot) -> EntryHandle | None:
        return self.manifests.get(slot)

    def _split_entries(self) -> None:
        buckets = (
            (DOCUMENTS_FOLDER, self.document_files),
            (OPERATIONS_FOLDER, self.operation_files),
            (COMPARISONS_FOLDER, self.comparison_files),
        )
        for info in self.zip_file.infolist():
            if info.is_dir():
                continue
            name = info.filename
            self.entries[name] = info

            slot = _MANIFEST_NAMES.get(name)
            if slot is not None:
                self.manifests[slot] = info
                continue

            for prefix, bucket in buckets:
                if name.startswith(prefix) and len(name) > len(prefix):
                    bucket[name[len(prefix) :]] = info
                    break
            else:
                self.uncategorized[name] = info

        logger.debug(
            "Indexed build result archive: %d entries, %d documents, %d operations, "
            "%d comparisons, %d uncategorized",
            len(self.entries),
            len(self.document_files),
            len(self.operation_files),
            len(self.comparison_files),
            len(self.uncategorized),
        )


class SourcesIndex(_ZipBacked):
    """Sources archive: every non-directory entry keyed by its full name."""

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        super().__init__(zip_file)
        self.files: dict[str, EntryHandle] = {
            info.filename: info for info in zip_file.infolist() if not info.is_dir()
        }

    @classmethod
    def from_bytes(cls, data: bytes) -> SourcesIndex:
        return cls(open_zip(data))
