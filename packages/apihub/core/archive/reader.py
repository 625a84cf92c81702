"""Manifest decoding for build-result archives."""

from __future__ import annotations

import logging
import zipfile
import zlib
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from apihub.core.archive.index import ArchiveIndex, EntryHandle, ManifestSlot
from apihub.core.errors import ErrorCode, IngestError, invalid_archived_file
from apihub.core.manifests.models import (
    BuilderNotifications,
    PackageComparisons,
    PackageDocuments,
    PackageInfo,
    PackageOperations,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Errors zipfile raises while decompressing a damaged or unsupported entry.
ENTRY_READ_ERRORS: tuple[type[Exception], ...] = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
)


class ManifestReader:
    """Reads entries of an indexed archive into typed records."""

    def __init__(self, index: ArchiveIndex) -> None:
        self.index = index

    def read(self, slot: ManifestSlot, target: type[T], required: bool) -> T:
        """Decode a manifest slot into ``target``.

        Args:
            slot: Manifest to read
            target: Pydantic model to validate into
            required: Fail when the manifest is absent

        Returns:
            Parsed manifest, or ``target()`` defaults when absent and optional

        Raises:
            IngestError: ``FileMissingFromSources`` when required and absent,
                ``InvalidPackageArchivedFile`` on decompression or decode errors
        """
        handle = self.index.manifest(slot)
        if handle is None:
            if required:
                raise IngestError(
                    ErrorCode.FILE_MISSING_FROM_SOURCES, params={"fileId": slot.value}
                )
            return target()
        return self.read_json(handle, target, slot.value)

    def read_bytes(self, handle: EntryHandle, file: str) -> bytes:
        """Decompress an entry, reporting failures against ``file``.

        Raises:
            IngestError: ``InvalidPackageArchivedFile`` if decompression fails
        """
        try:
            return self.index.read_entry(handle)
        except ENTRY_READ_ERRORS as e:
            raise invalid_archived_file(file, str(e)) from e

    def read_json(
        self,
        handle: EntryHandle,
        target: type[T],
        file: str,
        error: str = "failed to unmarshal",
    ) -> T:
        """Decompress and JSON-decode an entry into ``target``.

        Raises:
            IngestError: ``InvalidPackageArchivedFile``; the parser detail goes
                to ``debug``
        """
        data = self.read_bytes(handle, file)
        try:
            return target.model_validate_json(data)
        except ValidationError as e:
            raise invalid_archived_file(file, error, debug=str(e)) from e


class BuildResultArchive:
    """Indexed build-result archive with its parsed manifests.

    Manifests start out as empty defaults and are filled by the ``read_*``
    methods. ``changelog.json`` is indexed but never decoded here.

    Example:
        >>> with ArchiveIndex.from_bytes(blob) as index:
        ...     arc = BuildResultArchive(index)
        ...     info = arc.read_package_info()
        ...     arc.read_package_documents(required=False)
    """

    def __init__(self, index: ArchiveIndex) -> None:
        self.index = index
        self.reader = ManifestReader(index)
        self.package_info = PackageInfo()
        self.package_documents = PackageDocuments()
        self.package_operations = PackageOperations()
        self.package_comparisons = PackageComparisons()
        self.builder_notifications = BuilderNotifications()

    def read_package_info(self) -> PackageInfo:
        self.package_info = self.reader.read(ManifestSlot.INFO, PackageInfo, required=True)
        return self.package_info

    def read_package_documents(self, required: bool = False) -> PackageDocuments:
        self.package_documents = self.reader.read(
            ManifestSlot.DOCUMENTS, PackageDocuments, required
        )
        return self.package_documents

    def read_package_operations(self, required: bool = False) -> PackageOperations:
        self.package_operations = self.reader.read(
            ManifestSlot.OPERATIONS, PackageOperations, required
        )
        return self.package_operations

    def read_package_comparisons(self, required: bool = False) -> PackageComparisons:
        self.package_comparisons = self.reader.read(
            ManifestSlot.COMPARISONS, PackageComparisons, required
        )
        return self.package_comparisons

    def read_builder_notifications(self, required: bool = False) -> BuilderNotifications:
        self.builder_notifications = self.reader.read(
            ManifestSlot.NOTIFICATIONS, BuilderNotifications, required
        )
        return self.builder_notifications

    def read_all(self) -> None:
        """Read info plus every optional manifest."""
        self.read_package_info()
        self.read_package_documents()
        self.read_package_operations()
        self.read_package_comparisons()
        self.read_builder_notifications()
