"""Archive indexing, manifest reading and writing."""

from apihub.core.archive.index import (
    COMPARISONS_FOLDER,
    DOCUMENTS_FOLDER,
    OPERATIONS_FOLDER,
    ArchiveIndex,
    EntryHandle,
    ManifestSlot,
    SourcesIndex,
    open_zip,
)
from apihub.core.archive.reader import BuildResultArchive, ManifestReader
from apihub.core.archive.writer import BuildResultArchiveWriter, add_file_to_zip, zip_files

__all__ = [
    "COMPARISONS_FOLDER",
    "DOCUMENTS_FOLDER",
    "OPERATIONS_FOLDER",
    "ArchiveIndex",
    "BuildResultArchive",
    "BuildResultArchiveWriter",
    "EntryHandle",
    "ManifestReader",
    "ManifestSlot",
    "SourcesIndex",
    "add_file_to_zip",
    "open_zip",
    "zip_files",
]
