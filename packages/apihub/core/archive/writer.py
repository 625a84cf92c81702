"""Build-result archive writer.

Produces zips in the layout the builder uploads. Used to bundle transformed
documents and to assemble synthetic archives for re-ingestion.
"""

from __future__ import annotations

import io
import zipfile

from apihub.core.archive.index import (
    COMPARISONS_FOLDER,
    DOCUMENTS_FOLDER,
    OPERATIONS_FOLDER,
    ManifestSlot,
)
from apihub.core.manifests.models import ManifestModel
from apihub.core.utils.json import dumps_bytes

# Fixed entry timestamp so identical inputs produce identical zips.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def add_file_to_zip(zip_file: zipfile.ZipFile, name: str, data: bytes) -> None:
    """Add one deflated entry with a fixed timestamp."""
    info = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    zip_file.writestr(info, data)


def zip_files(files: dict[str, bytes]) -> bytes:
    """Zip ``name -> bytes`` in insertion order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            add_file_to_zip(zf, name, data)
    return buffer.getvalue()


class BuildResultArchiveWriter:
    """Assembles a build-result archive.

    Example:
        >>> writer = BuildResultArchiveWriter()
        >>> writer.add_manifest(ManifestSlot.INFO, info)
        >>> writer.add_document("api.yaml", b"openapi: 3.0.0")
        >>> blob = writer.to_bytes()
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def add_manifest(self, slot: ManifestSlot, manifest: ManifestModel | dict) -> None:
        if isinstance(manifest, ManifestModel):
            manifest = manifest.to_json_dict()
        self.files[slot.value] = dumps_bytes(manifest)

    def add_document(self, filename: str, data: bytes) -> None:
        self.files[DOCUMENTS_FOLDER + filename] = data

    def add_operation(self, operation_id: str, data: bytes) -> None:
        self.files[OPERATIONS_FOLDER + operation_id] = data

    def add_comparison(self, comparison_file_id: str, changes: ManifestModel | dict) -> None:
        if isinstance(changes, ManifestModel):
            changes = changes.to_json_dict()
        self.files[COMPARISONS_FOLDER + comparison_file_id] = dumps_bytes(changes)

    def add_raw(self, name: str, data: bytes) -> None:
        self.files[name] = data

    def to_bytes(self) -> bytes:
        return zip_files(self.files)
