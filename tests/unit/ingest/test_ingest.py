"""Tests for end-to-end ingestion of uploaded archives."""

from __future__ import annotations

from typing import Any

import pytest

from apihub.core.archive.index import ManifestSlot
from apihub.core.archive.writer import BuildResultArchiveWriter
from apihub.core.catalog import InMemoryCatalog
from apihub.core.errors import ErrorCode, IngestError
from apihub.core.ingest import IngestionResult, ingest_build_result, ingest_sources
from apihub.core.manifests.models import (
    BuildConfig,
    Comparison,
    Operation,
    OperationComparison,
    PackageComparisons,
    PackageDocument,
    PackageDocuments,
    PackageOperationChanges,
    PackageOperations,
)


def _ingest(data: bytes, config: BuildConfig, catalog, **kwargs: Any) -> IngestionResult:
    return ingest_build_result(data, config, catalog, "pub-1", **kwargs)


def _error(data: bytes, config: BuildConfig, catalog, **kwargs: Any) -> IngestError:
    with pytest.raises(IngestError) as exc_info:
        _ingest(data, config, catalog, **kwargs)
    return exc_info.value


def _rebuild_archive(result: IngestionResult) -> bytes:
    """Encode lifted entities back into a build-result archive."""
    writer = BuildResultArchiveWriter()
    writer.add_manifest(ManifestSlot.INFO, result.package_info)

    documents = []
    payloads = {p.checksum: p.data for p in result.content_data}
    for content in result.contents:
        documents.append(
            PackageDocument(
                file_id=content.file_id,
                filename=content.filename,
                slug=content.slug,
                title=content.title,
                type=content.data_type,
                format=content.format,
                operation_ids=content.operation_ids,
            )
        )
        writer.add_document(content.filename, payloads[content.checksum])
    writer.add_manifest(ManifestSlot.DOCUMENTS, PackageDocuments(documents=documents))

    operations = []
    operation_payloads = {p.data_hash: p for p in result.operation_data}
    for op in result.operations:
        payload = operation_payloads[op.data_hash]
        operations.append(
            Operation(
                operation_id=op.operation_id,
                title=op.title,
                api_type=op.type,
                api_kind=op.kind,
                api_audience=op.api_audience,
                data_hash=op.data_hash,
                tags=op.metadata.get("tags", []),
                metadata={"path": op.metadata["path"], "method": op.metadata["method"]},
                search_scopes=payload.search_scope,
            )
        )
        writer.add_operation(op.operation_id, payload.data)
    writer.add_manifest(ManifestSlot.OPERATIONS, PackageOperations(operations=operations))

    comparisons = []
    for i, vc in enumerate(result.version_comparisons):
        file_id = f"cmp-{i}"
        comparisons.append(
            Comparison(
                package_id=vc.package_id,
                version=vc.version,
                revision=vc.revision,
                previous_version_package_id=vc.previous_package_id,
                previous_version=vc.previous_version,
                previous_version_revision=vc.previous_revision,
                operation_types=vc.operation_types,
                comparison_file_id=file_id,
            )
        )
        rows = [
            OperationComparison(
                operation_id=oc.operation_id,
                previous_operation_id=oc.previous_operation_id,
                data_hash=oc.data_hash,
                previous_data_hash=oc.previous_data_hash,
                change_summary=oc.changes_summary,
                changes=oc.changes["changes"],
            )
            for oc in result.operation_comparisons
            if oc.comparison_id == vc.comparison_id
        ]
        writer.add_comparison(file_id, PackageOperationChanges(operation_comparisons=rows))
    writer.add_manifest(ManifestSlot.COMPARISONS, PackageComparisons(comparisons=comparisons))
    return writer.to_bytes()


class TestIngestSources:
    """Sources archive ingestion."""

    def test_consistent(self, make_archive, build_config):
        sources = ingest_sources(make_archive({"api.yaml": b"x"}), build_config)
        with sources:
            assert list(sources.files) == ["api.yaml"]

    def test_redundant(self, make_archive, build_config):
        with pytest.raises(IngestError) as exc_info:
            ingest_sources(make_archive({"api.yaml": b"x", "b.yaml": b"y"}), build_config)

        assert exc_info.value.code == ErrorCode.FILE_REDUNDANT

    def test_size_limit(self, make_archive, build_config):
        data = make_archive({"api.yaml": b"x"})
        with pytest.raises(IngestError) as exc_info:
            ingest_sources(data, build_config, max_archive_bytes=len(data) - 1)

        assert exc_info.value.code == ErrorCode.INVALID_PACKAGE_ARCHIVE


class TestIngestBuild:
    """``build`` archives."""

    def test_accepted(self, archive_bytes, build_config, catalog):
        result = _ingest(archive_bytes, build_config, catalog)

        assert result.publish_id == "pub-1"
        assert result.build_type == "build"
        assert [c.file_id for c in result.contents] == ["api.yaml"]
        assert [o.operation_id for o in result.operations] == ["get-pets"]
        assert len(result.version_comparisons) == 1
        assert len(result.operation_comparisons) == 1
        assert result.cached_comparison_ids == []
        assert result.transformed is None
        assert [n.build_id for n in result.notifications] == ["pub-1"]

    def test_not_a_zip(self, build_config, catalog):
        err = _error(b"plain text", build_config, catalog)
        assert err.code == ErrorCode.INVALID_PACKAGE_ARCHIVE

    def test_size_limit(self, archive_bytes, build_config, catalog):
        err = _error(archive_bytes, build_config, catalog, max_archive_bytes=10)
        assert err.code == ErrorCode.INVALID_PACKAGE_ARCHIVE

    def test_missing_info(self, make_archive, build_config, catalog):
        err = _error(make_archive({"documents.json": {}}), build_config, catalog)
        assert err.code == ErrorCode.FILE_MISSING_FROM_SOURCES

    def test_package_id_must_match_path(self, archive_bytes, build_config, catalog):
        err = _error(archive_bytes, build_config, catalog, package_id="other")

        assert err.code == ErrorCode.INVALID_PACKAGED_FILE
        assert err.params["file"] == "info"

    def test_config_discrepancy_before_contents(
        self, make_archive, build_result_files, build_config_data, catalog
    ):
        """Identity is checked against the config before any content stage."""
        build_result_files["notes.txt"] = b"n"
        build_config_data["status"] = "draft"

        err = _error(
            make_archive(build_result_files), BuildConfig.model_validate(build_config_data), catalog
        )

        assert err.code == ErrorCode.PACKAGE_FOR_BUILD_CONFIG_DISCREPANCY
        assert err.params["param"] == "status"

    def test_structural_before_semantic(
        self, make_archive, build_result_files, info_data, build_config, catalog
    ):
        build_result_files["notes.txt"] = b"n"
        info_data["kind"] = "group"

        err = _error(make_archive(build_result_files), build_config, catalog)

        assert err.code == ErrorCode.FILE_REDUNDANT

    def test_kind_from_catalog_overrides_archive(self, archive_bytes, build_config, catalog):
        err = _error(archive_bytes, build_config, catalog, kind="group")

        assert err.code == ErrorCode.INVALID_PACKAGED_FILE
        assert err.params["file"] == "documents"

    def test_revision_from_catalog(
        self, make_archive, build_result_files, comparisons_data, build_config, catalog
    ):
        """The catalog revision is stamped on every record."""
        comparisons_data["comparisons"][0]["revision"] = 0

        result = _ingest(make_archive(build_result_files), build_config, catalog, revision=5)

        assert result.package_info.revision == 5
        assert result.contents[0].revision == 5
        assert result.version_comparisons[0].revision == 5

    def test_cancelled(self, archive_bytes, build_config, catalog):
        err = _error(archive_bytes, build_config, catalog, should_cancel=lambda: True)

        assert err.code == ErrorCode.INGESTION_CANCELLED
        assert err.params == {"stage": "config check"}

    def test_catalog_errors_propagate(self, archive_bytes, build_config):
        """Lookup failures are not wrapped into domain errors."""

        class BrokenCatalog(InMemoryCatalog):
            def get_version_including_deleted(self, package_id, version_ref_key):
                raise ConnectionError("catalog unavailable")

        with pytest.raises(ConnectionError):
            _ingest(archive_bytes, build_config, BrokenCatalog())

    def test_deterministic(self, archive_bytes, build_config, catalog):
        assert _ingest(archive_bytes, build_config, catalog) == _ingest(
            archive_bytes, build_config, catalog
        )

    def test_round_trip(self, archive_bytes, build_config, catalog):
        """Entities re-encoded into an archive ingest to the same entities."""
        first = _ingest(archive_bytes, build_config, catalog)

        second = _ingest(_rebuild_archive(first), build_config, catalog)

        assert second.contents == first.contents
        assert second.content_data == first.content_data
        assert second.operations == first.operations
        assert second.operation_data == first.operation_data
        assert second.version_comparisons == first.version_comparisons
        assert second.operation_comparisons == first.operation_comparisons


class TestIngestOtherBuildTypes:
    """Changelog, transformed and unknown build types."""

    def test_changelog(
        self, make_archive, build_result_files, info_data, build_config_data, catalog
    ):
        info_data.update(buildType="changelog", previousVersionPackageId="pkg")
        build_config_data.update(buildType="changelog", previousVersionPackageId="pkg")
        files = {
            name: payload
            for name, payload in build_result_files.items()
            if name.startswith(("info", "comparisons", "notifications"))
        }

        result = _ingest(make_archive(files), BuildConfig.model_validate(build_config_data), catalog)

        assert result.contents == [] and result.operations == []
        assert len(result.version_comparisons) == 1
        assert len(result.operation_comparisons) == 1
        assert len(result.notifications) == 1

    def test_changelog_requires_comparisons(
        self, make_archive, info_data, build_config_data, catalog
    ):
        info_data["buildType"] = "changelog"
        build_config_data["buildType"] = "changelog"

        err = _error(
            make_archive({"info.json": info_data}),
            BuildConfig.model_validate(build_config_data),
            catalog,
        )

        assert err.code == ErrorCode.FILE_MISSING_FROM_SOURCES
        assert err.params == {"fileId": "comparisons.json"}

    def _transformed(self, make_archive, info_data, documents_data, build_config_data, version):
        info_data.update(buildType="reducedSourceSpecifications", version=version, apiType="rest")
        build_config_data.update(buildType="reducedSourceSpecifications", version=version)
        data = make_archive(
            {
                "info.json": info_data,
                "documents.json": documents_data,
                "documents/api.yaml": b"openapi: 3.0.0",
            }
        )
        return data, BuildConfig.model_validate(build_config_data)

    def test_transformed_version_revision(
        self, make_archive, info_data, documents_data, build_config_data
    ):
        data, config = self._transformed(
            make_archive, info_data, documents_data, build_config_data, "2.0@3"
        )

        result = _ingest(data, config, InMemoryCatalog())

        assert result.package_info.version == "2.0"
        assert result.package_info.revision == 3
        assert result.transformed.version == "2.0"
        assert result.transformed.revision == 3
        assert result.transformed.format == "json"

    def test_transformed_default_format(
        self, make_archive, info_data, documents_data, build_config_data
    ):
        data, config = self._transformed(
            make_archive, info_data, documents_data, build_config_data, "2.0"
        )

        result = _ingest(data, config, InMemoryCatalog(), default_format="yaml")

        assert result.transformed.format == "yaml"
        assert result.package_info.revision == 1

    def test_transformed_invalid_revision(
        self, make_archive, info_data, documents_data, build_config_data
    ):
        data, config = self._transformed(
            make_archive, info_data, documents_data, build_config_data, "2.0@latest"
        )

        err = _error(data, config, InMemoryCatalog())

        assert err.code == ErrorCode.INVALID_REVISION_FORMAT
        assert err.params == {"version": "2.0@latest"}

    def test_unknown_build_type(self, make_archive, info_data, build_config_data, catalog):
        info_data["buildType"] = "exportVersion"
        build_config_data["buildType"] = "exportVersion"

        err = _error(
            make_archive({"info.json": info_data}),
            BuildConfig.model_validate(build_config_data),
            catalog,
        )

        assert err.code == ErrorCode.UNKNOWN_BUILD_TYPE
        assert err.params == {"type": "exportVersion"}
