"""Tests for the fixture-backed catalog."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ValidationError
import pytest

from apihub.core.catalog import CatalogLookup, CatalogVersion, InMemoryCatalog
from apihub.core.utils.hashing import make_version_comparison_id

DELETED_AT = datetime(2026, 2, 1, tzinfo=UTC)


@pytest.fixture
def revisions() -> InMemoryCatalog:
    """pkg@1.0 with revisions 1 and 2 active and 3 deleted."""
    catalog = InMemoryCatalog()
    catalog.add_version("pkg", "1.0", revision=1)
    catalog.add_version("pkg", "1.0", revision=2)
    catalog.add_version("pkg", "1.0", revision=3, deleted_at=DELETED_AT)
    return catalog


class TestCatalogLookups:
    """Active and deleted version lookups."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryCatalog(), CatalogLookup)

    def test_get_version_latest_active(self, revisions):
        assert revisions.get_version("pkg", "1.0").revision == 2
        assert revisions.get_version("pkg", "9.9") is None

    def test_get_version_by_revision(self, revisions):
        assert revisions.get_version_by_revision("pkg", "1.0", 1).revision == 1
        assert revisions.get_version_by_revision("pkg", "1.0", 3) is None
        assert revisions.get_version_by_revision("pkg", "1.0", 4) is None

    def test_including_deleted_by_ref_key(self, revisions):
        found = revisions.get_version_including_deleted("pkg", "1.0@3")

        assert found.revision == 3
        assert found.deleted is True

    def test_including_deleted_bare_version(self, revisions):
        """A bare version returns the latest revision, deleted or not."""
        assert revisions.get_version_including_deleted("pkg", "1.0").revision == 3

    def test_including_deleted_bad_suffix(self, revisions):
        assert revisions.get_version_including_deleted("pkg", "1.0@x") is None

    def test_soft_delete(self, revisions):
        revisions.soft_delete("pkg", "1.0", DELETED_AT)

        assert revisions.get_version("pkg", "1.0") is None
        assert revisions.get_version_including_deleted("pkg", "1.0@1").deleted is True

    def test_comparisons(self):
        catalog = InMemoryCatalog()
        record = catalog.add_comparison("pkg", "2.0", 1, "pkg", "1.0", 1)

        assert record.comparison_id == make_version_comparison_id("pkg", "2.0", 1, "pkg", "1.0", 1)
        assert catalog.get_version_comparison(record.comparison_id) == record
        assert catalog.get_version_comparison("missing") is None


class TestCatalogFixtures:
    """Loading catalogs from files."""

    def test_from_yaml(self, write_file):
        path = write_file(
            "catalog.yaml",
            "versions:\n"
            "  - packageId: pkg\n"
            "    version: '1.0'\n"
            "    revision: 2\n"
            "  - packageId: pkg\n"
            "    version: '0.9'\n"
            "    deletedAt: '2026-01-01T00:00:00Z'\n"
            "comparisons:\n"
            "  - comparisonId: abc\n"
            "    packageId: pkg\n",
        )

        catalog = InMemoryCatalog.from_file(path)

        assert catalog.get_version("pkg", "1.0").revision == 2
        assert catalog.get_version("pkg", "0.9") is None
        assert catalog.get_version_including_deleted("pkg", "0.9@1").deleted is True
        assert catalog.get_version_comparison("abc").package_id == "pkg"

    def test_from_json(self, write_file):
        path = write_file("catalog.json", {"versions": [{"packageId": "pkg", "version": "1.0"}]})

        assert InMemoryCatalog.from_file(path).get_version("pkg", "1.0").revision == 1

    def test_invalid_revision(self):
        with pytest.raises(ValidationError):
            CatalogVersion(package_id="pkg", version="1.0", revision=0)
