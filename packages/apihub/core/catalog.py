"""Catalog lookups consumed during semantic validation.

The ingestion core never writes to the catalog. It only asks whether a
package version, a specific revision, or a cached comparison already exists.
``InMemoryCatalog`` is a fixture-backed implementation used by the CLI and
tests; a service wires a database-backed implementation instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from apihub.core.config.loader import load_config
from apihub.core.utils.hashing import make_version_comparison_id

logger = logging.getLogger(__name__)


class CatalogVersion(BaseModel):
    """Stored package version revision."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    package_id: str
    version: str
    revision: int = Field(default=1, ge=1)
    status: str = "draft"
    deleted_at: datetime | None = None

    @property
    def deleted(self) -> bool:
        return self.deleted_at is not None


class CatalogComparison(BaseModel):
    """Stored version comparison."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    comparison_id: str
    package_id: str = ""
    version: str = ""
    revision: int = 0
    previous_package_id: str = ""
    previous_version: str = ""
    previous_revision: int = 0


class CatalogFixture(BaseModel):
    """On-disk shape of an in-memory catalog."""

    versions: list[CatalogVersion] = Field(default_factory=list)
    comparisons: list[CatalogComparison] = Field(default_factory=list)


@runtime_checkable
class CatalogLookup(Protocol):
    """Read-only catalog queries.

    ``None`` means "not found". Any exception raised by an implementation is
    an infrastructure failure and is propagated to the caller unchanged.
    """

    def get_version(self, package_id: str, version: str) -> CatalogVersion | None:
        """Latest active revision of a version."""
        ...

    def get_version_by_revision(
        self, package_id: str, version: str, revision: int
    ) -> CatalogVersion | None:
        """Exact active revision."""
        ...

    def get_version_including_deleted(
        self, package_id: str, version_ref_key: str
    ) -> CatalogVersion | None:
        """Version by ``<version>@<revision>`` or bare version, soft-deleted included."""
        ...

    def get_version_comparison(self, comparison_id: str) -> CatalogComparison | None:
        """Stored comparison by its deterministic id."""
        ...


class InMemoryCatalog:
    """Dict-backed ``CatalogLookup``.

    Example:
        >>> catalog = InMemoryCatalog()
        >>> catalog.add_version("pkg", "1.0", revision=2)
        >>> catalog.get_version("pkg", "1.0").revision
        2
    """

    def __init__(self) -> None:
        self._versions: dict[tuple[str, str], dict[int, CatalogVersion]] = {}
        self._comparisons: dict[str, CatalogComparison] = {}

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def add_version(
        self,
        package_id: str,
        version: str,
        revision: int = 1,
        status: str = "draft",
        deleted_at: datetime | None = None,
    ) -> CatalogVersion:
        record = CatalogVersion(
            package_id=package_id,
            version=version,
            revision=revision,
            status=status,
            deleted_at=deleted_at,
        )
        self._versions.setdefault((package_id, version), {})[revision] = record
        return record

    def soft_delete(self, package_id: str, version: str, when: datetime) -> None:
        """Mark every revision of a version deleted."""
        for rev, record in self._versions.get((package_id, version), {}).items():
            self._versions[(package_id, version)][rev] = record.model_copy(
                update={"deleted_at": when}
            )

    def add_comparison(
        self,
        package_id: str,
        version: str,
        revision: int,
        previous_package_id: str,
        previous_version: str,
        previous_revision: int,
    ) -> CatalogComparison:
        comparison_id = make_version_comparison_id(
            package_id, version, revision, previous_package_id, previous_version, previous_revision
        )
        record = CatalogComparison(
            comparison_id=comparison_id,
            package_id=package_id,
            version=version,
            revision=revision,
            previous_package_id=previous_package_id,
            previous_version=previous_version,
            previous_revision=previous_revision,
        )
        self._comparisons[comparison_id] = record
        return record

    @classmethod
    def from_fixture(cls, fixture: CatalogFixture) -> InMemoryCatalog:
        catalog = cls()
        for v in fixture.versions:
            catalog._versions.setdefault((v.package_id, v.version), {})[v.revision] = v
        for c in fixture.comparisons:
            catalog._comparisons[c.comparison_id] = c
        return catalog

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryCatalog:
        """Load a catalog from a JSON or YAML fixture.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the format is unsupported
            pydantic.ValidationError: If the content doesn't match ``CatalogFixture``
        """
        fixture = CatalogFixture.model_validate(load_config(path))
        logger.debug(
            "Loaded catalog fixture %s: %d versions, %d comparisons",
            path,
            len(fixture.versions),
            len(fixture.comparisons),
        )
        return cls.from_fixture(fixture)

    # ------------------------------------------------------------------
    # CatalogLookup
    # ------------------------------------------------------------------

    def get_version(self, package_id: str, version: str) -> CatalogVersion | None:
        active = [r for r in self._revisions(package_id, version) if not r.deleted]
        return max(active, key=lambda r: r.revision, default=None)

    def get_version_by_revision(
        self, package_id: str, version: str, revision: int
    ) -> CatalogVersion | None:
        record = self._versions.get((package_id, version), {}).get(revision)
        if record is None or record.deleted:
            return None
        return record

    def get_version_including_deleted(
        self, package_id: str, version_ref_key: str
    ) -> CatalogVersion | None:
        version, _, rev = version_ref_key.partition("@")
        if rev:
            if not rev.isdigit():
                return None
            return self._versions.get((package_id, version), {}).get(int(rev))
        return max(self._revisions(package_id, version), key=lambda r: r.revision, default=None)

    def get_version_comparison(self, comparison_id: str) -> CatalogComparison | None:
        return self._comparisons.get(comparison_id)

    def _revisions(self, package_id: str, version: str) -> list[CatalogVersion]:
        return list(self._versions.get((package_id, version), {}).values())
