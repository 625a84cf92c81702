"""Enumerations and value sets used by build-result manifests."""

from __future__ import annotations

from enum import Enum


class ApiType(str, Enum):
    """API type of an operation."""

    REST = "rest"
    GRAPHQL = "graphql"
    PROTOBUF = "protobuf"

    @classmethod
    def parse(cls, value: str) -> ApiType:
        """Parse an API type.

        Raises:
            ValueError: If the value is not a known API type
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown API Type: {value}") from None


class ApiAudience(str, Enum):
    """Intended audience of an operation."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    UNKNOWN = "unknown"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in _API_AUDIENCES


class VersionStatus(str, Enum):
    """Publication status of a version."""

    DRAFT = "draft"
    RELEASE = "release"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value: str) -> VersionStatus:
        """Parse a version status.

        Raises:
            ValueError: If the value is not a known status
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown version status: {value}") from None


class BuildType(str, Enum):
    """Kind of build that produced an archive."""

    BUILD = "build"
    CHANGELOG = "changelog"
    DOCUMENT_GROUP = "documentGroup"
    REDUCED_SOURCE_SPECIFICATIONS = "reducedSourceSpecifications"
    MERGED_SPECIFICATION = "mergedSpecification"


TRANSFORMED_BUILD_TYPES = frozenset(
    {
        BuildType.DOCUMENT_GROUP.value,
        BuildType.REDUCED_SOURCE_SPECIFICATIONS.value,
        BuildType.MERGED_SPECIFICATION.value,
    }
)


class PackageKind(str, Enum):
    """Catalog kind of the package being published."""

    PACKAGE = "package"
    GROUP = "group"


class DocumentFormat(str, Enum):
    """Format of a transformed documents bundle."""

    JSON = "json"
    YAML = "yaml"
    HTML = "html"


DEFAULT_FORMAT = DocumentFormat.JSON.value

DOCUMENT_TYPES = frozenset(
    {
        "openapi-3-1",
        "openapi-3-0",
        "openapi-2-0",
        "protobuf-3",
        "json-schema",
        "markdown",
        "graphql-schema",
        "graphapi",
        "introspection",
        "unknown",
    }
)

SCOPE_ALL = "all"

REST_SEARCH_SCOPES = frozenset(
    {SCOPE_ALL, "request", "response", "annotation", "examples", "properties"}
)
GRAPHQL_SEARCH_SCOPES = frozenset({SCOPE_ALL, "annotation", "argument", "property"})

GRAPHQL_OPERATION_TYPES = frozenset({"query", "mutation", "subscription"})
PROTOBUF_OPERATION_TYPES = frozenset(
    {"unary", "serverStreaming", "clientStreaming", "bidirectionalStreaming"}
)

_API_AUDIENCES = frozenset(a.value for a in ApiAudience)


def is_valid_document_type(value: str) -> bool:
    return value in DOCUMENT_TYPES
