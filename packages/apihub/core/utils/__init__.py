"""Shared utilities for apihub ingestion."""

from apihub.core.utils.hashing import (
    get_encoded_checksum,
    make_operation_group_id,
    make_version_comparison_id,
)
from apihub.core.utils.json import dumps_bytes, read_json
from apihub.core.utils.refs import (
    make_package_version_ref_key,
    make_version_ref_key,
    split_file_id,
    split_version_revision,
)

__all__ = [
    "dumps_bytes",
    "get_encoded_checksum",
    "make_operation_group_id",
    "make_package_version_ref_key",
    "make_version_comparison_id",
    "make_version_ref_key",
    "read_json",
    "split_file_id",
    "split_version_revision",
]
