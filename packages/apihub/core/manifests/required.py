"""Required-field checks for manifest models."""

from __future__ import annotations

from typing import Any

from apihub.core.manifests.models import ManifestModel


def missing_required_fields(model: ManifestModel, path: str = "") -> list[str]:
    """Collect dotted JSON paths of required values that are absent.

    A required value is missing when it is ``None`` or an empty string. Lists
    of nested manifest models are walked item by item.

    Args:
        model: Manifest record to check
        path: Prefix for reported paths

    Returns:
        Paths such as ``documents[0].slug``, in declaration order

    Example:
        >>> missing_required_fields(PackageInfo(package_id="p", status="draft"))
        ['version']
    """
    missing: list[str] = []
    fields = type(model).model_fields
    for name, field in fields.items():
        value = getattr(model, name)
        json_name = field.alias or name
        field_path = f"{path}.{json_name}" if path else json_name
        if name in model.required_fields and _is_empty(value):
            missing.append(field_path)
            continue
        if isinstance(value, ManifestModel):
            missing.extend(missing_required_fields(value, field_path))
        elif isinstance(value, list):
            for i, item in enumerate(value):
                if isinstance(item, ManifestModel):
                    missing.extend(missing_required_fields(item, f"{field_path}[{i}]"))
    return missing


def _is_empty(value: Any) -> bool:
    return value is None or value == ""
