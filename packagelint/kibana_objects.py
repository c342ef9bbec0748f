"""Semantic rules on the Kibana saved objects shipped in a package."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from packagelint.errors import ErrorCode, ValidationError
from packagelint.pkgfiles import PackageFile, PackageFS, find_files

KIBANA_OBJECTS_PATTERN = "kibana/*/*.json"
DASHBOARDS_PATTERN = "kibana/dashboard/*.json"

BY_REFERENCE_TYPES = frozenset({"lens", "map", "search", "visualization"})

# Assets that are referenced by objects but are not expected to be shipped.
EXCEPTION_ASSETS = ("index-pattern",)


@dataclass(frozen=True)
class Reference:
    """A reference from one saved object to another."""

    id: str
    name: str
    type: str


@dataclass(frozen=True)
class _ObjectReference:
    object_type: str
    object_id: str
    file_path: str


def to_reference_list(value: Any) -> list[Reference]:
    """Build references from a parsed ``references`` list."""
    if not isinstance(value, list):
        raise ValueError("conversion error to array")
    references = []
    for item in value:
        if not isinstance(item, dict):
            raise ValueError("conversion error to reference element")
        entries = {key: item.get(key) for key in ("id", "type", "name")}
        for key, entry in entries.items():
            if not isinstance(entry, str):
                raise ValueError(f"conversion error: reference {key} is not a string")
        references.append(Reference(id=entries["id"], name=entries["name"], type=entries["type"]))
    return references


def _convert(value: Any) -> list[Reference]:
    try:
        return to_reference_list(value)
    except ValueError as exc:
        raise ValueError(f"unable to convert references: {exc}") from exc


def any_reference(value: Any) -> list[Reference]:
    """Return the references to visualizations made by reference rather than by value."""
    return [ref for ref in _convert(value) if ref.type in BY_REFERENCE_TYPES]


def filter_references(value: Any, exceptions: Iterable[str]) -> list[Reference]:
    """Return the references whose type is not among the exceptions."""
    excluded = set(exceptions)
    return [ref for ref in _convert(value) if ref.type not in excluded]


def validate_visualizations_used_by_value(fsys: PackageFS) -> list[ValidationError]:
    """Report dashboards that embed visualizations by reference instead of by value."""
    try:
        dashboards = find_files(fsys, DASHBOARDS_PATTERN)
    except (OSError, ValueError) as exc:
        return [ValidationError(f"error finding Kibana Dashboard files: {exc}")]

    errors: list[ValidationError] = []
    for dashboard in dashboards:
        try:
            raw_references = dashboard.values("$.references")
        except (LookupError, ValueError):
            continue
        try:
            references = any_reference(raw_references)
        except ValueError as exc:
            errors.append(
                ValidationError(
                    f"error getting references in file: {fsys.path(dashboard.path)}: {exc}"
                )
            )
            references = []
        if references:
            listed = ", ".join(f"{ref.id} ({ref.type})" for ref in references)
            errors.append(
                ValidationError(
                    f"references found in dashboard {dashboard.path}: {listed}",
                    ErrorCode.VISUALIZATION_BY_VALUE,
                )
            )
    return errors


def _check_security_rule(fsys: PackageFS, item: PackageFile, object_id: Any) -> str | None:
    """Return an error message if a security rule's ID does not start with its rule ID."""
    try:
        rule_id = item.values("$.attributes.rule_id")
    except (LookupError, ValueError) as exc:
        return f"unable to get rule ID in file [{fsys.path(item.path)}]: {exc}"
    if not isinstance(object_id, str):
        return "expect object ID to be a string"
    if not isinstance(rule_id, str):
        return "expect rule ID to be a string"
    if not object_id.startswith(rule_id):
        return f"kibana object ID [{object_id}] should start with rule ID [{rule_id}]"
    return None


def validate_kibana_object_ids(fsys: PackageFS) -> list[ValidationError]:
    """Report Kibana object files whose object ID differs from the file name."""
    try:
        objects = find_files(fsys, KIBANA_OBJECTS_PATTERN)
    except (OSError, ValueError) as exc:
        return [ValidationError(f"error finding Kibana object files: {exc}")]

    errors: list[ValidationError] = []
    for item in objects:
        try:
            object_id = item.values("$.id")
        except (LookupError, ValueError) as exc:
            errors.append(
                ValidationError(
                    f"unable to get Kibana object ID in file [{fsys.path(item.path)}]: {exc}"
                )
            )
            continue

        if posixpath.basename(posixpath.dirname(item.path)) == "security_rule":
            problem = _check_security_rule(fsys, item, object_id)
            if problem is not None:
                errors.append(ValidationError(problem))
                continue

        file_name = posixpath.basename(item.path)
        extension = posixpath.splitext(item.path)[1]
        file_id = file_name.replace(extension, "") if extension else file_name
        if file_id != object_id:
            errors.append(
                ValidationError(
                    f"kibana object file [{fsys.path(item.path)}] "
                    f"defines non-matching ID [{object_id}]"
                )
            )
    return errors


def _current_reference(item: PackageFile, file_path: str) -> _ObjectReference:
    try:
        object_id = item.values("$.id")
    except (LookupError, ValueError) as exc:
        raise ValueError(f"unable to get ID field : {exc}") from exc
    if not isinstance(object_id, str):
        raise ValueError("expect value ID to be a string")
    try:
        object_type = item.values("$.type")
    except (LookupError, ValueError) as exc:
        raise ValueError(f"unable to get Type field : {exc}") from exc
    if not isinstance(object_type, str):
        raise ValueError("expect value Type to be a string")
    return _ObjectReference(object_type=object_type, object_id=object_id, file_path=file_path)


def _referenced_objects(item: PackageFile, file_path: str) -> list[_ObjectReference]:
    try:
        raw_references = item.values("$.references")
    except (LookupError, ValueError):
        return []
    try:
        references = filter_references(raw_references, EXCEPTION_ASSETS)
    except ValueError as exc:
        raise ValueError(f"error getting references: {exc}") from exc
    return [
        _ObjectReference(object_type=ref.type, object_id=ref.id, file_path=file_path)
        for ref in references
    ]


def validate_kibana_no_dangling_object_ids(fsys: PackageFS) -> list[ValidationError]:
    """Report references to Kibana objects that the package does not ship."""
    try:
        objects = find_files(fsys, KIBANA_OBJECTS_PATTERN)
    except (OSError, ValueError) as exc:
        return [ValidationError(f"error finding Kibana object files: {exc}")]

    errors: list[ValidationError] = []
    installed: set[tuple[str, str]] = set()
    referenced: list[_ObjectReference] = []
    for item in objects:
        display_path = fsys.path(item.path)
        try:
            current = _current_reference(item, display_path)
            installed.add((current.object_id, current.object_type))
        except ValueError as exc:
            errors.append(
                ValidationError(f"unable to create reference from file [{display_path}]: {exc}")
            )
            installed.add(("", ""))
        try:
            referenced.extend(_referenced_objects(item, display_path))
        except ValueError as exc:
            errors.append(
                ValidationError(
                    f"unable to create referenced objects from file [{display_path}]: {exc}"
                )
            )

    for reference in referenced:
        if (reference.object_id, reference.object_type) not in installed:
            errors.append(
                ValidationError(
                    f'file "{reference.file_path}" is invalid: dangling reference found: '
                    f"{reference.object_id} ({reference.object_type})",
                    ErrorCode.KIBANA_DANGLING_OBJECTS_IDS,
                )
            )
    return errors