"""Semantic rules that check the field definitions of a package."""

from __future__ import annotations

import json
import posixpath
from collections.abc import Callable, Mapping
from typing import Any

from packagelint.errors import ValidationError
from packagelint.fields import (
    DATA_STREAM_DIR,
    Field,
    FieldFileMetadata,
    list_data_streams,
    validate_fields,
)
from packagelint.pkgfiles import PackageFile, PackageFS, _load_yaml, find_files

ALLOWED_DIMENSION_TYPES = (
    # Keywords
    "constant_keyword",
    "keyword",
    # Numeric types
    "long",
    "integer",
    "short",
    "byte",
    "double",
    "float",
    "half_float",
    "scaled_float",
    "unsigned_long",
    # IPs
    "ip",
)

REQUIRED_FIELDS = {
    "data_stream.type": "constant_keyword",
    "data_stream.dataset": "constant_keyword",
    "data_stream.namespace": "constant_keyword",
    "@timestamp": "date",
}

DEV_BUILD_PATH = "_dev/build/build.yml"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def validate_date_field(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
    """Reject a date format on a field that is not of date type."""
    if field.type != "date" and field.date_format:
        return [
            ValidationError(
                f'file "{metadata.full_file_path}" is invalid: field "{field.name}" of type '
                f"{field.type} can't set date_format. date_format is allowed for date field type only"
            )
        ]
    return []


def validate_date_fields(fsys: PackageFS) -> list[ValidationError]:
    """Check that only date fields set a date format."""
    return validate_fields(fsys, validate_date_field)


def is_allowed_dimension_type(field_type: str) -> bool:
    """Tell whether fields of this type may be dimensions."""
    return field_type in ALLOWED_DIMENSION_TYPES


def validate_dimension_field(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
    """Reject a dimension field whose type cannot be a dimension."""
    if field.external:
        # External fields cannot be resolved here, so they are accepted as they are.
        return []
    if field.dimension and not is_allowed_dimension_type(field.type):
        return [
            ValidationError(
                f'file "{metadata.full_file_path}" is invalid: field "{field.name}" of type '
                f"{field.type} can't be a dimension, allowed types for dimensions: "
                f"{', '.join(ALLOWED_DIMENSION_TYPES)}"
            )
        ]
    return []


def validate_dimension_fields(fsys: PackageFS) -> list[ValidationError]:
    """Check that dimension fields have an allowed type."""
    return validate_fields(fsys, validate_dimension_field)


def _read_yaml_map(fsys: PackageFS, path: str) -> Mapping[str, Any]:
    try:
        data = fsys.read_bytes(path)
    except OSError as exc:
        raise ValueError(
            f"failed to read data stream manifest in {_quote(fsys.path(path))}: {exc}"
        ) from exc
    try:
        document = _load_yaml(data)
    except ValueError as exc:
        raise ValueError(
            f"failed to parse data stream manifest in {_quote(fsys.path(path))}: {exc}"
        ) from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(
            f"failed to parse data stream manifest in {_quote(fsys.path(path))}: "
            f"expected a map, found {type(document).__name__}"
        )
    return document


def is_time_series_mode_enabled(fsys: PackageFS, data_stream: str) -> bool:
    """Tell whether a data stream's manifest sets the time series index mode."""
    manifest_path = posixpath.join(DATA_STREAM_DIR, data_stream, "manifest.yml")
    manifest = _read_yaml_map(fsys, manifest_path)
    elasticsearch = manifest.get("elasticsearch")
    if elasticsearch is None:
        return False
    if not isinstance(elasticsearch, dict):
        raise ValueError(
            f"failed to parse data stream manifest in {_quote(fsys.path(manifest_path))}: "
            "elasticsearch must be a map"
        )
    return elasticsearch.get("index_mode") == "time_series"


def validate_dimensions_present(fsys: PackageFS) -> list[ValidationError]:
    """Check that data streams in time series mode define at least one dimension."""
    with_dimensions: set[str] = set()

    def record(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
        if field.dimension:
            with_dimensions.add(metadata.data_stream)
        return []

    errors = validate_fields(fsys, record)
    if errors:
        return errors

    try:
        data_streams = list_data_streams(fsys)
    except OSError as exc:
        return [ValidationError(str(exc))]
    for data_stream in data_streams:
        try:
            enabled = is_time_series_mode_enabled(fsys, data_stream)
        except ValueError as exc:
            return [ValidationError(str(exc))]
        if enabled and data_stream not in with_dimensions:
            errors.append(
                ValidationError(
                    f'file "{fsys.path(DATA_STREAM_DIR, data_stream, "manifest.yml")}" is invalid: '
                    "time series mode enabled but no dimensions configured"
                )
            )
    return errors


def validate_field_unit(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
    """Reject units and metric types on field groups."""
    if field.type == "group" and field.unit:
        return [
            ValidationError(
                f'file "{metadata.full_file_path}" is invalid: field "{field.name}" '
                "can't have unit property'"
            )
        ]
    if field.type == "group" and field.metric_type:
        return [
            ValidationError(
                f'file "{metadata.full_file_path}" is invalid: field "{field.name}" '
                "can't have metric type property'"
            )
        ]
    return []


def validate_field_groups(fsys: PackageFS) -> list[ValidationError]:
    """Check that field groups define neither units nor metric types."""
    return validate_fields(fsys, validate_field_unit)


def validate_fields_limits(limit: int) -> Callable[[PackageFS], list[ValidationError]]:
    """Build a rule that limits the number of leaf fields per data stream."""

    def rule(fsys: PackageFS) -> list[ValidationError]:
        counts: dict[str, int] = {}

        def count(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
            if field.fields:
                return []
            counts[metadata.data_stream] = counts.get(metadata.data_stream, 0) + 1
            return []

        errors = validate_fields(fsys, count)
        if errors:
            return errors
        return [
            ValidationError(f"data stream {data_stream} has more than {limit} fields ({total})")
            for data_stream, total in counts.items()
            if total > limit
        ]

    return rule


def validate_unique_fields(fsys: PackageFS) -> list[ValidationError]:
    """Check that each leaf field is defined only once per data stream."""
    definitions: dict[str, dict[str, list[str]]] = {}

    def record(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
        if field.fields:
            return []
        by_name = definitions.setdefault(metadata.data_stream, {})
        by_name.setdefault(field.name, []).append(metadata.full_file_path)
        return []

    errors = validate_fields(fsys, record)
    if errors:
        return errors
    result = []
    for data_stream, by_name in definitions.items():
        for name, files in by_name.items():
            if len(files) > 1:
                result.append(
                    ValidationError(
                        f"field {_quote(name)} is defined multiple times for data stream "
                        f"{_quote(data_stream)}, found in: {', '.join(sorted(files))}"
                    )
                )
    return result


def check_required_fields(
    fsys: PackageFS, required_fields: Mapping[str, str]
) -> list[ValidationError]:
    """Check that every required field is present with its expected type."""
    found: dict[str, set[str]] = {}

    def check(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
        found.setdefault(metadata.data_stream, set()).add(field.name)
        expected = required_fields.get(field.name)
        if expected is None:
            return []
        # External fields carry no type in their definition.
        if not field.external and field.type != expected:
            return [
                ValidationError(
                    f"expected type {_quote(expected)} for required field {_quote(field.name)}, "
                    f"found {_quote(field.type)} in {_quote(metadata.full_file_path)}"
                )
            ]
        return []

    errors = validate_fields(fsys, check)
    for data_stream, names in found.items():
        for required_name, required_type in required_fields.items():
            if required_name in names:
                continue
            message = (
                f"expected field {_quote(required_name)} with type "
                f"{_quote(required_type)} not found"
            )
            if data_stream:
                message = f"{message} in datastream {_quote(data_stream)}"
            errors.append(ValidationError(message))
    return errors


def validate_required_fields(fsys: PackageFS) -> list[ValidationError]:
    """Check that the standard data stream fields and timestamp are defined."""
    return check_required_fields(fsys, REQUIRED_FIELDS)


def read_dev_build_dependencies_keys(file: PackageFile) -> list[str]:
    """Return the dependency names declared in a build file."""
    try:
        value = file.values("$.dependencies")
    except (LookupError, ValueError) as exc:
        raise ValueError(f"can't read dependencies: {exc}") from exc
    if not isinstance(value, dict):
        raise ValueError(
            f"dependencies expected to be a map, found {type(value).__name__}: {value}"
        )
    return [str(key) for key in value]


def validate_external_fields_with_dev_folder(fsys: PackageFS) -> list[ValidationError]:
    """Check that external fields refer to dependencies declared in the build file."""
    try:
        files = find_files(fsys, DEV_BUILD_PATH)
    except (OSError, ValueError) as exc:
        return [ValidationError(f"not able to read {DEV_BUILD_PATH}: {exc}")]

    build_defined = len(files) == 1
    dependencies: set[str] = set()
    if build_defined:
        try:
            dependencies = set(read_dev_build_dependencies_keys(files[0]))
        except ValueError as exc:
            return [ValidationError(str(exc))]

    def check(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
        if not field.external:
            return []
        if not build_defined:
            return [
                ValidationError(
                    f'file "{metadata.full_file_path}" is invalid: field {field.name} with '
                    f"external key defined ({_quote(field.external)}) but no "
                    f"{DEV_BUILD_PATH} found"
                )
            ]
        if field.external not in dependencies:
            return [
                ValidationError(
                    f'file "{metadata.full_file_path}" is invalid: field {field.name} with '
                    f"external key defined ({_quote(field.external)}) but no definition "
                    f"found for it ({DEV_BUILD_PATH})"
                )
            ]
        return []

    return validate_fields(fsys, check)