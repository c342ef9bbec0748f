"""Field definitions of a package and walking them with a per-field check."""

from __future__ import annotations

import dataclasses
import posixpath
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from packagelint.errors import ValidationError
from packagelint.pkgfiles import PackageFS, _load_yaml

DATA_STREAM_DIR = "data_stream"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass
class RuntimeField:
    """The ``runtime`` setting of a field: a switch or a script."""

    enabled: bool = False
    script: str = ""

    def is_enabled(self) -> bool:
        """Tell whether the field is a runtime field."""
        return self.enabled or self.script != ""

    def __str__(self) -> str:
        if self.script:
            return self.script
        return "true" if self.enabled else "false"


def parse_runtime(value: Any) -> RuntimeField:
    """Build a RuntimeField from a parsed ``runtime`` value."""
    if value is None:
        return RuntimeField()
    if isinstance(value, bool):
        return RuntimeField(enabled=value)
    if isinstance(value, str):
        if value in _TRUE_WORDS:
            return RuntimeField(enabled=True)
        if value in _FALSE_WORDS:
            return RuntimeField(enabled=False)
        return RuntimeField(enabled=True, script=value)
    if isinstance(value, (int, float)):
        return RuntimeField(enabled=True, script=str(value))
    return RuntimeField(enabled=True, script="")


@dataclass
class Field:
    """One field definition, possibly holding nested fields."""

    name: str = ""
    type: str = ""
    unit: str = ""
    date_format: str = ""
    metric_type: str = ""
    dimension: bool = False
    external: str = ""
    runtime: RuntimeField = dataclasses.field(default_factory=RuntimeField)
    fields: list[Field] = dataclasses.field(default_factory=list)


@dataclass(frozen=True)
class FieldFileMetadata:
    """Where a fields file lives and which data stream it belongs to."""

    data_stream: str = ""
    file_path: str = ""
    full_file_path: str = ""


def _as_string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"cannot read {type(value).__name__} as string for key {key!r}")


def _as_bool(value: Any, key: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    raise ValueError(f"cannot read {type(value).__name__} as bool for key {key!r}")


def _parse_field(item: Any) -> Field:
    if not isinstance(item, dict):
        raise ValueError(f"field definition must be a map, found {type(item).__name__}")
    return Field(
        name=_as_string(item.get("name"), "name"),
        type=_as_string(item.get("type"), "type"),
        unit=_as_string(item.get("unit"), "unit"),
        date_format=_as_string(item.get("date_format"), "date_format"),
        metric_type=_as_string(item.get("metric_type"), "metric_type"),
        dimension=_as_bool(item.get("dimension"), "dimension"),
        external=_as_string(item.get("external"), "external"),
        runtime=parse_runtime(item.get("runtime")),
        fields=parse_fields(item.get("fields")),
    )


def parse_fields(data: Any) -> list[Field]:
    """Build field definitions from a parsed list of maps."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"fields must be a list, found {type(data).__name__}")
    return [_parse_field(item) for item in data]


def list_data_streams(fsys: PackageFS) -> list[str]:
    """Return the names in the data stream folder, or none if it is absent."""
    try:
        return fsys.list_dir(DATA_STREAM_DIR)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise OSError(f"can't list data streams directory: {exc}") from exc


def read_fields_folder(fsys: PackageFS, fields_dir: str) -> list[str]:
    """Return the paths of the files in a fields folder, or none if it is absent."""
    try:
        names = fsys.list_dir(fields_dir)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise OSError(
            f"can't list fields directory (path: {fsys.path(fields_dir)}): {exc}"
        ) from exc
    return [posixpath.join(fields_dir, name) for name in names]


def list_fields_files(fsys: PackageFS) -> list[FieldFileMetadata]:
    """List the fields files of every data stream, then those of an input package."""
    metadata = []
    for data_stream in list_data_streams(fsys):
        fields_dir = posixpath.join(DATA_STREAM_DIR, data_stream, "fields")
        try:
            files = read_fields_folder(fsys, fields_dir)
        except OSError as exc:
            raise OSError(f"cannot read fields file from integration packages: {exc}") from exc
        metadata.extend(
            FieldFileMetadata(data_stream=data_stream, file_path=f, full_file_path=fsys.path(f))
            for f in files
        )
    try:
        files = read_fields_folder(fsys, "fields")
    except OSError as exc:
        raise OSError(f"cannot read fields file from input packages: {exc}") from exc
    metadata.extend(
        FieldFileMetadata(data_stream="", file_path=f, full_file_path=fsys.path(f)) for f in files
    )
    return metadata


def unmarshal_fields(fsys: PackageFS, fields_path: str) -> list[Field]:
    """Read and parse a fields file."""
    try:
        content = fsys.read_bytes(fields_path)
    except OSError as exc:
        raise ValueError(f"can't read file (path: {fields_path}): {exc}") from exc
    try:
        return parse_fields(_load_yaml(content))
    except ValueError as exc:
        raise ValueError(f"yaml.Unmarshal failed (path: {fields_path}): {exc}") from exc


FieldCheck = Callable[[FieldFileMetadata, Field], "Iterable[ValidationError] | None"]


def validate_nested_fields(
    parent: str,
    metadata: FieldFileMetadata,
    fields: Iterable[Field],
    validate: FieldCheck,
) -> list[ValidationError]:
    """Run a check on each field and its nested fields, with dotted full names."""
    result: list[ValidationError] = []
    for item in fields:
        if parent:
            item = dataclasses.replace(item, name=f"{parent}.{item.name}")
        result.extend(validate(metadata, item) or [])
        if item.fields:
            result.extend(validate_nested_fields(item.name, metadata, item.fields, validate))
    return result


def validate_fields(fsys: PackageFS, validate: FieldCheck) -> list[ValidationError]:
    """Run a check on every field of every fields file in the package."""
    try:
        files = list_fields_files(fsys)
    except OSError as exc:
        return [ValidationError(f"can't list fields files: {exc}")]
    errors: list[ValidationError] = []
    for metadata in files:
        try:
            fields = unmarshal_fields(fsys, metadata.file_path)
        except ValueError as exc:
            errors.append(
                ValidationError(
                    f'file "{metadata.file_path}" is invalid: can\'t unmarshal fields: {exc}'
                )
            )
            fields = []
        errors.extend(validate_nested_fields("", metadata, fields, validate))
    return errors