"""Semantic rules on the manifests of the data streams of a package."""

from __future__ import annotations

import json
import posixpath
from typing import Any

from packagelint.errors import ValidationError
from packagelint.fields import DATA_STREAM_DIR, list_data_streams
from packagelint.pkgfiles import PackageFS, _load_yaml, find_files
from packagelint.versions import _parse_version, read_manifest_version

PACKAGE_MANIFEST = "manifest.yml"

_DS_READ = "failed to read data stream manifest"
_DS_PARSE = "failed to parse data stream manifest"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _manifest_path(data_stream: str) -> str:
    return posixpath.join(DATA_STREAM_DIR, data_stream, "manifest.yml")


def _load_map(fsys: PackageFS, path: str, read_label: str, parse_label: str) -> dict[str, Any]:
    location = _quote(fsys.path(path))
    try:
        data = fsys.read_bytes(path)
    except OSError as exc:
        raise ValueError(f"{read_label} in {location}: {exc}") from exc
    try:
        document = _load_yaml(data)
    except ValueError as exc:
        raise ValueError(f"{parse_label} in {location}: {exc}") from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(
            f"{parse_label} in {location}: expected a map, found {type(document).__name__}"
        )
    return document


def _string(document: dict[str, Any], key: str, parse_label: str, location: str) -> str:
    value = document.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(
        f"{parse_label} in {_quote(location)}: "
        f"cannot read {type(value).__name__} as string for key {key!r}"
    )


def _read_data_stream_field(fsys: PackageFS, data_stream: str, key: str) -> str:
    path = _manifest_path(data_stream)
    manifest = _load_map(fsys, path, _DS_READ, _DS_PARSE)
    return _string(manifest, key, _DS_PARSE, fsys.path(path))


def expected_ilm_policy_prefix(ds_type: str, package_name: str, data_stream: str) -> str:
    """Return the prefix an ILM policy name of a data stream must start with."""
    return f"{ds_type}-{package_name}.{data_stream}-"


def _read_package_name(fsys: PackageFS) -> str:
    manifest = _load_map(
        fsys, PACKAGE_MANIFEST, "failed to manifest", "failed to parse manifest"
    )
    return _string(manifest, "name", "failed to parse manifest", fsys.path(PACKAGE_MANIFEST))


def _check_ilm_policy(fsys: PackageFS, data_stream: str) -> None:
    manifest_path = _manifest_path(data_stream)
    manifest = _load_map(fsys, manifest_path, _DS_READ, _DS_PARSE)
    location = fsys.path(manifest_path)
    ds_type = _string(manifest, "type", _DS_PARSE, location)
    ilm_policy = _string(manifest, "ilm_policy", _DS_PARSE, location)
    if not ilm_policy:
        return

    package_name = _read_package_name(fsys)
    prefix = expected_ilm_policy_prefix(ds_type, package_name, data_stream)
    if not ilm_policy.startswith(prefix):
        raise ValueError(
            f'file "{location}" is invalid: field ilm_policy must start with '
            f'{_quote(prefix)}, found "{ilm_policy}"'
        )

    ilm_file = posixpath.join(
        DATA_STREAM_DIR, data_stream, "elasticsearch", "ilm", ilm_policy[len(prefix):] + ".json"
    )
    if not fsys.exists(ilm_file):
        raise ValueError(
            f'file "{location}" is invalid: field ilm_policy: ILM policy {_quote(ilm_policy)} '
            f'not found in package, expected definition in "{fsys.path(ilm_file)}"'
        )


def validate_ilm_policy_present(fsys: PackageFS) -> list[ValidationError]:
    """Check that ILM policies named by data streams are defined in the package."""
    try:
        data_streams = list_data_streams(fsys)
    except OSError as exc:
        return [ValidationError(str(exc))]
    errors = []
    for data_stream in data_streams:
        try:
            _check_ilm_policy(fsys, data_stream)
        except ValueError as exc:
            errors.append(ValidationError(str(exc)))
    return errors


def _check_profiling_not_used(fsys: PackageFS, data_stream: str) -> None:
    manifest_path = _manifest_path(data_stream)
    if _read_data_stream_field(fsys, data_stream, "type") == "profiling":
        raise ValueError(
            f'file "{fsys.path(manifest_path)}" is invalid: '
            "profiling data type cannot be used in GA packages"
        )


def validate_profiling_non_ga(fsys: PackageFS) -> list[ValidationError]:
    """Check that GA packages do not use the profiling data type."""
    try:
        version = _parse_version(read_manifest_version(fsys))
    except ValueError as exc:
        return [ValidationError(str(exc))]
    if version.major == 0 or version.prerelease:
        return []
    try:
        data_streams = list_data_streams(fsys)
    except OSError as exc:
        return [ValidationError(str(exc))]
    errors = []
    for data_stream in data_streams:
        try:
            _check_profiling_not_used(fsys, data_stream)
        except ValueError as exc:
            errors.append(ValidationError(str(exc)))
    return errors


def any_routing_rules_in_data_stream(fsys: PackageFS, data_stream: str) -> bool:
    """Tell whether a data stream defines at least one routing rule."""
    rules_path = posixpath.join(DATA_STREAM_DIR, data_stream, "routing_rules.yml")
    try:
        files = find_files(fsys, rules_path)
    except (OSError, ValueError):
        return False
    if not files:
        return False
    if len(files) != 1:
        raise ValueError("single routing rules expected")
    try:
        rules = files[0].values("$[*]")
    except (LookupError, ValueError) as exc:
        raise ValueError(f"can't read routing_rules: {exc}") from exc
    if not isinstance(rules, list):
        raise ValueError("routing rules conversion error")
    return len(rules) > 0


def _check_dataset(fsys: PackageFS, data_stream: str) -> None:
    if not _read_data_stream_field(fsys, data_stream, "dataset"):
        raise ValueError(
            f"dataset field is required in manifest for data stream {_quote(data_stream)}"
        )


def validate_routing_rules_and_dataset(fsys: PackageFS) -> list[ValidationError]:
    """Check that data streams with routing rules declare their dataset."""
    try:
        data_streams = list_data_streams(fsys)
    except OSError as exc:
        return [ValidationError(str(exc))]
    errors = []
    for data_stream in data_streams:
        try:
            has_rules = any_routing_rules_in_data_stream(fsys, data_stream)
        except ValueError:
            continue
        if not has_rules:
            continue
        try:
            _check_dataset(fsys, data_stream)
        except ValueError as exc:
            errors.append(
                ValidationError(
                    f"routing rules defined in data stream {_quote(data_stream)} "
                    f"but dataset field is missing: {exc}"
                )
            )
    return errors