"""Checks on groups of variables of which at least one group must be set."""

from __future__ import annotations

import dataclasses
import json
import posixpath
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from packagelint.errors import ValidationError
from packagelint.fields import DATA_STREAM_DIR, list_data_streams
from packagelint.pkgfiles import PackageFS, _load_yaml

PACKAGE_MANIFEST = "manifest.yml"


@dataclass(frozen=True)
class ManifestVar:
    """A variable declared in a manifest."""

    name: str = ""
    required: bool = False


@dataclass
class PolicyInput:
    """An input of a policy template."""

    type: str = ""
    vars: list[ManifestVar] = dataclasses.field(default_factory=list)
    required_vars: dict[str, list[ManifestVar]] = dataclasses.field(default_factory=dict)


@dataclass
class PolicyTemplate:
    """A policy template of a package."""

    vars: list[ManifestVar] = dataclasses.field(default_factory=list)
    inputs: list[PolicyInput] = dataclasses.field(default_factory=list)


@dataclass
class PackageVarsManifest:
    """The variable declarations of a package manifest."""

    vars: list[ManifestVar] = dataclasses.field(default_factory=list)
    policy_templates: list[PolicyTemplate] = dataclasses.field(default_factory=list)

    def find_input_vars(self, input_type: str) -> list[ManifestVar]:
        """Return the variables of the first input of the given type."""
        for template in self.policy_templates:
            for policy_input in template.inputs:
                if policy_input.type == input_type:
                    return policy_input.vars
        return []


@dataclass
class DataStreamStream:
    """A stream of a data stream manifest."""

    input: str = ""
    vars: list[ManifestVar] = dataclasses.field(default_factory=list)
    required_vars: dict[str, list[ManifestVar]] = dataclasses.field(default_factory=dict)


@dataclass
class DataStreamVarsManifest:
    """The variable declarations of a data stream manifest."""

    streams: list[DataStreamStream] = dataclasses.field(default_factory=list)


def _map(value: Any, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a map, found {type(value).__name__}")
    return value


def _list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list, found {type(value).__name__}")
    return value


def _string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"cannot read {type(value).__name__} as string for key {key!r}")


def _bool(value: Any, key: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    raise ValueError(f"cannot read {type(value).__name__} as bool for key {key!r}")


def _vars(value: Any) -> list[ManifestVar]:
    result = []
    for item in _list(value, "vars"):
        item = _map(item, "var")
        result.append(
            ManifestVar(
                name=_string(item.get("name"), "name"),
                required=_bool(item.get("required"), "required"),
            )
        )
    return result


def _required_vars(value: Any) -> dict[str, list[ManifestVar]]:
    return {str(group): _vars(items) for group, items in _map(value, "required_vars").items()}


def _document(data: bytes | str) -> dict[str, Any]:
    return _map(_load_yaml(data), "manifest")


def parse_package_manifest(data: bytes | str) -> PackageVarsManifest:
    """Parse the variable declarations of a package manifest."""
    document = _document(data)
    templates = []
    for template in _list(document.get("policy_templates"), "policy_templates"):
        template = _map(template, "policy template")
        inputs = []
        for item in _list(template.get("inputs"), "inputs"):
            item = _map(item, "input")
            inputs.append(
                PolicyInput(
                    type=_string(item.get("type"), "type"),
                    vars=_vars(item.get("vars")),
                    required_vars=_required_vars(item.get("required_vars")),
                )
            )
        templates.append(PolicyTemplate(vars=_vars(template.get("vars")), inputs=inputs))
    return PackageVarsManifest(vars=_vars(document.get("vars")), policy_templates=templates)


def parse_data_stream_manifest(data: bytes | str) -> DataStreamVarsManifest:
    """Parse the variable declarations of a data stream manifest."""
    document = _document(data)
    streams = []
    for stream in _list(document.get("streams"), "streams"):
        stream = _map(stream, "stream")
        streams.append(
            DataStreamStream(
                input=_string(stream.get("input"), "input"),
                vars=_vars(stream.get("vars")),
                required_vars=_required_vars(stream.get("required_vars")),
            )
        )
    return DataStreamVarsManifest(streams=streams)


def validate_required_vars_defined(
    path: str, variables: Iterable[ManifestVar], required_vars: Iterable[ManifestVar]
) -> list[ValidationError]:
    """Check that each variable of a group is defined and not always required."""
    variables = list(variables)
    errors = []
    for required in required_vars:
        if not required.name:
            continue
        match = next((v for v in variables if v.name == required.name), None)
        if match is None:
            errors.append(
                ValidationError(
                    f'file "{path}" is invalid: required var {json.dumps(required.name)} '
                    "in optional group is not defined"
                )
            )
        elif match.required:
            errors.append(
                ValidationError(
                    f'file "{path}" is invalid: required var {json.dumps(required.name)} '
                    "in optional group is defined as always required"
                )
            )
    return errors


def validate_required_var_groups_manifest(
    path: str, manifest: PackageVarsManifest
) -> list[ValidationError]:
    """Check the variable groups of the inputs of a package manifest."""
    errors = []
    for template in manifest.policy_templates:
        template_vars = [*manifest.vars, *template.vars]
        for policy_input in template.inputs:
            input_vars = [*template_vars, *policy_input.vars]
            for group in policy_input.required_vars.values():
                errors.extend(validate_required_vars_defined(path, input_vars, group))
    return errors


def validate_data_stream_required_var_groups_manifest(
    path: str, manifest: DataStreamVarsManifest, package_manifest: PackageVarsManifest
) -> list[ValidationError]:
    """Check the variable groups of the streams of a data stream manifest."""
    errors = []
    for stream in manifest.streams:
        stream_vars = [
            *stream.vars,
            *package_manifest.vars,
            *package_manifest.find_input_vars(stream.input),
        ]
        for group in stream.required_vars.values():
            errors.extend(validate_required_vars_defined(path, stream_vars, group))
    return errors


def _read(fsys: PackageFS, path: str) -> bytes:
    try:
        return fsys.read_bytes(path)
    except OSError as exc:
        raise ValueError(
            f'file "{fsys.path(path)}" is invalid: failed to read manifest: {exc}'
        ) from exc


def _validate_data_stream(
    fsys: PackageFS, path: str, package_manifest: PackageVarsManifest
) -> list[ValidationError]:
    try:
        data = _read(fsys, path)
    except ValueError as exc:
        return [ValidationError(str(exc))]
    try:
        manifest = parse_data_stream_manifest(data)
    except ValueError as exc:
        return [
            ValidationError(f'file "{fsys.path(path)}" is invalid: failed to parse manifest: {exc}')
        ]
    return validate_data_stream_required_var_groups_manifest(
        fsys.path(path), manifest, package_manifest
    )


def validate_required_var_groups(fsys: PackageFS) -> list[ValidationError]:
    """Check the optional groups of required variables in all manifests of a package."""
    try:
        data = _read(fsys, PACKAGE_MANIFEST)
    except ValueError as exc:
        return [ValidationError(str(exc))]
    try:
        manifest = parse_package_manifest(data)
    except ValueError as exc:
        return [
            ValidationError(
                f'file "{fsys.path(PACKAGE_MANIFEST)}" is invalid: failed to parse manifest: {exc}'
            )
        ]
    errors = validate_required_var_groups_manifest(fsys.path(PACKAGE_MANIFEST), manifest)

    try:
        data_streams = list_data_streams(fsys)
    except OSError as exc:
        return [ValidationError(f"failed to list data streams: {exc}")]
    for data_stream in data_streams:
        path = posixpath.join(DATA_STREAM_DIR, data_stream, "manifest.yml")
        errors.extend(_validate_data_stream(fsys, path, manifest))
    return errors