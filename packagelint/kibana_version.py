"""Rules on the minimum Kibana version a package declares, and on its capabilities."""

from __future__ import annotations

import re

import semver

from packagelint.errors import ErrorCode, ValidationError
from packagelint.fields import Field, FieldFileMetadata, validate_fields
from packagelint.pkgfiles import PackageFile, PackageFS, find_files
from packagelint.versions import _parse_version, to_string_list

MANIFEST_PATH = "manifest.yml"
TAGS_PATH = "kibana/tags.yml"
SECURITY_RULES_PATTERN = "kibana/security_rule/*.json"

_VERSION_IN_CONDITION = re.compile(r"(\d+\.\d+\.\d+)")


def read_manifest(fsys: PackageFS) -> PackageFile:
    """Return the parsed package manifest."""
    try:
        files = find_files(fsys, MANIFEST_PATH)
    except (OSError, ValueError) as exc:
        raise ValueError(f"can't locate manifest file: {exc}") from exc
    if len(files) != 1:
        raise ValueError("single manifest file expected")
    return files[0]


def _lookup_condition(manifest: PackageFile, flat: str, nested: str) -> tuple[bool, object]:
    for expression in (flat, nested):
        try:
            return True, manifest.values(expression)
        except (LookupError, ValueError):
            continue
    return False, None


def get_kibana_version_condition(manifest: PackageFile) -> str:
    """Return the Kibana version condition of a manifest, or "" if it has none."""
    found, value = _lookup_condition(
        manifest, '$.conditions["kibana.version"]', "$.conditions.kibana.version"
    )
    if not found:
        return ""
    if not isinstance(value, str):
        raise ValueError("manifest kibana version is not a string")
    return value


def kibana_version_condition_is_greater_than_or_equal_to(
    condition: str, minimum_version: str
) -> bool:
    """Tell whether every version named in a condition is at least the minimum."""
    if not condition:
        return False
    if condition == f"^{minimum_version}":
        return True
    minimum = semver.Version.parse(minimum_version)
    for match in _VERSION_IN_CONDITION.findall(condition):
        try:
            version = semver.Version.parse(match)
        except ValueError:
            return False
        if version.compare(minimum) < 0:
            return False
    return True


def _as_version(version: semver.Version | str) -> semver.Version:
    if isinstance(version, semver.Version):
        return version
    return _parse_version(version)


def validate_minimum_kibana_version_input_packages(
    package_type: str, package_version: semver.Version | str, condition: str
) -> None:
    """Raise ValueError if a stable input package allows Kibana older than 8.8.0."""
    minimum = "8.8.0"
    if package_type != "input":
        return
    if _as_version(package_version).compare("1.0.0") < 0:
        return
    if kibana_version_condition_is_greater_than_or_equal_to(condition, minimum):
        return
    raise ValueError(
        f"conditions.kibana.version must be ^{minimum} or greater for non experimental "
        "input packages (version > 1.0.0)"
    )


def validate_no_runtime_fields(metadata: FieldFileMetadata, field: Field) -> list[ValidationError]:
    """Report a field that is defined as a runtime field."""
    if field.runtime.is_enabled():
        return [
            ValidationError(
                f"{metadata.full_file_path} file contains a field {field.name} "
                f"with runtime key defined ({field.runtime})"
            )
        ]
    return []


def validate_minimum_kibana_version_runtime_fields(
    fsys: PackageFS, package_version: semver.Version | str, condition: str
) -> None:
    """Raise ValueError if runtime fields are used with Kibana older than 8.10.0."""
    minimum = "8.10.0"
    if not validate_fields(fsys, validate_no_runtime_fields):
        return
    if kibana_version_condition_is_greater_than_or_equal_to(condition, minimum):
        return
    raise ValueError(
        f"conditions.kibana.version must be ^{minimum} or greater to include runtime fields"
    )


def validate_minimum_kibana_version_saved_object_tags(
    fsys: PackageFS, package_type: str, package_version: semver.Version | str, condition: str
) -> None:
    """Raise ValueError if a tags file is used with Kibana older than 8.10.0."""
    minimum = "8.10.0"
    if package_type == "input":
        return
    try:
        files = find_files(fsys, TAGS_PATH)
    except (OSError, ValueError) as exc:
        raise ValueError(f"can't locate files with {TAGS_PATH}: {exc}") from exc
    if not files:
        return
    if kibana_version_condition_is_greater_than_or_equal_to(condition, minimum):
        return
    raise ValueError(
        f"conditions.kibana.version must be ^{minimum} or greater to include "
        f"saved object tags file: {TAGS_PATH}"
    )


def _package_type_and_version(manifest: PackageFile) -> tuple[str, semver.Version]:
    document = manifest.document
    if not isinstance(document, dict):
        raise ValueError(f"failed to parse package manifest {manifest.path}")
    package_type = document.get("type") or ""
    version = document.get("version")
    if not isinstance(version, str):
        raise ValueError(f"package version is undefined in {manifest.path}")
    try:
        return str(package_type), _parse_version(version)
    except ValueError as exc:
        raise ValueError(f"invalid package version {version!r}: {exc}") from exc


def validate_minimum_kibana_version(fsys: PackageFS) -> list[ValidationError]:
    """Check that the Kibana version condition suits the features the package uses."""
    try:
        manifest = read_manifest(fsys)
        package_type, package_version = _package_type_and_version(manifest)
        condition = get_kibana_version_condition(manifest)
    except ValueError as exc:
        return [ValidationError(str(exc))]

    errors: list[ValidationError] = []
    try:
        validate_minimum_kibana_version_input_packages(package_type, package_version, condition)
    except ValueError as exc:
        errors.append(ValidationError(str(exc)))
    try:
        validate_minimum_kibana_version_runtime_fields(fsys, package_version, condition)
    except ValueError as exc:
        errors.append(ValidationError(str(exc)))
    try:
        validate_minimum_kibana_version_saved_object_tags(
            fsys, package_type, package_version, condition
        )
    except ValueError as exc:
        errors.append(ValidationError(str(exc), ErrorCode.MINIMUM_KIBANA_VERSION))
    return errors


def read_capabilities(fsys: PackageFS) -> list[str]:
    """Return the capabilities a package manifest requires, or none."""
    manifest = read_manifest(fsys)
    found, value = _lookup_condition(
        manifest, '$.conditions["elastic.capabilities"]', "$.conditions.elastic.capabilities"
    )
    if not found:
        return []
    try:
        return to_string_list(value)
    except ValueError as exc:
        raise ValueError(f"can't convert slice entries: {exc}") from exc


def validate_capabilities_required(fsys: PackageFS) -> list[ValidationError]:
    """Check that packages with security rules require the security capability."""
    try:
        files = find_files(fsys, SECURITY_RULES_PATTERN)
    except (OSError, ValueError) as exc:
        return [ValidationError(f"error finding Kibana security_rule folder: {exc}")]
    if not files:
        return []
    try:
        capabilities = read_capabilities(fsys)
    except ValueError as exc:
        return [ValidationError(str(exc))]
    if "security" not in capabilities:
        return [
            ValidationError(
                f'file "{fsys.path(MANIFEST_PATH)}" is invalid: found security rule assets '
                "in package but security capability is missing"
            )
        ]
    return []