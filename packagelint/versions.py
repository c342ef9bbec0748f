"""Checks on the package version, its changelog and its prerelease tag."""

from __future__ import annotations

import re

import semver

from packagelint.errors import ValidationError
from packagelint.pkgfiles import PackageFS, find_files

LITERAL_PRERELEASES = ("next", "SNAPSHOT")
NUMBERED_PRERELEASES = ("beta", "rc", "preview")

# After the tag: starts with a number, hyphen or dot, and ends with a number or letter.
PRERELEASE_NUMBER_PATTERN = "(([0-9]|[.-][0-9A-Za-z])([0-9A-Za-z-.]*[0-9A-Za-z])?)?"


def _parse_version(text: str) -> semver.Version:
    if not isinstance(text, str):
        raise ValueError("Invalid Semantic Version")
    candidate = text[1:] if text.startswith("v") else text
    try:
        return semver.Version.parse(candidate, optional_minor_and_patch=True)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid Semantic Version: {text}") from exc


def read_manifest_version(fsys: PackageFS) -> str:
    """Return the version declared in the package manifest."""
    try:
        files = find_files(fsys, "manifest.yml")
    except (OSError, ValueError) as exc:
        raise ValueError(f"can't locate manifest file: {exc}") from exc
    if len(files) != 1:
        raise ValueError("single manifest file expected")
    try:
        value = files[0].values("$.version")
    except (LookupError, ValueError) as exc:
        raise ValueError(f"can't read manifest version: {exc}") from exc
    if not isinstance(value, str):
        raise ValueError("version is undefined")
    return value


def to_string_list(value: object) -> list[str]:
    """Return a list value whose entries are all strings, or raise ValueError."""
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError("conversion error")
    return list(value)


def read_changelog(fsys: PackageFS, expression: str) -> list[str]:
    """Return the strings that a path expression selects in the changelog."""
    try:
        files = find_files(fsys, "changelog.yml")
    except (OSError, ValueError) as exc:
        raise ValueError(f"can't locate changelog file: {exc}") from exc
    if len(files) != 1:
        raise ValueError("single changelog file expected")
    try:
        value = files[0].values(expression)
    except (LookupError, ValueError) as exc:
        raise ValueError(f"can't read changelog entries: {exc}") from exc
    try:
        return to_string_list(value)
    except ValueError as exc:
        raise ValueError(f"can't convert slice entries: {exc}") from exc


def ensure_unique_versions(versions: list[str]) -> None:
    """Raise ValueError if a version appears twice."""
    seen: set[str] = set()
    for version in versions:
        if version in seen:
            raise ValueError(
                "versions in changelog must be unique, "
                f"found at least two same versions ({version})"
            )
        seen.add(version)


def ensure_manifest_version_has_changelog_entry(manifest_version: str, versions: list[str]) -> None:
    """Raise ValueError unless the manifest version is the latest changelog entry.

    An older entry is accepted too when the latest one is a "-next" entry.
    """
    if not versions:
        raise ValueError("no versions found in changelog")
    if manifest_version == versions[0]:
        return
    if versions[0].endswith("-next") and manifest_version in versions:
        return
    raise ValueError("current manifest version doesn't have changelog entry")


def ensure_changelog_latest_version_is_greater_than_others(versions: list[str]) -> None:
    """Raise ValueError unless the first changelog entry is the greatest version."""
    if not versions:
        raise ValueError("no versions found in changelog")
    try:
        latest = _parse_version(versions[0])
    except ValueError as exc:
        raise ValueError(f"could not read package manifest version [{versions[0]}]: {exc}") from exc
    for version in versions[1:]:
        try:
            parsed = _parse_version(version)
        except ValueError as exc:
            raise ValueError(f"could not read package manifest version [{version}]: {exc}") from exc
        if parsed.compare(latest) >= 0:
            raise ValueError(
                f"changelog entry {parsed} is greater than or equal to "
                f"first changelog entry: {latest}"
            )


def validate_version_integrity(fsys: PackageFS) -> list[ValidationError]:
    """Check that the manifest version matches the changelog and the changelog is ordered."""
    try:
        manifest_version = read_manifest_version(fsys)
        versions = read_changelog(fsys, "$[*].version")
        ensure_unique_versions(versions)
        ensure_manifest_version_has_changelog_entry(manifest_version, versions)
        ensure_changelog_latest_version_is_greater_than_others(versions)
    except ValueError as exc:
        return [ValidationError(str(exc))]
    return []


def check_prerelease_tag(tag: str) -> None:
    """Raise ValueError if a prerelease tag is not one of the allowed forms."""
    if not tag or tag in LITERAL_PRERELEASES:
        return
    for numbered in NUMBERED_PRERELEASES:
        if tag == numbered:
            return
        if re.fullmatch(f"{numbered}{PRERELEASE_NUMBER_PATTERN}", tag):
            return
    raise ValueError(
        f"prerelease tag ({tag}) should be one of [{', '.join(LITERAL_PRERELEASES)}], "
        f"or one of [{', '.join(NUMBERED_PRERELEASES)}] followed by numbers"
    )


def check_prerelease(manifest_version: str) -> None:
    """Raise ValueError if the version's prerelease tag is not allowed."""
    version = _parse_version(manifest_version)
    prerelease = version.prerelease or ""
    if version.major == 0 and prerelease:
        raise ValueError(
            "versions below 1.0.0 are considered technical previews, "
            f"please remove prerelease tag (version: {manifest_version})"
        )
    check_prerelease_tag(prerelease)


def validate_prerelease(fsys: PackageFS) -> list[ValidationError]:
    """Check the prerelease tag of the package version."""
    try:
        check_prerelease(read_manifest_version(fsys))
    except ValueError as exc:
        return [ValidationError(str(exc))]
    return []