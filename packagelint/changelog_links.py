"""Checks on the links in changelog entries."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable
from urllib.parse import SplitResult, urlsplit

from packagelint.errors import ValidationError
from packagelint.pkgfiles import PackageFS
from packagelint.versions import read_changelog

GITHUB_ISSUE_MESSAGE = "issue number in changelog link should be a positive number"

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ChangelogLinkError(ValueError):
    """A changelog link that is not acceptable, with the reason why."""

    def __init__(self, link: str, reason: str = GITHUB_ISSUE_MESSAGE) -> None:
        super().__init__(f"{link}: {reason}")
        self.link = link
        self.reason = reason


def _base(path: str) -> str:
    stripped = path.rstrip("/")
    if not stripped:
        return "/" if path else "."
    return posixpath.basename(stripped)


def validate_github_link(link: str | SplitResult) -> None:
    """Raise ChangelogLinkError unless the link ends with a positive issue number."""
    parts = urlsplit(link) if isinstance(link, str) else link
    number = _base(parts.path)
    if not _INTEGER.fullmatch(number) or int(number) <= 0:
        raise ChangelogLinkError(parts.geturl())


_DOMAIN_CHECKS = (("github.com", validate_github_link),)


def ensure_links_are_valid(links: Iterable[str]) -> list[ValidationError]:
    """Check each link against the rules of the domain it points to."""
    errors: list[ValidationError] = []
    for link in links:
        try:
            parts = urlsplit(link)
            host = parts.netloc.rpartition("@")[2]
        except ValueError as exc:
            errors.append(ValidationError(f"invalid URL {exc}"))
            continue
        for domain, check in _DOMAIN_CHECKS:
            if domain in host:
                try:
                    check(parts)
                except ChangelogLinkError as exc:
                    errors.append(ValidationError(str(exc)))
    return errors


def read_changelog_links(fsys: PackageFS) -> list[str]:
    """Return every link of every change in the changelog."""
    return read_changelog(fsys, "$[*].changes[*].link")


def validate_changelog_links(fsys: PackageFS) -> list[ValidationError]:
    """Check that GitHub links in the changelog point to numbered issues."""
    try:
        links = read_changelog_links(fsys)
    except ValueError as exc:
        return [ValidationError(str(exc))]
    return ensure_links_are_valid(links)