import pytest

from packagelint.changelog_links import (
    GITHUB_ISSUE_MESSAGE,
    ChangelogLinkError,
    ensure_links_are_valid,
    read_changelog_links,
    validate_changelog_links,
    validate_github_link,
)
from packagelint.pkgfiles import PackageFS


def test_valid_github_link():
    assert validate_github_link("https://github.com/elastic/integrations/pull/2897") is None


@pytest.mark.parametrize(
    "link",
    [
        "https://github.com/elastic/integrations/pull/abcd",
        "https://github.com/elastic/integrations/pull/0",
        "https://github.com/elastic/integrations/pull",
    ],
)
def test_invalid_github_link(link):
    with pytest.raises(ChangelogLinkError) as info:
        validate_github_link(link)
    assert info.value.reason == GITHUB_ISSUE_MESSAGE
    assert info.value.link == link
    assert str(info.value) == f"{link}: {GITHUB_ISSUE_MESSAGE}"


@pytest.mark.parametrize(
    "links, count",
    [
        (
            [
                "https://github.com/elastic/integrations/pull/2897",
                "https://github.com/elastic/integrations/pull/1001",
                "https://github.com/elastic/integrations/pull/1",
            ],
            0,
        ),
        (
            [
                "https://github.com/elastic/integrations/pull/abcd",
                "https://github.com/elastic/integrations/pull",
            ],
            2,
        ),
        (
            [
                "https://github.com/elastic/integrations/pull/1234",
                "https://github.com/elastic/integrations/pull",
            ],
            1,
        ),
        (
            [
                "https://gitlab.com/elastic/integrations/pull/abcd",
                "https://zzz.com/elastic/integrations/pull/1234",
            ],
            0,
        ),
    ],
)
def test_ensure_links_are_valid(links, count):
    errors = ensure_links_are_valid(links)
    assert len(errors) == count
    assert all(GITHUB_ISSUE_MESSAGE in str(e) for e in errors)


def test_invalid_url_reported():
    errors = ensure_links_are_valid(["http://[github.com/pull/1"])
    assert len(errors) == 1
    assert str(errors[0]).startswith("invalid URL ")


def _changelog(tmp_path, text):
    (tmp_path / "changelog.yml").write_text(text)
    return PackageFS(tmp_path)


def test_read_changelog_links(tmp_path):
    fsys = _changelog(
        tmp_path,
        "- version: 1.0.1\n  changes:\n    - link: https://github.com/o/r/pull/2\n"
        "- version: 1.0.0\n  changes:\n    - link: https://github.com/o/r/pull/1\n"
        "    - link: https://example.com/a\n",
    )
    assert read_changelog_links(fsys) == [
        "https://github.com/o/r/pull/2",
        "https://github.com/o/r/pull/1",
        "https://example.com/a",
    ]


def test_validate_changelog_links(tmp_path):
    fsys = _changelog(
        tmp_path,
        "- version: 1.0.0\n  changes:\n    - link: https://github.com/o/r/pull/abc\n"
        "    - link: https://github.com/o/r/pull/5\n",
    )
    errors = validate_changelog_links(fsys)
    assert [str(e) for e in errors] == [
        f"https://github.com/o/r/pull/abc: {GITHUB_ISSUE_MESSAGE}"
    ]


def test_validate_changelog_links_missing_changelog(tmp_path):
    errors = validate_changelog_links(PackageFS(tmp_path))
    assert [str(e) for e in errors] == ["single changelog file expected"]