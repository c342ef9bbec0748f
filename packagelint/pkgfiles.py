"""Read-only access to a package directory and to the documents inside it."""

from __future__ import annotations

import json
import os
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_BOOL_TAG = "tag:yaml.org,2002:bool"


class _YAMLLoader(yaml.SafeLoader):
    """Safe loader with YAML 1.2 booleans and timestamps kept as strings."""


_YAMLLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (_TIMESTAMP_TAG, _BOOL_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_YAMLLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _load_yaml(data: bytes | str) -> Any:
    """Parse a YAML document, raising ValueError when it is malformed."""
    try:
        return yaml.load(data, Loader=_YAMLLoader)
    except yaml.YAMLError as exc:
        raise ValueError(str(exc)) from exc


class PackageFS:
    """A package rooted at a directory, addressed with '/'-separated relative paths."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = os.fspath(root)

    def __repr__(self) -> str:
        return f"PackageFS({self.root!r})"

    def _resolve(self, path: str) -> str:
        return os.path.join(self.root, *[part for part in path.split("/") if part])

    def path(self, *args: str) -> str:
        """Return the display path of an item: the root joined with the given parts."""
        return posixpath.normpath(posixpath.join(self.root, *args))

    def read_bytes(self, path: str) -> bytes:
        """Return the contents of a file in the package."""
        with open(self._resolve(path), "rb") as handle:
            return handle.read()

    def exists(self, path: str) -> bool:
        """Tell whether a file or folder exists in the package."""
        return os.path.exists(self._resolve(path))

    def list_dir(self, path: str) -> list[str]:
        """Return the sorted names of the entries of a folder in the package."""
        return sorted(os.listdir(self._resolve(path)))


_STEP = re.compile(
    r"""\.(?P<name>[A-Za-z0-9_@$\-]+)"""
    r"""|(?P<wild>\.\*|\[\*\])"""
    r"""|\[(?P<index>-?\d+)\]"""
    r"""|\[(?P<quote>["'])(?P<key>.*?)(?P=quote)\]"""
)

_WILDCARD = object()


def _parse_expression(expression: str) -> list[Any]:
    if not expression.startswith("$"):
        raise ValueError(f"invalid path expression: {expression}")
    steps: list[Any] = []
    position = 1
    while position < len(expression):
        match = _STEP.match(expression, position)
        if match is None:
            raise ValueError(f"invalid path expression: {expression}")
        if match.group("wild"):
            steps.append(_WILDCARD)
        elif match.group("index") is not None:
            steps.append(int(match.group("index")))
        elif match.group("name") is not None:
            steps.append(match.group("name"))
        else:
            steps.append(match.group("key"))
        position = match.end()
    return steps


def _children(value: Any) -> list[Any]:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return list(value.values())
    return []


@dataclass(frozen=True)
class PackageFile:
    """A parsed YAML or JSON document found in a package."""

    path: str
    document: Any

    def values(self, expression: str) -> Any:
        """Evaluate a path expression such as ``$.a.b`` or ``$[*].version``.

        Expressions with a wildcard give a list of every match; others give
        the single value, raising LookupError when it is absent.
        """
        results = [self.document]
        multiple = False
        for step in _parse_expression(expression):
            selected: list[Any] = []
            for value in results:
                if step is _WILDCARD:
                    if not isinstance(value, (list, dict)) and not multiple:
                        raise LookupError(f"cannot iterate over {type(value).__name__}")
                    selected.extend(_children(value))
                elif isinstance(step, int):
                    if isinstance(value, list) and -len(value) <= step < len(value):
                        selected.append(value[step])
                    elif not multiple:
                        raise LookupError(f"index {step} out of range")
                elif isinstance(value, dict) and step in value:
                    selected.append(value[step])
                elif not multiple:
                    raise LookupError(f"unknown key {step}")
            if step is _WILDCARD:
                multiple = True
            results = selected
        return results if multiple else results[0]


def _parse_document(path: str, data: bytes) -> Any:
    extension = posixpath.splitext(path)[1].lower()
    if extension == ".json":
        try:
            return json.loads(data)
        except ValueError as exc:
            raise ValueError(f"can't parse JSON file {path}: {exc}") from exc
    if extension in (".yml", ".yaml"):
        try:
            return _load_yaml(data)
        except ValueError as exc:
            raise ValueError(f"can't parse YAML file {path}: {exc}") from exc
    raise ValueError(f"unsupported file type: {path}")


def find_files(fsys: PackageFS, pattern: str) -> list[PackageFile]:
    """Return the parsed files matching a glob pattern, sorted by path."""
    base = Path(fsys.root)
    if not base.is_dir():
        return []
    matches = sorted(
        match.relative_to(base).as_posix() for match in base.glob(pattern) if match.is_file()
    )
    return [PackageFile(rel, _parse_document(rel, fsys.read_bytes(rel))) for rel in matches]