"""Dotted-key maps and the YAML-to-JSON conversion used before schema checks."""

from __future__ import annotations

import json
from typing import Any

import yaml

RELATIVE_PATH_FORMAT = "relative-path"
DATA_STREAM_NAME_FORMAT = "data-stream-name"

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _YAMLLoader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as plain strings."""


_YAMLLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _find(key: str, data: dict, create_missing: bool) -> tuple[str, dict, Any, bool]:
    while True:
        if key in data:
            return key, data, data[key], True
        head, dot, rest = key.partition(".")
        if not dot:
            return key, data, None, False
        if head not in data:
            if not create_missing:
                raise KeyError("key not found")
            data[head] = MapStr()
        sub = data[head]
        if not isinstance(sub, dict):
            raise TypeError(f"expected map but type is {type(sub).__name__}")
        key = rest
        data = sub


class MapStr(dict):
    """A dict whose keys may be addressed in dot notation (``a.b.c``)."""

    def get_value(self, key: str) -> Any:
        """Return the value at a dotted key; raise KeyError if it is absent."""
        _, _, value, found = _find(key, self, False)
        if not found:
            raise KeyError("key not found")
        return value

    def put(self, key: str, value: Any) -> Any:
        """Set a value at a dotted key, creating nested maps; return the old value."""
        sub_key, sub_map, old, _ = _find(key, self, True)
        sub_map[sub_key] = value
        return old

    def string_to_print(self) -> str:
        """Return the map as indented JSON."""
        try:
            return json.dumps(self, indent=2, sort_keys=True, allow_nan=False)
        except (TypeError, ValueError) as exc:
            return f"Not valid json: {exc}"


def expand_item_key(value: Any) -> Any:
    """Recursively turn dotted keys in string-keyed maps into nested maps."""
    if value is None:
        return None
    if isinstance(value, list):
        return [expand_item_key(item) for item in value]
    if isinstance(value, dict) and all(isinstance(k, str) for k in value):
        expanded = MapStr()
        for key, item in value.items():
            try:
                expanded.put(key, expand_item_key(item))
            except (KeyError, TypeError) as exc:
                raise ValueError(
                    f"unexpected error while setting key value (key: {key}): {exc}"
                ) from exc
        return expanded
    return value


def _check_json_keys(value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"unsupported map key type: {type(key).__name__}")
            _check_json_keys(item)
    elif isinstance(value, list):
        for item in value:
            _check_json_keys(item)


def convert_yaml_to_json(data: bytes | str, expand_keys: bool) -> bytes:
    """Parse YAML and return it encoded as compact JSON."""
    try:
        content = yaml.load(data, Loader=_YAMLLoader)
    except yaml.YAMLError as exc:
        raise ValueError(f"unmarshalling YAML file failed: {exc}") from exc
    if expand_keys:
        content = expand_item_key(content)
    try:
        _check_json_keys(content)
        encoded = json.dumps(
            content, separators=(",", ":"), sort_keys=True, ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"converting YAML to JSON failed: {exc}") from exc
    return encoded.encode("utf-8")


def adjust_error_description(description: str) -> str:
    """Replace schema format failures with clearer messages."""
    if description == f"Does not match format '{RELATIVE_PATH_FORMAT}'":
        return "relative path is invalid, target doesn't exist or it exceeds the file size limit"
    if description == f"Does not match format '{DATA_STREAM_NAME_FORMAT}'":
        return "data stream doesn't exist"
    return description