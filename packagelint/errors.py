"""Validation errors, their codes, and post-processing of error lists."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable


class ErrorCode(str, enum.Enum):
    """Codes that let callers filter specific validation errors."""

    UNASSIGNED = ""
    PRERELEASE_FEATURE_ON_GA_PACKAGE = "prerelease_feature_on_ga_package"
    NON_GA_SPEC_ON_GA_PACKAGE = "non_ga_spec_on_ga_package"
    MESSAGE_RENAME_TO_EVENT_ORIGINAL = "message_rename_to_event_original"
    KIBANA_DASHBOARD_WITHOUT_FILTER = "kibana_dashboard_without_filter"
    KIBANA_DASHBOARD_WITH_QUERY_BUT_NO_FILTER = "kibana_dashboard_with_query_but_no_filter"
    KIBANA_DANGLING_OBJECT_IDS = "kibana_dangling_object_ids"
    VISUALIZATION_BY_VALUE = "visualization_by_value"
    MINIMUM_KIBANA_VERSION = "minimum_kibana_version"


class ValidationError(Exception):
    """A single validation problem, optionally tagged with an error code."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNASSIGNED) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ValidationError({self.message!r}, {self.code!r})"


_MESSAGE_TRANSFORMS = [
    (re.compile(r"Must not validate the schema \(not\)"), "Must not be present"),
    (
        re.compile(r"secret is required"),
        "variable identified as possible secret, secret parameter required to be set to true or false",
    ),
    (
        re.compile(r"(field processors.[0-9]+.rename): if is required"),
        "%s: rename \"message\" to \"event.original\" processor requires if: 'ctx.event?.original == null'",
    ),
    (
        re.compile(r"(field processors.[0-9]+): remove is required"),
        "%s: rename \"message\" to \"event.original\" processor requires remove \"message\" processor",
    ),
    (
        re.compile(
            r'(processors.[0-9]+.remove.field): processors.[0-9]+.remove.field does not match: "message"'
        ),
        "%s: rename \"message\" to \"event.original\" processor requires remove \"message\" processor",
    ),
    (
        re.compile(
            r'(processors.[0-9]+.remove.if): processors.[0-9]+.remove.if does not match: '
            r'"ctx\.event\?\.original != null"'
        ),
        "%s: rename \"message\" to \"event.original\" processor requires remove \"message\" "
        "processor with if: 'ctx.event?.original != null'",
    ),
]

_REDUNDANT = (
    'Must validate "then" as "if" was valid',
    'Must validate "else" as "if" was not valid',
    "Must validate all the schemas (allOf)",
    "Must validate at least one schema (anyOf)",
    "Must validate one and only one schema (oneOf)",
    "At least one of the items must match",
)

_ADD_ERROR_CODE = [
    (
        re.compile(r'rename "message" to "event.original" processor'),
        ErrorCode.MESSAGE_RENAME_TO_EVENT_ORIGINAL,
    ),
]


def _transform(error: ValidationError) -> ValidationError:
    for matcher, replacement in _MESSAGE_TRANSFORMS:
        message = str(error)
        match = matcher.search(message)
        if match is None:
            continue
        if match.groups():
            new_text = replacement % match.group(1)
        else:
            new_text = replacement
        error = ValidationError(message.replace(match.group(0), new_text, 1))
    for matcher, code in _ADD_ERROR_CODE:
        if matcher.search(str(error)):
            error = ValidationError(str(error), code)
    return error


def process_errors(errors: Iterable[ValidationError]) -> list[ValidationError]:
    """Rewrite unclear messages, tag known errors with codes and drop redundant ones."""
    processed = []
    for error in errors:
        error = _transform(error)
        message = str(error)
        if any(fragment in message for fragment in _REDUNDANT):
            continue
        processed.append(error)
    return processed