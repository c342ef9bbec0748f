"""Switching warnings into errors, and wrapping rules whose coded errors are warnings."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

from packagelint.errors import ErrorCode, ValidationError

ENV_VAR_WARNINGS_AS_ERRORS = "PACKAGE_SPEC_WARNINGS_AS_ERRORS"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})

logger = logging.getLogger(__name__)

Rule = Callable[[Any], list[ValidationError]]


def is_defined_warnings_as_errors() -> bool:
    """Tell whether the environment asks for warnings to be treated as errors."""
    value = os.environ.get(ENV_VAR_WARNINGS_AS_ERRORS)
    if value is None:
        return False
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return False


def enable_warnings_as_errors() -> None:
    """Treat warnings as errors from now on."""
    os.environ[ENV_VAR_WARNINGS_AS_ERRORS] = "true"


def disable_warnings_as_errors() -> None:
    """Stop treating warnings as errors."""
    os.environ.pop(ENV_VAR_WARNINGS_AS_ERRORS, None)


def warn_on(validation: Rule) -> Rule:
    """Wrap a rule so its coded errors are logged as warnings instead of returned."""

    def wrapped(fsys: Any) -> list[ValidationError]:
        errors = list(validation(fsys) or [])
        if is_defined_warnings_as_errors():
            return errors
        kept = []
        for error in errors:
            if error.code is not ErrorCode.UNASSIGNED:
                logger.warning("Warning: %s", error)
                continue
            kept.append(error)
        return kept

    return wrapped