"""Choosing and running the semantic rules that apply to a package."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import semver

from packagelint.changelog_links import validate_changelog_links
from packagelint.datastream_rules import (
    validate_ilm_policy_present,
    validate_profiling_non_ga,
    validate_routing_rules_and_dataset,
)
from packagelint.errors import ValidationError, process_errors
from packagelint.field_rules import (
    validate_date_fields,
    validate_dimension_fields,
    validate_dimensions_present,
    validate_external_fields_with_dev_folder,
    validate_field_groups,
    validate_fields_limits,
    validate_required_fields,
    validate_unique_fields,
)
from packagelint.kibana_objects import (
    validate_kibana_no_dangling_object_ids,
    validate_kibana_object_ids,
    validate_visualizations_used_by_value,
)
from packagelint.kibana_version import (
    validate_capabilities_required,
    validate_minimum_kibana_version,
)
from packagelint.pkgfiles import PackageFS
from packagelint.strictness import warn_on
from packagelint.vargroups import validate_required_var_groups
from packagelint.versions import _parse_version, validate_prerelease, validate_version_integrity

Rule = Callable[[PackageFS], "list[ValidationError] | None"]

_FIELD_PACKAGES = ("integration", "input")
_KIBANA_PACKAGES = ("integration", "content")
_INTEGRATION = ("integration",)


@dataclass(frozen=True)
class _RuleDefinition:
    rule: Rule
    since: str | None = None
    until: str | None = None
    types: tuple[str, ...] | None = None

    def applies(self, version: semver.Version, package_type: str) -> bool:
        if self.since is not None and version.compare(self.since) < 0:
            return False
        if self.until is not None and version.compare(self.until) >= 0:
            return False
        return self.types is None or package_type in self.types


def _definitions(max_fields_per_data_stream: int) -> list[_RuleDefinition]:
    return [
        _RuleDefinition(validate_version_integrity),
        _RuleDefinition(validate_changelog_links),
        _RuleDefinition(validate_prerelease),
        _RuleDefinition(warn_on(validate_minimum_kibana_version), until="3.0.0"),
        _RuleDefinition(validate_minimum_kibana_version, since="3.0.0"),
        _RuleDefinition(validate_field_groups),
        _RuleDefinition(validate_fields_limits(max_fields_per_data_stream), types=_FIELD_PACKAGES),
        _RuleDefinition(validate_unique_fields, since="2.0.0", types=_FIELD_PACKAGES),
        _RuleDefinition(validate_dimension_fields, types=_FIELD_PACKAGES),
        _RuleDefinition(validate_date_fields, types=_FIELD_PACKAGES),
        _RuleDefinition(validate_required_fields, types=_FIELD_PACKAGES),
        _RuleDefinition(validate_external_fields_with_dev_folder, types=_FIELD_PACKAGES),
        _RuleDefinition(
            warn_on(validate_visualizations_used_by_value),
            types=_KIBANA_PACKAGES,
            until="3.0.0",
        ),
        _RuleDefinition(
            validate_visualizations_used_by_value, types=_KIBANA_PACKAGES, since="3.0.0"
        ),
        _RuleDefinition(validate_ilm_policy_present, since="2.0.0", types=_INTEGRATION),
        _RuleDefinition(validate_profiling_non_ga, types=_INTEGRATION),
        _RuleDefinition(validate_kibana_object_ids, types=_KIBANA_PACKAGES),
        _RuleDefinition(validate_routing_rules_and_dataset, types=_INTEGRATION, since="2.9.0"),
        _RuleDefinition(validate_kibana_no_dangling_object_ids, since="3.0.0"),
        _RuleDefinition(validate_dimensions_present, types=_INTEGRATION, since="3.0.1"),
        # Capabilities were introduced in spec version 2.10.0.
        _RuleDefinition(validate_capabilities_required, since="2.10.0"),
        _RuleDefinition(validate_required_var_groups),
    ]


def select_rules(
    spec_version: semver.Version | str, package_type: str, max_fields_per_data_stream: int
) -> list[Rule]:
    """Return the rules that apply to a package type under a spec version, in order."""
    version = spec_version if isinstance(spec_version, semver.Version) else _parse_version(
        spec_version
    )
    return [
        definition.rule
        for definition in _definitions(max_fields_per_data_stream)
        if definition.applies(version, package_type)
    ]


def run_rules(rules: Iterable[Rule], fsys: PackageFS) -> list[ValidationError]:
    """Run each rule on the package and gather their errors in order."""
    errors: list[ValidationError] = []
    for rule in rules:
        errors.extend(rule(fsys) or [])
    return errors


def validate_semantics(
    fsys: PackageFS,
    spec_version: semver.Version | str,
    package_type: str,
    max_fields_per_data_stream: int,
) -> list[ValidationError]:
    """Run every applicable semantic rule and return the processed errors."""
    rules = select_rules(spec_version, package_type, max_fields_per_data_stream)
    return list(process_errors(run_rules(rules, fsys)))