# packagelint

Semantic checks for integration, input and content packages: rules that look
across the files of a package and report what is inconsistent between them.

A package is a directory holding `manifest.yml`, `changelog.yml`, data
streams under `data_stream/`, field definitions under `fields/` folders and
Kibana saved objects under `kibana/`. packagelint reads such a directory and
returns what it finds as a list of `ValidationError` values.

## Installation

```
pip install packagelint
```

## Usage

```python
from packagelint.pkgfiles import PackageFS
from packagelint.rules import validate_semantics

fsys = PackageFS("path/to/my_package")
errors = validate_semantics(
    fsys,
    spec_version="3.0.0",
    package_type="integration",
    max_fields_per_data_stream=2048,
)
for error in errors:
    print(error)
```

`validate_semantics` picks the rules that apply to the given spec version and
package type, runs them in order, and passes the result through
`packagelint.errors.process_errors`, which rewrites some unclear messages,
attaches error codes to known ones and drops redundant ones.

You can also choose the rules yourself with `select_rules` and run them with
`run_rules`:

```python
from packagelint.rules import run_rules, select_rules

rules = select_rules("2.9.0", "input", 1024)
errors = run_rules(rules, fsys)
```

The rules are available one at a time as well; each takes a `PackageFS` and
returns a list of `ValidationError`:

- `packagelint.versions`: `validate_version_integrity`, `validate_prerelease`
- `packagelint.changelog_links`: `validate_changelog_links`
- `packagelint.field_rules`: `validate_date_fields`, `validate_dimension_fields`,
  `validate_dimensions_present`, `validate_field_groups`,
  `validate_fields_limits(limit)` (which builds the rule), `validate_unique_fields`,
  `validate_required_fields`, `validate_external_fields_with_dev_folder`
- `packagelint.kibana_version`: `validate_minimum_kibana_version`,
  `validate_capabilities_required`
- `packagelint.datastream_rules`: `validate_ilm_policy_present`,
  `validate_profiling_non_ga`, `validate_routing_rules_and_dataset`
- `packagelint.vargroups`: `validate_required_var_groups`
- `packagelint.kibana_objects`: `validate_visualizations_used_by_value`,
  `validate_kibana_object_ids`, `validate_kibana_no_dangling_object_ids`

## Reading package files

`packagelint.pkgfiles.PackageFS` addresses files of a package with
`/`-separated relative paths. `find_files(fsys, pattern)` returns the YAML and
JSON files matching a glob pattern as `PackageFile` values, whose `values`
method evaluates simple path expressions such as `$.version` or
`$[*].changes[*].link`.

`packagelint.fields` parses field definitions (`Field`, `RuntimeField`) and
walks every fields file of a package with `validate_fields`.

`packagelint.mapstr` holds `MapStr`, a dict addressable with dotted keys, and
`convert_yaml_to_json`, which turns a YAML document into compact JSON,
optionally expanding dotted keys into nested maps.

## Warnings

Some rules only warn for spec versions before 3.0.0. They are wrapped with
`packagelint.strictness.warn_on`: errors that carry an error code are logged
through the `logging` module as warnings and left out of the result. To report
them as errors instead, set the environment variable
`PACKAGE_SPEC_WARNINGS_AS_ERRORS` to `true`, or call
`enable_warnings_as_errors()` (and `disable_warnings_as_errors()` to undo it).

## Error codes

Every `ValidationError` has a `code`, one of the `ErrorCode` members. Errors
with a code other than `ErrorCode.UNASSIGNED` are those a caller may choose to
filter out.

## What it does not do

packagelint is a library only; it has no command-line tool. It does not check
the folder layout of a package, file sizes, or file contents against JSON
schemas, and it does not load spec definitions: the spec version, package type
and field limit are given by the caller.

## Running the tests

```
pip install -e .[test]
pytest
```