import pytest

from packagelint.pkgfiles import PackageFS
from packagelint.vargroups import (
    ManifestVar,
    parse_data_stream_manifest,
    parse_package_manifest,
    validate_data_stream_required_var_groups_manifest,
    validate_required_var_groups,
    validate_required_var_groups_manifest,
    validate_required_vars_defined,
)

NOT_DEFINED = (
    'file "manifest.yml" is invalid: required var "api_key" in optional group is not defined'
)
ALWAYS_REQUIRED = (
    'file "manifest.yml" is invalid: required var "api_key" in optional group '
    "is defined as always required"
)

PACKAGE_CASES = [
    (
        "good",
        """
vars:
  - name: user
  - name: password
  - name: api_key
policy_templates:
  - inputs:
    - required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [],
    ),
    (
        "variable defined in policy",
        """
vars:
  - name: user
  - name: password
policy_templates:
  - vars:
    - name: api_key
    inputs:
    - required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [],
    ),
    (
        "variable defined in input",
        """
vars:
  - name: user
  - name: password
policy_templates:
  - inputs:
    - vars:
        - name: api_key
      required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [],
    ),
    (
        "missing variable",
        """
vars:
  - name: user
  - name: password
policy_templates:
  - inputs:
    - required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [NOT_DEFINED],
    ),
    (
        "variable defined as required",
        """
vars:
  - name: user
  - name: password
  - name: api_key
    required: true
policy_templates:
  - inputs:
    - required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [ALWAYS_REQUIRED],
    ),
    (
        "variable defined as required in policy",
        """
vars:
  - name: user
  - name: password
policy_templates:
  - vars:
    - name: api_key
      required: true
    inputs:
    - required_vars:
        user_password:
          - name: user
          - name: password
        api_key:
          - name: api_key
""",
        [ALWAYS_REQUIRED],
    ),
]


@pytest.mark.parametrize("title,manifest,expected", PACKAGE_CASES, ids=[c[0] for c in PACKAGE_CASES])
def test_validate_required_var_groups_manifest(title, manifest, expected):
    errors = validate_required_var_groups_manifest("manifest.yml", parse_package_manifest(manifest))
    assert len(errors) == len(expected)
    for error in errors:
        assert str(error) in expected


RAW_PACKAGE_MANIFEST = """
vars:
  - name: host
policy_templates:
  - name: logs
    inputs:
    - type: logfile
      vars:
        - name: credentials
"""

DATA_STREAM_CASES = [
    (
        "good",
        """
streams:
  - vars:
    - name: user
    - name: password
    - name: api_key
    required_vars:
      user_password:
        - name: user
        - name: password
      api_key:
        - name: api_key
""",
        [],
    ),
    (
        "variable defined in manifest",
        """
streams:
  - vars:
    - name: user
    - name: password
    - name: api_key
    required_vars:
      user_password:
        - name: user
        - name: password
      api_key:
        - name: api_key
      host:
        - name: host
""",
        [],
    ),
    (
        "variable defined in manifest input",
        """
streams:
  - input: logfile
    vars:
    - name: user
    - name: password
    - name: api_key
    required_vars:
      user_password:
        - name: user
        - name: password
      api_key:
        - name: api_key
      credentials:
        - name: credentials
""",
        [],
    ),
    (
        "missing variable",
        """
streams:
  - required_vars:
      user_password:
        - name: user
        - name: password
      api_key:
        - name: api_key
    vars:
    - name: user
    - name: password
""",
        [NOT_DEFINED],
    ),
    (
        "variable defined as required",
        """
streams:
  - required_vars:
      user_password:
        - name: user
        - name: password
      api_key:
        - name: api_key
    vars:
      - name: user
      - name: password
      - name: api_key
        required: true
""",
        [ALWAYS_REQUIRED],
    ),
]


@pytest.mark.parametrize(
    "title,manifest,expected", DATA_STREAM_CASES, ids=[c[0] for c in DATA_STREAM_CASES]
)
def test_validate_data_stream_required_var_groups(title, manifest, expected):
    package_manifest = parse_package_manifest(RAW_PACKAGE_MANIFEST)
    errors = validate_data_stream_required_var_groups_manifest(
        "manifest.yml", parse_data_stream_manifest(manifest), package_manifest
    )
    assert len(errors) == len(expected)
    for error in errors:
        assert str(error) in expected


def test_find_input_vars():
    manifest = parse_package_manifest(RAW_PACKAGE_MANIFEST)
    assert manifest.find_input_vars("logfile") == [ManifestVar(name="credentials")]
    assert manifest.find_input_vars("udp") == []


def test_required_vars_with_empty_name_are_skipped():
    errors = validate_required_vars_defined("manifest.yml", [], [ManifestVar(name="")])
    assert errors == []


def test_parse_rejects_malformed_vars():
    with pytest.raises(ValueError):
        parse_package_manifest("vars: not-a-list\n")
    with pytest.raises(ValueError):
        parse_data_stream_manifest("streams:\n  - vars:\n    - name: a\n      required: [1]\n")


def test_validate_required_var_groups_package(tmp_path):
    (tmp_path / "manifest.yml").write_text(
        "vars:\n  - name: user\n"
        "policy_templates:\n  - inputs:\n    - required_vars:\n"
        "        api_key:\n          - name: api_key\n"
    )
    ds = tmp_path / "data_stream" / "logs"
    ds.mkdir(parents=True)
    (ds / "manifest.yml").write_text(
        "streams:\n  - required_vars:\n      group:\n        - name: user\n        - name: token\n"
    )
    fsys = PackageFS(tmp_path)
    messages = [str(e) for e in validate_required_var_groups(fsys)]
    assert messages == [
        f'file "{fsys.path("manifest.yml")}" is invalid: required var "api_key" '
        "in optional group is not defined",
        f'file "{fsys.path("data_stream/logs/manifest.yml")}" is invalid: required var "token" '
        "in optional group is not defined",
    ]


def test_validate_required_var_groups_missing_manifest(tmp_path):
    errors = validate_required_var_groups(PackageFS(tmp_path))
    assert len(errors) == 1
    assert "failed to read manifest" in str(errors[0])