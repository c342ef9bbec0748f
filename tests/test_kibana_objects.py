import json

import pytest

from packagelint.errors import ErrorCode
from packagelint.kibana_objects import (
    Reference,
    any_reference,
    filter_references,
    to_reference_list,
    validate_kibana_no_dangling_object_ids,
    validate_kibana_object_ids,
    validate_visualizations_used_by_value,
)
from packagelint.pkgfiles import PackageFS


def _write(root, rel, document):
    target = root / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(document))


def test_to_reference_list():
    value = [
        {"id": "12345", "name": "panel_0", "type": "visualization"},
        {"id": "9000", "name": "panel_1", "type": "other"},
    ]
    assert to_reference_list(value) == [
        Reference(id="12345", name="panel_0", type="visualization"),
        Reference(id="9000", name="panel_1", type="other"),
    ]


def test_to_reference_list_rejects_non_list():
    with pytest.raises(ValueError, match="conversion error to array"):
        to_reference_list({"id": "1"})


def test_to_reference_list_rejects_non_map_entry():
    with pytest.raises(ValueError, match="conversion error to reference element"):
        to_reference_list(["x"])


def test_any_reference_some_references():
    value = [
        {"id": "12345", "name": "panel_0", "type": "visualization"},
        {"id": "9000", "name": "panel_1", "type": "lens"},
        {"id": "4", "name": "panel_2", "type": "map"},
        {"id": "42", "name": "panel_3", "type": "index-pattern"},
        {"id": "44", "name": "panel_4", "type": "search"},
        {"id": "45", "name": "panel_5", "type": "tag"},
        {"id": "50", "name": "panel_6", "type": "dashboard"},
    ]
    assert any_reference(value) == [
        Reference("12345", "panel_0", "visualization"),
        Reference("9000", "panel_1", "lens"),
        Reference("4", "panel_2", "map"),
        Reference("44", "panel_4", "search"),
    ]


def test_any_reference_empty():
    assert any_reference([]) == []


def test_filter_references_drops_exceptions():
    value = [
        {"id": "42", "name": "p", "type": "index-pattern"},
        {"id": "7", "name": "q", "type": "lens"},
    ]
    assert filter_references(value, ["index-pattern"]) == [Reference("7", "q", "lens")]


def test_visualizations_by_reference_reported(tmp_path):
    _write(
        tmp_path,
        "kibana/dashboard/d1.json",
        {
            "id": "d1",
            "references": [
                {"id": "v1", "name": "panel_0", "type": "visualization"},
                {"id": "t1", "name": "tag", "type": "tag"},
            ],
        },
    )
    errors = validate_visualizations_used_by_value(PackageFS(tmp_path))
    assert len(errors) == 1
    assert str(errors[0]) == (
        "references found in dashboard kibana/dashboard/d1.json: v1 (visualization)"
    )
    assert errors[0].code is ErrorCode.VISUALIZATION_BY_VALUE


def test_visualizations_by_value_accepted(tmp_path):
    _write(tmp_path, "kibana/dashboard/d1.json", {"id": "d1"})
    assert validate_visualizations_used_by_value(PackageFS(tmp_path)) == []


def test_object_ids_matching(tmp_path):
    _write(tmp_path, "kibana/dashboard/abc.json", {"id": "abc"})
    assert validate_kibana_object_ids(PackageFS(tmp_path)) == []


def test_object_ids_not_matching(tmp_path):
    _write(tmp_path, "kibana/dashboard/abc.json", {"id": "xyz"})
    fsys = PackageFS(tmp_path)
    errors = validate_kibana_object_ids(fsys)
    assert [str(e) for e in errors] == [
        f"kibana object file [{fsys.path('kibana/dashboard/abc.json')}] "
        "defines non-matching ID [xyz]"
    ]


def test_security_rule_id_prefix(tmp_path):
    _write(
        tmp_path,
        "kibana/security_rule/rule1_v1.json",
        {"id": "rule1_v1", "attributes": {"rule_id": "rule1"}},
    )
    assert validate_kibana_object_ids(PackageFS(tmp_path)) == []


def test_security_rule_id_wrong_prefix(tmp_path):
    _write(
        tmp_path,
        "kibana/security_rule/rule1_v1.json",
        {"id": "rule1_v1", "attributes": {"rule_id": "other"}},
    )
    errors = validate_kibana_object_ids(PackageFS(tmp_path))
    assert [str(e) for e in errors] == [
        "kibana object ID [rule1_v1] should start with rule ID [other]"
    ]


def test_dangling_reference_reported(tmp_path):
    _write(
        tmp_path,
        "kibana/dashboard/d1.json",
        {
            "id": "d1",
            "type": "dashboard",
            "references": [
                {"id": "v1", "name": "panel_0", "type": "visualization"},
                {"id": "logs-*", "name": "ip", "type": "index-pattern"},
            ],
        },
    )
    fsys = PackageFS(tmp_path)
    errors = validate_kibana_no_dangling_object_ids(fsys)
    assert len(errors) == 1
    assert str(errors[0]) == (
        f'file "{fsys.path("kibana/dashboard/d1.json")}" is invalid: '
        "dangling reference found: v1 (visualization)"
    )
    assert errors[0].code is ErrorCode.KIBANA_DANGLING_OBJECTS_IDS


def test_reference_satisfied(tmp_path):
    _write(
        tmp_path,
        "kibana/dashboard/d1.json",
        {
            "id": "d1",
            "type": "dashboard",
            "references": [{"id": "v1", "name": "panel_0", "type": "visualization"}],
        },
    )
    _write(tmp_path, "kibana/visualization/v1.json", {"id": "v1", "type": "visualization"})
    assert validate_kibana_no_dangling_object_ids(PackageFS(tmp_path)) == []


def test_reference_with_wrong_type_is_dangling(tmp_path):
    _write(
        tmp_path,
        "kibana/dashboard/d1.json",
        {
            "id": "d1",
            "type": "dashboard",
            "references": [{"id": "v1", "name": "panel_0", "type": "lens"}],
        },
    )
    _write(tmp_path, "kibana/visualization/v1.json", {"id": "v1", "type": "visualization"})
    errors = validate_kibana_no_dangling_object_ids(PackageFS(tmp_path))
    assert len(errors) == 1
    assert "dangling reference found: v1 (lens)" in str(errors[0])