"""Tests for the Excel export and query matching."""

from openpyxl import load_workbook

from conftest import make_item
from modgraph.bisection import add_step, create_session, record_result
from modgraph.report import export_report
from modgraph.text_utils import normalize_name, resolve_query


def test_export_report_sheets(tmp_path):
    items = [make_item("lib", added_as_dependency=True, required_by=["app"]), make_item("app", requires=["lib"])]
    output = tmp_path / "out" / "report.xlsx"

    export_report(output, items)

    workbook = load_workbook(output)
    assert workbook.sheetnames == ["content", "dependencies"]
    rows = list(workbook["content"].iter_rows(values_only=True))
    assert rows[0][0] == "slug"
    assert [row[0] for row in rows[1:]] == ["app", "lib"]
    assert rows[2][9] == "app"
    deps = list(workbook["dependencies"].iter_rows(values_only=True))
    assert deps[1] == ("app", "Lib", "lib", "required", "yes")


def test_export_report_with_bisection(tmp_path):
    items = [make_item(slug) for slug in "abcd"]
    state = create_session(tmp_path, items)
    add_step(state, ["a", "b"], ["c", "d"])
    record_result(state, "good")
    output = tmp_path / "report.xlsx"

    export_report(output, items, state)

    sheet = load_workbook(output)["bisect_history"]
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[1][:4] == (1, "*", "good", 2)
    assert rows[-1][:2] == ("candidates", "c, d")


def test_normalize_name():
    assert normalize_name("  Fabric_API ") == "fabric api"
    assert normalize_name("fabric-api") == "fabric api"


def test_resolve_query_lookup_order():
    items = [make_item("fabric-api", item_id="P7dR8mSH"), make_item("sodium")]
    items[0].name = "Fabric API"

    assert resolve_query(items, "fabric-api")[0] is items[0]
    assert resolve_query(items, "P7dR8mSH")[0] is items[0]
    assert resolve_query(items, "Fabric API")[0] is items[0]
    assert resolve_query(items, "fabric api")[0] is items[0]


def test_resolve_query_suggestions():
    items = [make_item("sodium"), make_item("lithium")]

    item, suggestions = resolve_query(items, "sodum")

    assert item is None
    assert suggestions == ["sodium"]
    assert resolve_query(items, "   ") == (None, [])
