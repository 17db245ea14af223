"""
CSV Tool Tests

Tests for the CSV tools over a temporary workspace.
"""

import asyncio

import pytest

from maki.tools import CSVTools, Workspace, build_default_registry

SALES = "region,product,amount\nnorth,apple,10\nsouth,pear,5\nnorth,pear,7\n"


def _tools(tmp_path, content: str = SALES) -> CSVTools:
    workspace = Workspace(tmp_path)
    (tmp_path / "sales.csv").write_text(content, encoding="utf-8")
    return CSVTools(workspace)


def test_parse_reports_structure(tmp_path):
    print("=" * 60)
    print("TEST: parseCSV")
    print("=" * 60)

    result = asyncio.run(_tools(tmp_path).parse("sales.csv"))

    assert result["headers"] == ["region", "product", "amount"]
    assert result["rowCount"] == 3
    assert result["columnCount"] == 3
    assert result["preview"][0] == {"region": "north", "product": "apple", "amount": "10"}
    assert result["structure"][2] == {"name": "amount", "sampleValues": ["10", "5", "7"]}
    print("[PASS] Structure reported")


def test_parse_empty_file_fails(tmp_path):
    with pytest.raises(ValueError):
        asyncio.run(_tools(tmp_path, content="").parse("sales.csv"))


def test_update_cell_by_name_and_index(tmp_path):
    tools = _tools(tmp_path)

    asyncio.run(tools.update_cell("sales.csv", 1, "amount", "6"))
    result = asyncio.run(tools.update_cell("sales.csv", 0, "1", "plum"))

    assert result["updatedValue"] == "plum"
    assert (tmp_path / "sales.csv").read_text().splitlines()[1:3] == ["north,plum,10", "south,pear,6"]

    with pytest.raises(IndexError):
        asyncio.run(tools.update_cell("sales.csv", 3, "amount", "1"))
    with pytest.raises(ValueError):
        asyncio.run(tools.update_cell("sales.csv", 0, "price", "1"))


def test_add_and_remove_rows(tmp_path):
    tools = _tools(tmp_path)

    added = asyncio.run(tools.add_row("sales.csv", {"region": "east", "amount": "3"}))
    assert added["newRowCount"] == 4
    assert (tmp_path / "sales.csv").read_text().splitlines()[-1] == "east,,3"

    removed = asyncio.run(tools.remove_row("sales.csv", 0))
    assert removed["removedRow"]["product"] == "apple"
    assert removed["newRowCount"] == 3

    with pytest.raises(ValueError):
        asyncio.run(tools.add_row("sales.csv", {"colour": "red"}))


def test_filter_writes_matching_rows(tmp_path):
    tools = _tools(tmp_path)

    result = asyncio.run(tools.filter("sales.csv", "out/big.csv", "amount", "greaterThan", "6"))

    assert result["matchedRows"] == 2
    assert (tmp_path / "out" / "big.csv").read_text() == "region,product,amount\nnorth,apple,10\nnorth,pear,7\n"

    result = asyncio.run(tools.filter("sales.csv", "p.csv", "product", "startsWith", "pe"))
    assert result["matchedRows"] == 2

    with pytest.raises(ValueError):
        asyncio.run(tools.filter("sales.csv", "x.csv", "amount", "between", "1"))


def test_sort_numeric_and_multi_column(tmp_path):
    tools = _tools(tmp_path)

    asyncio.run(tools.sort("sales.csv", [{"column": "amount"}]))
    amounts = [line.split(",")[2] for line in (tmp_path / "sales.csv").read_text().splitlines()[1:]]
    # Numeric order, not "10" < "5"
    assert amounts == ["5", "7", "10"]

    asyncio.run(tools.sort("sales.csv", [{"column": "region"}, {"column": "amount", "direction": "desc"}]))
    lines = (tmp_path / "sales.csv").read_text().splitlines()[1:]
    assert lines == ["north,apple,10", "north,pear,7", "south,pear,5"]


def test_add_and_remove_columns(tmp_path):
    tools = _tools(tmp_path)

    result = asyncio.run(tools.add_column("sales.csv", "currency", "EUR", position=0))
    assert result["headers"] == ["currency", "region", "product", "amount"]
    assert (tmp_path / "sales.csv").read_text().splitlines()[1] == "EUR,north,apple,10"

    with pytest.raises(ValueError):
        asyncio.run(tools.add_column("sales.csv", "region"))

    result = asyncio.run(tools.remove_column("sales.csv", "product"))
    assert result["headers"] == ["currency", "region", "amount"]
    assert (tmp_path / "sales.csv").read_text().splitlines()[1] == "EUR,north,10"


def test_aggregate_by_group(tmp_path):
    tools = _tools(tmp_path)

    result = asyncio.run(tools.aggregate(
        "sales.csv",
        "totals.csv",
        aggregations=[
            {"column": "amount", "operation": "sum", "alias": "total"},
            {"column": "amount", "operation": "count"},
        ],
        groupByColumns=["region"],
    ))

    assert result["groupCount"] == 2
    assert result["preview"][0] == {"region": "north", "total": 17.0, "count_amount": 2}
    assert (tmp_path / "totals.csv").read_text().splitlines() == [
        "region,total,count_amount",
        "north,17.0,2",
        "south,5.0,1",
    ]


def test_aggregate_without_groups(tmp_path):
    result = asyncio.run(_tools(tmp_path).aggregate(
        "sales.csv", "avg.csv", aggregations=[{"column": "amount", "operation": "average"}]
    ))
    assert result["preview"] == [{"average_amount": pytest.approx(22 / 3)}]


def test_paths_stay_in_workspace(tmp_path):
    with pytest.raises(PermissionError):
        asyncio.run(_tools(tmp_path).parse("../outside.csv"))


def test_csv_tools_are_registered(tmp_path):
    registry = build_default_registry(str(tmp_path / "ws"))
    for name in ("parseCSV", "updateCSVCell", "addCSVRow", "removeCSVRow", "filterCSV",
                 "sortCSV", "addCSVColumn", "removeCSVColumn", "aggregateCSV"):
        assert name in registry
