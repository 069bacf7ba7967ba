from __future__ import annotations

from auction_sync.sources.html_tables import (
    RowShape,
    TableRow,
    extract_hidden_inputs,
    map_cells,
    shaped_rows,
    tokenize_rows,
)

HTML = """
<table>
  <tr><td>地址</td><td>面積</td><td>底價</td></tr>
  <tr class="odd" onclick="go(1)"><td> 台北市 中山區 </td><td>12.5</td><td><a href="detail?id=1">800</a></td></tr>
  <tr class="even"><td>新北市板橋區</td><td>20</td><td>900</td></tr>
  <tr><td colspan="3">共 2 筆</td></tr>
</table>
"""


def test_tokenize_rows_collects_cells_links_and_classes():
    rows = tokenize_rows(HTML)

    assert len(rows) == 4
    assert rows[1].cells == ("台北市中山區", "12.5", "800")
    assert rows[1].hrefs == ("detail?id=1",)
    assert rows[1].onclick == "go(1)"
    assert rows[1].classes == ("odd",)


def test_tokenize_rows_can_keep_inner_spacing():
    rows = tokenize_rows(HTML, compact=False)
    assert rows[1].cells[0] == "台北市 中山區"


def test_shape_filters_headers_footers_and_wrong_widths():
    shape = RowShape(cell_count=3, skip_labels=frozenset({"地址"}))
    kept = list(shaped_rows(tokenize_rows(HTML), shape))

    assert [row.cells[0] for row in kept] == ["台北市中山區", "新北市板橋區"]


def test_shape_by_row_class_ignores_cell_count():
    shape = RowShape(cell_count=None, row_classes=frozenset({"odd", "even"}))
    kept = list(shaped_rows(tokenize_rows(HTML), shape))

    assert len(kept) == 2


def test_empty_rows_are_never_accepted():
    assert not RowShape(cell_count=None).accepts(TableRow(cells=()))


def test_map_cells_fills_missing_indexes_with_blank():
    row = TableRow(cells=("a", "b"))
    assert map_cells(row, {"first": 0, "second": 1, "third": 5}) == {"first": "a", "second": "b", "third": ""}


def test_extract_hidden_inputs_by_name_or_id():
    html = """
    <form>
      <input type="hidden" name="__VIEWSTATE" value="vs" />
      <input type="hidden" id="__EVENTVALIDATION" value="ev" />
    </form>
    """
    assert extract_hidden_inputs(html, ["__VIEWSTATE", "__EVENTVALIDATION", "__MISSING"]) == {
        "__VIEWSTATE": "vs",
        "__EVENTVALIDATION": "ev",
    }
