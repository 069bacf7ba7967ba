"""Row parsing for providers that only serve server-rendered tables.

The markup of these pages has no stable class or id hooks, so rows are
recognised by shape: tokenise every ``<tr>``, keep the ones with the
expected number of cells, drop header and decoration rows by their known
label text, and only then map cells to named fields.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from bs4 import BeautifulSoup

WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class TableRow:
    cells: tuple[str, ...]
    hrefs: tuple[str, ...] = ()
    onclick: str | None = None
    classes: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowShape:
    cell_count: int | None
    skip_labels: frozenset[str] = field(default_factory=frozenset)
    row_classes: frozenset[str] = field(default_factory=frozenset)

    def accepts(self, row: TableRow) -> bool:
        if not row.cells:
            return False
        if self.cell_count is not None and len(row.cells) != self.cell_count:
            return False
        if self.row_classes and not self.row_classes.intersection(row.classes):
            return False
        return row.cells[0] not in self.skip_labels


def _cell_text(node, compact: bool) -> str:
    text = node.get_text(" ", strip=True)
    if compact:
        return WHITESPACE_PATTERN.sub("", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def tokenize_rows(html: str, *, compact: bool = True) -> list[TableRow]:
    soup = BeautifulSoup(html, "html.parser")
    rows: list[TableRow] = []
    for tr in soup.find_all("tr"):
        cells = tr.find_all("td", recursive=False) or tr.find_all("td")
        hrefs = tuple(a.get("href") for a in tr.find_all("a") if a.get("href"))
        rows.append(
            TableRow(
                cells=tuple(_cell_text(td, compact) for td in cells),
                hrefs=hrefs,
                onclick=tr.get("onclick"),
                classes=tuple(tr.get("class") or ()),
            )
        )
    return rows


def shaped_rows(rows: Iterable[TableRow], shape: RowShape) -> Iterator[TableRow]:
    for row in rows:
        if shape.accepts(row):
            yield row


def map_cells(row: TableRow, columns: Mapping[str, int]) -> dict[str, str]:
    out: dict[str, str] = {}
    for name, index in columns.items():
        out[name] = row.cells[index] if 0 <= index < len(row.cells) else ""
    return out


def extract_hidden_inputs(html: str, names: Iterable[str]) -> dict[str, str]:
    """Return ``{name: value}`` for hidden form inputs that are present."""
    soup = BeautifulSoup(html, "html.parser")
    found: dict[str, str] = {}
    for name in names:
        node = soup.find("input", attrs={"name": name}) or soup.find("input", attrs={"id": name})
        if node is not None and node.get("value") is not None:
            found[name] = node.get("value")
    return found
