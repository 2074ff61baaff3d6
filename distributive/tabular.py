"""
Column helpers for the tabular output of CLI tools (systemctl, docker, df).

A table is a list of rows; a row is a list of cells. ``split`` cuts on runs of
whitespace unless a separator is given (``docker --format`` output uses tabs).
"""

from __future__ import annotations

Table = list[list[str]]


def split(text: str, sep: str | None = None) -> Table:
    rows = []
    for line in text.splitlines():
        if not line.strip():
            continue
        cells = line.split(sep) if sep else line.split()
        rows.append([cell.strip() for cell in cells])
    return rows


def column(table: Table, index: int) -> list[str]:
    """Cell ``index`` of every row; short rows are skipped."""
    return [row[index] for row in table if len(row) > index]


def column_by_header(table: Table, header: str) -> list[str]:
    """Cells under ``header`` (case-insensitive) in the first row, header excluded."""
    if not table:
        return []
    headers = [cell.lower() for cell in table[0]]
    try:
        index = headers.index(header.lower())
    except ValueError:
        return []
    return column(table[1:], index)
