"""Fixed-width column rendering for terminal reports.

Each column is as wide as its longest cell across the header and every row.
Every cell a row has is padded to its column width, so columns line up even on
the last column. Ragged rows render only the cells they have: a short row
simply ends early, and cells that only long rows have still get a width
computed from those rows. Nothing is ever truncated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

LEFT = "left"
RIGHT = "right"


def column_widths(rows: Sequence[Sequence[str]]) -> list[int]:
    widths: list[int] = []
    for row in rows:
        for i, cell in enumerate(row):
            if i == len(widths):
                widths.append(len(cell))
            elif len(cell) > widths[i]:
                widths[i] = len(cell)
    return widths


def render_table(
    rows: Iterable[Sequence[str]],
    header: Sequence[str] | None = None,
    separator: str = "  ",
    align: Mapping[int, str] | None = None,
) -> str:
    """Render rows of string cells; returns "" for no rows and no header."""
    body = [list(map(str, row)) for row in rows]
    lines = ([list(header)] if header is not None else []) + body
    if not lines:
        return ""

    widths = column_widths(lines)
    align = align or {}

    out = []
    for row in lines:
        cells = []
        for i, cell in enumerate(row):
            if align.get(i, LEFT) == RIGHT:
                cells.append(cell.rjust(widths[i]))
            else:
                cells.append(cell.ljust(widths[i]))
        out.append(separator.join(cells))
    return "\n".join(out) + "\n"
