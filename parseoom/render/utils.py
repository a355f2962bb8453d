"""
parseoom.render.utils
AUTHOR: carter-vin

Formatting helpers for renderers
"""

from __future__ import annotations

from parseoom.units import format_percent


def format_share(percent: float | None) -> str:
    """
    Suffix for a quantity that has a share of total RAM; empty when unknown
    """
    if percent is None:
        return ""
    return f"  --  ({format_percent(percent)})"


def align_columns(rows: list[list[str]], *, left_align_last: bool = True) -> list[str]:
    """
    Pad cells so columns line up; numbers right-aligned, last column left-aligned
    """
    if not rows:
        return []

    width_count = max(len(row) for row in rows)
    widths = [
        max(len(row[i]) for row in rows if i < len(row))
        for i in range(width_count)
    ]

    lines: list[str] = []
    for row in rows:
        cells: list[str] = []
        for i, cell in enumerate(row):
            if i == len(row) - 1 and left_align_last:
                cells.append(cell)
            else:
                cells.append(cell.rjust(widths[i]))
        lines.append("  ".join(cells).rstrip())
    return lines
