"""
parseoom.render.table
AUTHOR: carter-vin

Cleaned process-table renderer (side file)
- one header line with the discovered columns
- one line per admitted process, file order
"""

from __future__ import annotations

from parseoom.model import ProcessRecord, Report
from parseoom.render.base import Renderer
from parseoom.render.utils import align_columns


def _cell(record: ProcessRecord, column: str) -> str:
    value = record.value_for(column)
    return "-" if value is None else str(value)


def table_rows(report: Report) -> list[list[str]]:
    columns = list(report.schema.columns)
    rows = [columns]
    for record in report.process_table:
        rows.append([_cell(record, column) for column in columns])
    return rows


class TableRenderer(Renderer):
    name = "table"

    def render(self, report: Report) -> str:
        return "\n".join(align_columns(table_rows(report)))
