"""
parseoom.parse
AUTHOR: carter-vin

Single forward pass: classify -> extract -> aggregate

Table lifecycle:
- PENDING until the first process-table header
- OPEN while lines parse as rows (malformed rows are skipped, not fatal)
- CLOSED at the first non-row line; later memory stats are admitted only
  for slots not yet seen, and a second oom-killer invocation ends the pass
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from parseoom.aggregate import DEFAULT_TOP_N, Aggregator
from parseoom.classify import MEMORY_STAT_CATEGORIES, Category, classify_all
from parseoom.errors import MalformedRow, NoEventFound
from parseoom.extract import extract, extract_stats
from parseoom.model import Report, TableSchema
from parseoom.units import DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ParseSettings:
    """
    Parse configuration

    page_size:
    - bytes per kernel page for page-count quantities (rss, total_vm, pages RAM)
    top_n:
    - number of commands kept in the ranking
    """

    page_size: int = DEFAULT_PAGE_SIZE
    top_n: int = DEFAULT_TOP_N


class TableState(Enum):
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"


RowRejectedCallback = Callable[[int, MalformedRow], None]
TableClosedCallback = Callable[[int, int, int], None]


def run(
    lines: Iterable[str],
    settings: ParseSettings = ParseSettings(),
    *,
    on_row_rejected: Optional[RowRejectedCallback] = None,
    on_table_closed: Optional[TableClosedCallback] = None,
) -> Report:
    """
    Parse a capture into a Report

    Callbacks let the caller surface anomalies without coupling modules:
    - on_row_rejected(line_no, error)
    - on_table_closed(line_no, rows_admitted, rows_rejected)

    Raises NoEventFound if no process-table header was observed.
    """
    aggregator = Aggregator(top_n=settings.top_n, page_size=settings.page_size)
    state = TableState.PENDING
    schema: TableSchema | None = None

    for line_no, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        categories = classify_all(line)
        primary = categories[0]

        if state is TableState.OPEN:
            if primary is Category.TABLE_ROW:
                try:
                    record = extract(primary, line, schema=schema, page_size=settings.page_size)
                except MalformedRow as e:
                    aggregator.reject_row()
                    if on_row_rejected is not None:
                        on_row_rejected(line_no, e)
                    continue
                aggregator.observe(record)
                continue

            # Any other line ends the table, then is handled below
            state = TableState.CLOSED
            aggregator.close_table()
            if on_table_closed is not None:
                on_table_closed(line_no, aggregator.rows_admitted, aggregator.rows_rejected)

        if primary is Category.EVENT_START:
            if state is TableState.CLOSED:
                # Second event in the capture; only the first is reported
                break
            trigger = extract(primary, line)
            if trigger is not None:
                aggregator.observe(trigger)

        elif primary is Category.TABLE_HEADER:
            if state is TableState.PENDING:
                schema = extract(primary, line)
                if schema is not None:
                    aggregator.observe(schema)
                    state = TableState.OPEN

        elif primary is Category.TABLE_END:
            if state is TableState.CLOSED:
                victim = extract(primary, line)
                if victim is not None:
                    aggregator.observe(victim)

        elif primary in MEMORY_STAT_CATEGORIES:
            for category in categories:
                for stat in extract_stats(category, line, page_size=settings.page_size):
                    if state is TableState.CLOSED and aggregator.has_stat(stat):
                        continue
                    aggregator.observe(stat)

    if state is TableState.PENDING:
        raise NoEventFound()

    if state is TableState.OPEN and on_table_closed is not None:
        # Input ended inside the table
        on_table_closed(line_no, aggregator.rows_admitted, aggregator.rows_rejected)

    return aggregator.finalize()
