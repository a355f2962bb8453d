"""
parseoom.aggregate
AUTHOR: carter-vin

Stateful accumulator for one parse run

Rules:
- memory stats: fixed slots keyed by (label, node), last write wins
- process rows: appended in file order while the table is open
- finalize: derive per-command totals, percentages and placeholders exactly once
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace

from parseoom.model import (
    FIXED_SLOTS,
    HUGEPAGES_1G,
    TOTAL_RAM,
    CommandAggregate,
    MemoryStat,
    OomTrigger,
    OomVictim,
    ProcessRecord,
    Report,
    TableSchema,
    hugepage_size_kb,
)
from parseoom.units import DEFAULT_PAGE_SIZE, pages_to_bytes


DEFAULT_TOP_N = 10


def _pct(value: int, total: int) -> float | None:
    if total <= 0:
        return None
    return (value / total) * 100.0


class Aggregator:
    """
    Owned by a single run; never shared between runs
    """

    def __init__(self, *, top_n: int = DEFAULT_TOP_N, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if top_n < 1:
            raise ValueError("top_n must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        self.top_n = top_n
        self.page_size = page_size

        self._stats: dict[tuple[str, int | None], MemoryStat] = {}
        self._rows: list[ProcessRecord] = []
        self._schema: TableSchema | None = None
        self._table_open = False
        self._rows_rejected = 0
        self._trigger: OomTrigger | None = None
        self._victim: OomVictim | None = None
        self._finalized = False

    # -----------------------------
    # Table lifecycle
    # -----------------------------
    @property
    def table_open(self) -> bool:
        return self._table_open

    @property
    def rows_admitted(self) -> int:
        return len(self._rows)

    @property
    def rows_rejected(self) -> int:
        return self._rows_rejected

    def open_table(self, schema: TableSchema) -> None:
        if self._schema is not None:
            raise RuntimeError("process table already opened for this run")
        self._schema = schema
        self._table_open = True

    def close_table(self) -> None:
        self._table_open = False

    def reject_row(self) -> None:
        self._rows_rejected += 1

    # -----------------------------
    # Observation
    # -----------------------------
    def has_stat(self, stat: MemoryStat) -> bool:
        return (stat.label, stat.node) in self._stats

    def observe(self, record: object) -> None:
        """
        Route one extracted record into the accumulated state
        """
        if self._finalized:
            raise RuntimeError("aggregator already finalized")

        if isinstance(record, MemoryStat):
            self._stats[(record.label, record.node)] = record
        elif isinstance(record, ProcessRecord):
            # Rows outside the header..end span are ignored
            if self._table_open:
                self._rows.append(record)
        elif isinstance(record, OomTrigger):
            self._trigger = record
        elif isinstance(record, OomVictim):
            if self._victim is None:
                self._victim = record
        elif isinstance(record, TableSchema):
            self.open_table(record)
        else:
            raise TypeError(f"unsupported record: {type(record).__name__}")

    # -----------------------------
    # Derivation
    # -----------------------------
    def _merged_stats(self) -> dict[str, MemoryStat]:
        """
        Collapse per-node samples into one stat per label
        """
        totals: dict[str, int] = {}
        for (label, _node), stat in sorted(
            self._stats.items(), key=lambda item: (item[0][0], item[0][1] or 0)
        ):
            totals[label] = totals.get(label, 0) + (stat.value_bytes or 0)
        return {label: MemoryStat(label=label, value_bytes=value) for label, value in totals.items()}

    def _ordered_labels(self, merged: dict[str, MemoryStat]) -> list[str]:
        extra_hugepages = sorted(
            (
                label
                for label in merged
                if label not in FIXED_SLOTS and hugepage_size_kb(label) is not None
            ),
            key=lambda label: hugepage_size_kb(label) or 0,
        )
        labels: list[str] = []
        for label in FIXED_SLOTS:
            labels.append(label)
            if label == HUGEPAGES_1G:
                labels.extend(extra_hugepages)
        return labels

    def _command_totals(self) -> list[CommandAggregate]:
        totals: Counter[str] = Counter()
        for record in self._rows:
            totals[record.name] += record.rss

        ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return [
            CommandAggregate(
                name=name,
                total_rss=rss,
                total_rss_bytes=pages_to_bytes(rss, self.page_size),
            )
            for name, rss in ordered
        ]

    def command_totals(self) -> list[CommandAggregate]:
        """
        Every command aggregate, untruncated, in ranking order
        """
        return self._command_totals()

    def finalize(self) -> Report:
        """
        Derive the immutable report; callable once per run
        """
        if self._finalized:
            raise RuntimeError("aggregator already finalized")
        self._finalized = True
        self._table_open = False

        merged = self._merged_stats()
        total = merged.get(TOTAL_RAM)
        total_bytes = total.value_bytes if total is not None else None

        memory_stats: list[MemoryStat] = []
        for label in self._ordered_labels(merged):
            stat = merged.get(label)
            if stat is None:
                memory_stats.append(MemoryStat(label=label, value_bytes=None))
                continue
            if stat.definition.has_percent and total_bytes:
                stat = replace(stat, percent_of_total=_pct(stat.value_bytes or 0, total_bytes))
            memory_stats.append(stat)

        command_totals = tuple(self._command_totals())
        total_user_rss = sum(record.rss for record in self._rows)
        total_user_rss_bytes = pages_to_bytes(total_user_rss, self.page_size)

        return Report(
            memory_stats=tuple(memory_stats),
            process_table=tuple(self._rows),
            command_totals=command_totals,
            top_commands=command_totals[: self.top_n],
            total_user_rss=total_user_rss,
            total_user_rss_bytes=total_user_rss_bytes,
            total_user_rss_percent=_pct(total_user_rss_bytes, total_bytes) if total_bytes else None,
            schema=self._schema or TableSchema(columns=()),
            page_size=self.page_size,
            top_n=self.top_n,
            rows_rejected=self._rows_rejected,
            trigger=self._trigger,
            victim=self._victim,
        )
