"""
parseoom.model
AUTHOR: carter-vin

Report schema + deterministic serialization primitives.

Design goals:
- Records are created once during the pass and never mutated
- Explicit structure (no accidental serialization via __dict__)
- Deterministic ordering everywhere output is produced
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from parseoom.units import format_quantity

# Schema constants
SCHEMA_VERSION = "1"


# -----------------------------
# Metric metadata
# -----------------------------
@dataclass(frozen=True)
class MetricDef:
    """
    Display metadata for one memory metric label
    - section: summary section the metric renders under
    - unit: fixed display unit
    - has_percent: share of total RAM is shown when total RAM is known
    """

    label: str
    title: str
    section: str
    unit: str
    has_percent: bool


SECTION_TOTAL = "Memory total"
SECTION_SWAP = "Swap"
SECTION_HUGEPAGES = "Huge Pages"
SECTION_SLAB = "Slab"
SECTION_SHMEM = "Shared Memory"

SECTION_ORDER = (
    SECTION_TOTAL,
    SECTION_SWAP,
    SECTION_HUGEPAGES,
    SECTION_SLAB,
    SECTION_SHMEM,
)

TOTAL_RAM = "total_ram"
FREE_SWAP = "free_swap"
HUGEPAGES_2M = "hugepages_2048kB"
HUGEPAGES_1G = "hugepages_1048576kB"
SLAB_UNRECLAIMABLE = "slab_unreclaimable"
SHMEM = "shmem"

_FIXED_METRICS = {
    TOTAL_RAM: MetricDef(TOTAL_RAM, "Total RAM", SECTION_TOTAL, "GiB", False),
    FREE_SWAP: MetricDef(FREE_SWAP, "Free swap", SECTION_SWAP, "KiB", False),
    HUGEPAGES_2M: MetricDef(HUGEPAGES_2M, "Allocated 2 MiB huge pages", SECTION_HUGEPAGES, "MiB", True),
    HUGEPAGES_1G: MetricDef(HUGEPAGES_1G, "Allocated 1 GiB huge pages", SECTION_HUGEPAGES, "GiB", True),
    SLAB_UNRECLAIMABLE: MetricDef(SLAB_UNRECLAIMABLE, "Unreclaimable slab", SECTION_SLAB, "MiB", True),
    SHMEM: MetricDef(SHMEM, "Shared memory", SECTION_SHMEM, "MiB", True),
}

# Slot order in the final report; extra hugepage sizes are inserted after these two
FIXED_SLOTS = (
    TOTAL_RAM,
    FREE_SWAP,
    HUGEPAGES_2M,
    HUGEPAGES_1G,
    SLAB_UNRECLAIMABLE,
    SHMEM,
)


def hugepage_label(size_kb: int) -> str:
    return f"hugepages_{size_kb}kB"


def hugepage_size_kb(label: str) -> int | None:
    if not (label.startswith("hugepages_") and label.endswith("kB")):
        return None
    try:
        return int(label[len("hugepages_"):-len("kB")])
    except ValueError:
        return None


def _size_title(size_kb: int) -> str:
    if size_kb >= 1024 * 1024 and size_kb % (1024 * 1024) == 0:
        return f"{size_kb // (1024 * 1024)} GiB"
    if size_kb >= 1024 and size_kb % 1024 == 0:
        return f"{size_kb // 1024} MiB"
    return f"{size_kb} KiB"


def metric_def(label: str) -> MetricDef:
    """
    Look up display metadata, deriving it for unusual hugepage size classes
    """
    if label in _FIXED_METRICS:
        return _FIXED_METRICS[label]

    size_kb = hugepage_size_kb(label)
    if size_kb is None:
        raise ValueError(f"unknown metric label: {label}")

    unit = "GiB" if size_kb >= 1024 * 1024 else "MiB"
    return MetricDef(
        label,
        f"Allocated {_size_title(size_kb)} huge pages",
        SECTION_HUGEPAGES,
        unit,
        True,
    )


# -----------------------------
# Records
# -----------------------------
@dataclass(frozen=True)
class MemoryStat:
    """
    One memory metric
    - value_bytes None means "not found in the log"
    - node is set for per-NUMA-node samples (hugepages) before they are summed
    """

    label: str
    value_bytes: int | None
    percent_of_total: float | None = None
    node: int | None = None

    @property
    def found(self) -> bool:
        return self.value_bytes is not None

    @property
    def definition(self) -> MetricDef:
        return metric_def(self.label)

    @property
    def display(self) -> str:
        return format_quantity(self.value_bytes, self.definition.unit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "found": self.found,
            "value_bytes": self.value_bytes,
            "percent_of_total": self.percent_of_total,
        }


@dataclass(frozen=True)
class TableSchema:
    """
    Column names discovered from the process-table header, in file order
    """

    columns: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.columns)


# Columns with a dedicated ProcessRecord field
NAMED_COLUMNS = (
    "pid",
    "uid",
    "tgid",
    "total_vm",
    "rss",
    "pgtables_bytes",
    "swapents",
    "cpu",
    "oom_adj",
    "oom_score_adj",
    "name",
)
REQUIRED_COLUMNS = ("pid", "uid", "tgid", "total_vm", "rss", "name")


@dataclass(frozen=True)
class ProcessRecord:
    """
    One row of the process table
    - total_vm / rss are kernel pages
    - optional columns are None when the kernel did not print them
    """

    pid: int
    uid: int
    tgid: int
    total_vm: int
    rss: int
    name: str
    rss_bytes: int
    pgtables_bytes: int | None = None
    swapents: int | None = None
    cpu: int | None = None
    oom_adj: int | None = None
    oom_score_adj: int | None = None
    extras: dict[str, int] = field(default_factory=dict)

    @property
    def rss_display(self) -> str:
        return format_quantity(self.rss_bytes, "MiB")

    def value_for(self, column: str) -> int | str | None:
        if column in NAMED_COLUMNS:
            return getattr(self, column)
        return self.extras.get(column)

    def to_dict(self, columns: tuple[str, ...]) -> dict[str, Any]:
        payload = {column: self.value_for(column) for column in columns}
        payload["rss_bytes"] = self.rss_bytes
        return payload


@dataclass(frozen=True)
class CommandAggregate:
    name: str
    total_rss: int
    total_rss_bytes: int

    @property
    def display(self) -> str:
        return format_quantity(self.total_rss_bytes, "MiB")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "total_rss": self.total_rss,
            "total_rss_bytes": self.total_rss_bytes,
        }


@dataclass(frozen=True)
class OomTrigger:
    """
    The "<comm> invoked oom-killer" line
    """

    command: str
    gfp_mask: str | None = None
    order: int | None = None
    oom_score_adj: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "gfp_mask": self.gfp_mask,
            "order": self.order,
            "oom_score_adj": self.oom_score_adj,
        }


@dataclass(frozen=True)
class OomVictim:
    """
    The "Out of memory: Kill(ed) process" trailer
    """

    pid: int
    name: str
    total_vm_kb: int | None = None
    anon_rss_kb: int | None = None
    file_rss_kb: int | None = None
    shmem_rss_kb: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "total_vm_kb": self.total_vm_kb,
            "anon_rss_kb": self.anon_rss_kb,
            "file_rss_kb": self.file_rss_kb,
            "shmem_rss_kb": self.shmem_rss_kb,
        }


@dataclass(frozen=True)
class Report:
    """
    Top-level report, derived once per run
    """

    memory_stats: tuple[MemoryStat, ...]
    process_table: tuple[ProcessRecord, ...]
    command_totals: tuple[CommandAggregate, ...]
    top_commands: tuple[CommandAggregate, ...]
    total_user_rss: int
    total_user_rss_bytes: int
    schema: TableSchema
    page_size: int
    top_n: int = 10
    total_user_rss_percent: float | None = None
    rows_rejected: int = 0
    trigger: OomTrigger | None = None
    victim: OomVictim | None = None

    @property
    def total_user_rss_display(self) -> str:
        return format_quantity(self.total_user_rss_bytes, "MiB")

    def stat(self, label: str) -> MemoryStat | None:
        for stat in self.memory_stats:
            if stat.label == label:
                return stat
        return None

    def missing_metrics(self) -> list[str]:
        return [stat.label for stat in self.memory_stats if not stat.found]

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to dict

        - keys exactly as defined
        - versioned via meta.schema_version
        """
        columns = self.schema.columns
        return {
            "meta": {
                "schema_version": SCHEMA_VERSION,
                "page_size": self.page_size,
                "top_n": self.top_n,
                "rows_rejected": self.rows_rejected,
            },
            "event": {
                "trigger": self.trigger.to_dict() if self.trigger else None,
                "victim": self.victim.to_dict() if self.victim else None,
            },
            "memory_stats": [stat.to_dict() for stat in self.memory_stats],
            "columns": list(columns),
            "process_table": [record.to_dict(columns) for record in self.process_table],
            "command_totals": [command.to_dict() for command in self.command_totals],
            "top_commands": [command.to_dict() for command in self.top_commands],
            "total_user_rss": self.total_user_rss,
            "total_user_rss_bytes": self.total_user_rss_bytes,
            "total_user_rss_percent": self.total_user_rss_percent,
        }

