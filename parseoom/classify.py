"""
parseoom.classify
AUTHOR: carter-vin

Line classifier for oom-killer captures

Contract:
- one category per recognizable line, anchored on keywords (never column offsets)
- prefixes from syslog, journald, dmesg and kernel timestamps are tolerated
- unknown lines classify as UNRECOGNIZED; no side effects
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable

from parseoom.model import REQUIRED_COLUMNS


class Category(Enum):
    EVENT_START = "event_start"
    MEMORY_TOTAL = "memory_total"
    FREE_SWAP = "free_swap"
    HUGEPAGES = "hugepages"
    SLAB = "slab"
    SHARED_MEMORY = "shared_memory"
    TABLE_HEADER = "table_header"
    TABLE_ROW = "table_row"
    TABLE_END = "table_end"
    UNRECOGNIZED = "unrecognized"


MEMORY_STAT_CATEGORIES = frozenset(
    {
        Category.MEMORY_TOTAL,
        Category.FREE_SWAP,
        Category.HUGEPAGES,
        Category.SLAB,
        Category.SHARED_MEMORY,
    }
)

# Prefixes stacked in front of the kernel message, outermost first
_PREFIX_RE = re.compile(
    r"^\s*"
    r"(?:<\d{1,3}>)?"
    r"(?:"
    r"(?:[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}"
    r"|\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?)"
    r"\s+\S+\s+[^\s:]+:\s*"
    r")?"
    r"(?:\[[A-Z][a-z]{2}\s+[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}\s+\d{4}\]\s*)?"
    r"(?:\[\s*\d+\.\d+\]\s*|\d+\.\d+\s+)?"
)

EVENT_START_RE = re.compile(r"(\S+)\s+invoked oom-killer")
TABLE_END_RE = re.compile(r"Out of memory:|oom-kill:|Memory cgroup|Killed process|oom_reaper:")
TABLE_HEADER_RE = re.compile(r"\[?\s*\bpid\b\s*\]?\s+.*\bname\b")
TOTAL_RAM_RE = re.compile(r"(\d+)\s+pages RAM\b")
FREE_SWAP_RE = re.compile(r"Free swap\s*=\s*(\d+)\s*kB")
HUGEPAGES_RE = re.compile(r"hugepages_total=(\d+).*?hugepages_size=(\d+)kB")
SLAB_RE = re.compile(r"\bslab_unreclaimable:\s*(\d+)(kB)?")
SHMEM_RE = re.compile(r"\bshmem:\s*(\d+)(kB)?")
NODE_RE = re.compile(r"\bNode\s+(\d+)\b")

# "[  199]     0 ..." anywhere in the line; kernel timestamps carry a dot and never match
BRACKETED_ROW_RE = re.compile(r"\[\s*\d+\s*\]\s+-?\d+\s")
BARE_ROW_RE = re.compile(r"^\d+\s+-?\d+\s")


def strip_prefix(line: str) -> str:
    """
    Remove known timestamp / host / tag prefixes and surrounding whitespace
    """
    return _PREFIX_RE.sub("", line, count=1).strip()


def header_columns(line: str) -> list[str] | None:
    """
    Column names of a process-table header, or None if the line is not one
    """
    match = TABLE_HEADER_RE.search(line)
    if not match:
        return None
    text = line[match.start():].replace("[", " ").replace("]", " ")
    columns = text.split()
    if not columns or columns[0] != "pid" or columns[-1] != "name":
        return None
    if any(column not in columns for column in REQUIRED_COLUMNS):
        return None
    return columns


def row_body(line: str) -> str | None:
    """
    Text of a process-table row starting at the pid column, or None
    """
    match = BRACKETED_ROW_RE.search(line)
    if match:
        return line[match.start():].strip()
    body = strip_prefix(line)
    if BARE_ROW_RE.match(body):
        return body
    return None


def _is_node_line(line: str) -> bool:
    return NODE_RE.search(line) is not None


def is_event_start(line: str) -> bool:
    return EVENT_START_RE.search(line) is not None


def is_table_end(line: str) -> bool:
    return TABLE_END_RE.search(line) is not None


def is_table_header(line: str) -> bool:
    return header_columns(line) is not None


def is_memory_total(line: str) -> bool:
    return TOTAL_RAM_RE.search(line) is not None


def is_free_swap(line: str) -> bool:
    return FREE_SWAP_RE.search(line) is not None


def is_hugepages(line: str) -> bool:
    return HUGEPAGES_RE.search(line) is not None


def is_slab(line: str) -> bool:
    # Per-node lines repeat the counter in kB; only the global Mem-Info value counts
    return SLAB_RE.search(line) is not None and not _is_node_line(line)


def is_shared_memory(line: str) -> bool:
    return SHMEM_RE.search(line) is not None and not _is_node_line(line)


def is_table_row(line: str) -> bool:
    return row_body(line) is not None


# Exclusive categories, checked first and in this order
_EXCLUSIVE_MATCHERS: tuple[tuple[Category, Callable[[str], bool]], ...] = (
    (Category.EVENT_START, is_event_start),
    (Category.TABLE_END, is_table_end),
    (Category.TABLE_HEADER, is_table_header),
)

# Memory stats may share one line when Mem-Info is folded; report slot order
_STAT_MATCHERS: tuple[tuple[Category, Callable[[str], bool]], ...] = (
    (Category.MEMORY_TOTAL, is_memory_total),
    (Category.FREE_SWAP, is_free_swap),
    (Category.HUGEPAGES, is_hugepages),
    (Category.SLAB, is_slab),
    (Category.SHARED_MEMORY, is_shared_memory),
)


def classify_all(line: str) -> list[Category]:
    """
    Every category the line belongs to; never empty
    """
    for category, matcher in _EXCLUSIVE_MATCHERS:
        if matcher(line):
            return [category]

    stats = [category for category, matcher in _STAT_MATCHERS if matcher(line)]
    if stats:
        return stats

    if is_table_row(line):
        return [Category.TABLE_ROW]

    return [Category.UNRECOGNIZED]


def classify(line: str) -> Category:
    """
    Primary category of a raw log line
    """
    return classify_all(line)[0]
