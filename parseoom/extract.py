"""
parseoom.extract
AUTHOR: carter-vin

Typed field extraction for classified lines
- memory stats are normalized to bytes
- process rows are split against the schema discovered from the header
"""

from __future__ import annotations

import re
from typing import Iterator

from parseoom.classify import (
    EVENT_START_RE,
    FREE_SWAP_RE,
    HUGEPAGES_RE,
    NODE_RE,
    SHMEM_RE,
    SLAB_RE,
    TOTAL_RAM_RE,
    Category,
    header_columns,
    row_body,
)
from parseoom.errors import MalformedRow
from parseoom.model import (
    FREE_SWAP,
    NAMED_COLUMNS,
    SHMEM,
    SLAB_UNRECLAIMABLE,
    TOTAL_RAM,
    MemoryStat,
    OomTrigger,
    OomVictim,
    ProcessRecord,
    TableSchema,
    hugepage_label,
)
from parseoom.units import DEFAULT_PAGE_SIZE, kib_to_bytes, pages_to_bytes


_GFP_MASK_RE = re.compile(r"gfp_mask=([^,\s]+)")
_ORDER_RE = re.compile(r"\border=(-?\d+)")
_SCORE_ADJ_RE = re.compile(r"oom_score_adj=(-?\d+)")

_VICTIM_RE = re.compile(r"Kill(?:ed)? process\s+(\d+)\s+\(([^)]*)\)")
_VICTIM_KB_FIELDS = {
    "total_vm_kb": re.compile(r"total-vm:(\d+)kB"),
    "anon_rss_kb": re.compile(r"anon-rss:(\d+)kB"),
    "file_rss_kb": re.compile(r"file-rss:(\d+)kB"),
    "shmem_rss_kb": re.compile(r"shmem-rss:(\d+)kB"),
}

Record = MemoryStat | TableSchema | ProcessRecord | OomTrigger | OomVictim


def _optional_int(pattern: re.Pattern[str], line: str) -> int | None:
    match = pattern.search(line)
    return int(match.group(1)) if match else None


def _counter_bytes(count: str, kb_suffix: str | None, page_size: int) -> int:
    # Mem-Info prints pages; per-zone and newer formats print kB
    if kb_suffix:
        return kib_to_bytes(int(count))
    return pages_to_bytes(int(count), page_size)


def extract_memory_total(line: str, *, page_size: int = DEFAULT_PAGE_SIZE) -> MemoryStat | None:
    match = TOTAL_RAM_RE.search(line)
    if not match:
        return None
    return MemoryStat(label=TOTAL_RAM, value_bytes=pages_to_bytes(int(match.group(1)), page_size))


def extract_free_swap(line: str) -> MemoryStat | None:
    match = FREE_SWAP_RE.search(line)
    if not match:
        return None
    return MemoryStat(label=FREE_SWAP, value_bytes=kib_to_bytes(int(match.group(1))))


def iter_hugepages(line: str) -> Iterator[MemoryStat]:
    """
    Every hugepage entry on the line, one per size class and NUMA node

    A folded Mem-Info line can carry several "Node N hugepages_total=..."
    entries; each takes the node named closest before it.
    """
    nodes = list(NODE_RE.finditer(line))
    for ordinal, match in enumerate(HUGEPAGES_RE.finditer(line)):
        preceding = [node for node in nodes if node.start() < match.start()]
        node = int(preceding[-1].group(1)) if preceding else ordinal
        total = int(match.group(1))
        size_kb = int(match.group(2))
        yield MemoryStat(
            label=hugepage_label(size_kb),
            value_bytes=kib_to_bytes(total * size_kb),
            node=node,
        )


def extract_hugepages(line: str) -> MemoryStat | None:
    return next(iter_hugepages(line), None)


def extract_slab(line: str, *, page_size: int = DEFAULT_PAGE_SIZE) -> MemoryStat | None:
    match = SLAB_RE.search(line)
    if not match:
        return None
    return MemoryStat(
        label=SLAB_UNRECLAIMABLE,
        value_bytes=_counter_bytes(match.group(1), match.group(2), page_size),
    )


def extract_shared_memory(line: str, *, page_size: int = DEFAULT_PAGE_SIZE) -> MemoryStat | None:
    match = SHMEM_RE.search(line)
    if not match:
        return None
    return MemoryStat(
        label=SHMEM,
        value_bytes=_counter_bytes(match.group(1), match.group(2), page_size),
    )


def extract_trigger(line: str) -> OomTrigger | None:
    match = EVENT_START_RE.search(line)
    if not match:
        return None
    gfp_match = _GFP_MASK_RE.search(line)
    return OomTrigger(
        command=match.group(1),
        gfp_mask=gfp_match.group(1) if gfp_match else None,
        order=_optional_int(_ORDER_RE, line),
        oom_score_adj=_optional_int(_SCORE_ADJ_RE, line),
    )


def extract_victim(line: str) -> OomVictim | None:
    """
    Victim from the kill trailer; summary lines such as "oom-kill:" yield None
    """
    match = _VICTIM_RE.search(line)
    if not match:
        return None
    kb_fields = {key: _optional_int(pattern, line) for key, pattern in _VICTIM_KB_FIELDS.items()}
    return OomVictim(pid=int(match.group(1)), name=match.group(2), **kb_fields)


def extract_schema(line: str) -> TableSchema | None:
    columns = header_columns(line)
    if columns is None:
        return None
    return TableSchema(columns=tuple(columns))


def extract_row(
    line: str,
    schema: TableSchema,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ProcessRecord:
    """
    Split a row against the discovered schema

    Raises MalformedRow when the token count or a numeric column disagrees
    """
    body = row_body(line)
    if body is None:
        raise MalformedRow(line, expected=len(schema), actual=0, reason="not a process-table row")

    tokens = body.replace("[", " ").replace("]", " ").split()
    if len(tokens) != len(schema):
        raise MalformedRow(line, expected=len(schema), actual=len(tokens))

    named: dict[str, int | str] = {}
    extras: dict[str, int] = {}

    for column, token in zip(schema.columns, tokens):
        if column == "name":
            named["name"] = token
            continue
        try:
            value = int(token)
        except ValueError:
            raise MalformedRow(
                line,
                expected=len(schema),
                actual=len(tokens),
                reason=f"column {column} is not an integer: {token!r}",
            ) from None
        if column in NAMED_COLUMNS:
            named[column] = value
        else:
            extras[column] = value

    rss = named["rss"]
    return ProcessRecord(
        **named,
        rss_bytes=pages_to_bytes(rss, page_size),
        extras=extras,
    )


def extract(
    category: Category,
    line: str,
    *,
    schema: TableSchema | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Record | None:
    """
    Extract the typed record for a classified line

    Returns None when the line carries nothing for that category.
    Raises MalformedRow for process rows that do not fit the schema.
    """
    if category is Category.MEMORY_TOTAL:
        return extract_memory_total(line, page_size=page_size)
    if category is Category.FREE_SWAP:
        return extract_free_swap(line)
    if category is Category.HUGEPAGES:
        return extract_hugepages(line)
    if category is Category.SLAB:
        return extract_slab(line, page_size=page_size)
    if category is Category.SHARED_MEMORY:
        return extract_shared_memory(line, page_size=page_size)
    if category is Category.EVENT_START:
        return extract_trigger(line)
    if category is Category.TABLE_END:
        return extract_victim(line)
    if category is Category.TABLE_HEADER:
        return extract_schema(line)
    if category is Category.TABLE_ROW:
        if schema is None:
            raise ValueError("process-table rows need a schema")
        return extract_row(line, schema, page_size=page_size)
    return None


def extract_stats(
    category: Category,
    line: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[MemoryStat]:
    """
    Memory stats a line carries for one category

    Hugepage lines may yield several samples; other categories yield at most one.
    """
    if category is Category.HUGEPAGES:
        return list(iter_hugepages(line))
    record = extract(category, line, page_size=page_size)
    return [record] if isinstance(record, MemoryStat) else []
