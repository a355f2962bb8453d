"""
Contract tests for the per-run aggregator
"""

import pytest

from parseoom.aggregate import Aggregator
from parseoom.model import (
    FREE_SWAP,
    HUGEPAGES_1G,
    HUGEPAGES_2M,
    SHMEM,
    SLAB_UNRECLAIMABLE,
    TOTAL_RAM,
    MemoryStat,
    OomVictim,
    ProcessRecord,
    TableSchema,
)
from parseoom.units import GIB, MIB


SCHEMA = TableSchema(columns=("pid", "uid", "tgid", "total_vm", "rss", "name"))


def _row(pid: int, name: str, rss: int) -> ProcessRecord:
    return ProcessRecord(
        pid=pid,
        uid=0,
        tgid=pid,
        total_vm=rss * 2,
        rss=rss,
        name=name,
        rss_bytes=rss * 4096,
    )


def _open(aggregator: Aggregator) -> Aggregator:
    aggregator.observe(SCHEMA)
    return aggregator


def test_command_totals_sum_rows_per_name() -> None:
    """
    Per-command totals add up to the total user RSS
    """
    aggregator = _open(Aggregator())
    for record in (_row(1, "httpd", 100), _row(2, "httpd", 50), _row(3, "sshd", 20)):
        aggregator.observe(record)

    totals = {command.name: command.total_rss for command in aggregator.command_totals()}
    report = aggregator.finalize()

    assert totals == {"httpd": 150, "sshd": 20}
    assert sum(totals.values()) == report.total_user_rss == 170
    assert report.total_user_rss_bytes == 170 * 4096


def test_ranking_ties_break_by_name() -> None:
    """
    Equal totals are ordered by command name
    """
    aggregator = _open(Aggregator())
    for pid, name in enumerate(("zsh", "bash", "mysqld"), start=1):
        aggregator.observe(_row(pid, name, 10))
    aggregator.observe(_row(9, "java", 500))

    report = aggregator.finalize()

    assert [command.name for command in report.top_commands] == ["java", "bash", "mysqld", "zsh"]


def test_top_n_truncates_ranking_only() -> None:
    """
    The ranking is cut to top_n; the process table keeps every row
    """
    aggregator = _open(Aggregator(top_n=2))
    for pid in range(1, 6):
        aggregator.observe(_row(pid, f"cmd{pid}", pid * 10))

    report = aggregator.finalize()

    assert [command.name for command in report.top_commands] == ["cmd5", "cmd4"]
    assert len(report.process_table) == 5
    assert report.top_n == 2


def test_rows_outside_table_are_ignored() -> None:
    """
    Rows are kept only between open_table and close_table
    """
    aggregator = Aggregator()
    aggregator.observe(_row(1, "early", 10))
    aggregator.observe(SCHEMA)
    aggregator.observe(_row(2, "kept", 10))
    aggregator.close_table()
    aggregator.observe(_row(3, "late", 10))

    report = aggregator.finalize()

    assert [record.name for record in report.process_table] == ["kept"]


def test_table_opens_once() -> None:
    """
    A second header for the same run is an error
    """
    aggregator = _open(Aggregator())
    with pytest.raises(RuntimeError, match="already opened"):
        aggregator.open_table(SCHEMA)


def test_memory_stat_last_write_wins() -> None:
    """
    A repeated stat for the same slot overwrites the earlier value
    """
    aggregator = Aggregator()
    aggregator.observe(MemoryStat(label=FREE_SWAP, value_bytes=1024))
    aggregator.observe(MemoryStat(label=FREE_SWAP, value_bytes=4096))

    report = aggregator.finalize()
    stat = report.stat(FREE_SWAP)

    assert stat is not None
    assert stat.value_bytes == 4096


def test_hugepages_sum_across_nodes() -> None:
    """
    Per-node hugepage samples collapse into one value per size class
    """
    aggregator = Aggregator()
    aggregator.observe(MemoryStat(label=TOTAL_RAM, value_bytes=32 * GIB))
    aggregator.observe(MemoryStat(label=HUGEPAGES_1G, value_bytes=2 * GIB, node=0))
    aggregator.observe(MemoryStat(label=HUGEPAGES_1G, value_bytes=2 * GIB, node=1))
    aggregator.observe(MemoryStat(label=HUGEPAGES_1G, value_bytes=3 * GIB, node=1))

    report = aggregator.finalize()
    stat = report.stat(HUGEPAGES_1G)

    assert stat is not None
    assert stat.value_bytes == 5 * GIB
    assert stat.node is None
    assert stat.percent_of_total == pytest.approx(15.625)


def test_missing_metrics_get_placeholders_in_slot_order() -> None:
    """
    Every fixed slot is present; unseen metrics are placeholders
    """
    aggregator = Aggregator()
    aggregator.observe(MemoryStat(label=SLAB_UNRECLAIMABLE, value_bytes=10 * MIB))

    report = aggregator.finalize()

    assert [stat.label for stat in report.memory_stats] == [
        TOTAL_RAM,
        FREE_SWAP,
        HUGEPAGES_2M,
        HUGEPAGES_1G,
        SLAB_UNRECLAIMABLE,
        SHMEM,
    ]
    assert report.missing_metrics() == [TOTAL_RAM, FREE_SWAP, HUGEPAGES_2M, HUGEPAGES_1G, SHMEM]


def test_no_percent_without_total_ram() -> None:
    """
    Shares of total are left unset when total RAM is unknown
    """
    aggregator = _open(Aggregator())
    aggregator.observe(MemoryStat(label=SHMEM, value_bytes=10 * MIB))
    aggregator.observe(_row(1, "bash", 10))

    report = aggregator.finalize()
    stat = report.stat(SHMEM)

    assert stat is not None
    assert stat.percent_of_total is None
    assert report.total_user_rss_percent is None


def test_extra_hugepage_sizes_follow_fixed_hugepage_slots() -> None:
    """
    Unusual size classes are reported after the 1 GiB slot
    """
    aggregator = Aggregator()
    aggregator.observe(MemoryStat(label="hugepages_32768kB", value_bytes=128 * MIB, node=0))

    labels = [stat.label for stat in aggregator.finalize().memory_stats]

    assert labels.index("hugepages_32768kB") == labels.index(HUGEPAGES_1G) + 1


def test_first_victim_is_kept() -> None:
    """
    Later kill trailers do not replace the first victim
    """
    aggregator = Aggregator()
    aggregator.observe(OomVictim(pid=1, name="first"))
    aggregator.observe(OomVictim(pid=2, name="second"))

    report = aggregator.finalize()

    assert report.victim is not None
    assert report.victim.name == "first"


def test_finalize_runs_once() -> None:
    """
    A finalized aggregator accepts neither records nor a second finalize
    """
    aggregator = Aggregator()
    aggregator.finalize()

    with pytest.raises(RuntimeError, match="already finalized"):
        aggregator.finalize()
    with pytest.raises(RuntimeError, match="already finalized"):
        aggregator.observe(MemoryStat(label=SHMEM, value_bytes=1))


def test_rejects_bad_settings() -> None:
    """
    top_n and page_size must be positive
    """
    with pytest.raises(ValueError, match="top_n"):
        Aggregator(top_n=0)
    with pytest.raises(ValueError, match="page_size"):
        Aggregator(page_size=0)
