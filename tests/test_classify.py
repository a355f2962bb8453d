"""
Contract tests for line classification across logging pipelines
"""

import pytest

from parseoom.classify import Category, classify, classify_all, header_columns, strip_prefix


SYSLOG = "Dec 20 03:17:52 localhost kernel: [75669.641206]"


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        (f"{SYSLOG} clamd invoked oom-killer: gfp_mask=0x6200ca(GFP_HIGHUSER_MOVABLE), order=0", Category.EVENT_START),
        (f"{SYSLOG} 5216000 pages RAM", Category.MEMORY_TOTAL),
        (f"{SYSLOG} Free swap  = 0kB", Category.FREE_SWAP),
        (
            f"{SYSLOG} Node 0 hugepages_total=0 hugepages_free=0 hugepages_surp=0 hugepages_size=2048kB",
            Category.HUGEPAGES,
        ),
        (f"{SYSLOG}  slab_reclaimable:4158 slab_unreclaimable:4454", Category.SLAB),
        (f"{SYSLOG}  mapped:70 shmem:147 pagetables:2089 bounce:0", Category.SHARED_MEMORY),
        (
            f"{SYSLOG} [  pid  ]   uid  tgid total_vm      rss pgtables_bytes swapents oom_score_adj name",
            Category.TABLE_HEADER,
        ),
        (
            f"{SYSLOG} [    199]     0   199    14838     2210   102400       14          -250 systemd-journal",
            Category.TABLE_ROW,
        ),
        (f"{SYSLOG} Out of memory: Killed process 1312 (clamd) total-vm:2104460kB", Category.TABLE_END),
        (f"{SYSLOG} oom-kill:constraint=CONSTRAINT_NONE,task=clamd,pid=1312,uid=994", Category.TABLE_END),
        (f"{SYSLOG} Call Trace:", Category.UNRECOGNIZED),
        ("", Category.UNRECOGNIZED),
    ],
)
def test_classify_known_anchors(line: str, expected: Category) -> None:
    """
    Each keyword anchor maps to its category regardless of the syslog prefix
    """
    assert classify(line) is expected


@pytest.mark.parametrize(
    "prefix",
    [
        "",
        "[75669.642775] ",
        "<4>Dec 20 03:17:52 localhost kernel: ",
        "2024-12-20T03:17:52.123456+00:00 db01 kernel: ",
        "[Fri Dec 20 03:17:52 2024] ",
        "Dec 20 03:17:52 localhost kernel: 75669.642775 ",
    ],
)
def test_bare_rows_tolerate_prefixes(prefix: str) -> None:
    """
    Rows without a bracketed pid are still recognized behind common prefixes
    """
    line = f"{prefix}    199     0   199    14838      226      29       3       14          -250 systemd-journal"
    assert classify(line) is Category.TABLE_ROW


def test_strip_prefix_removes_syslog_and_kernel_timestamp() -> None:
    """
    Prefix stripping leaves only the kernel message
    """
    line = "Dec 20 03:17:52 localhost kernel: [75669.636534] Free swap  = 0kB"
    assert strip_prefix(line) == "Free swap  = 0kB"


def test_per_node_counters_are_not_global_stats() -> None:
    """
    Node lines repeat slab/shmem in kB and must not shadow the Mem-Info totals
    """
    line = "[1.0] Node 0 active_anon:19265316kB shmem:588kB slab_unreclaimable:51200kB"
    assert classify(line) is Category.UNRECOGNIZED


def test_folded_mem_info_yields_every_stat() -> None:
    """
    A Mem-Info block folded onto one line reports slab and shared memory
    """
    line = "kernel: active_anon:1 slab_reclaimable:4 slab_unreclaimable:4454 mapped:70 shmem:147"
    assert classify_all(line) == [Category.SLAB, Category.SHARED_MEMORY]


def test_kernel_page_counts_are_not_rows() -> None:
    """
    Page summary lines start with a number but are not process rows
    """
    assert classify("[1.0] 2272 total pagecache pages") is Category.UNRECOGNIZED
    assert classify("[1.0] 0 pages HighMem/MovableOnly") is Category.UNRECOGNIZED


def test_syslog_tag_pid_is_not_a_row() -> None:
    """
    A tag such as clamd[1312]: is not a bracketed process id
    """
    line = "Dec 20 03:17:51 localhost clamd[1312]: SelfCheck: Database status OK."
    assert classify(line) is Category.UNRECOGNIZED


def test_header_missing_required_column_is_not_a_header() -> None:
    """
    A pid..name line without rss is not a process-table header
    """
    assert header_columns("[1.0] [ pid ]   uid  tgid total_vm name") is None
    assert header_columns("[1.0] [ pid ]   uid  tgid total_vm      rss name") == [
        "pid",
        "uid",
        "tgid",
        "total_vm",
        "rss",
        "name",
    ]
