"""
parseoom.render.text
AUTHOR: carter-vin

Human summary renderer

Sections are fixed so every report has the same shape; a metric missing
from the log renders as "No match for <title>" instead of disappearing.
"""

from __future__ import annotations

from parseoom.model import SECTION_ORDER, Report
from parseoom.render.base import Renderer
from parseoom.render.table import table_rows
from parseoom.render.utils import align_columns, format_share

INDENT = "    "


def _event_lines(report: Report) -> list[str]:
    lines = ["OOM event:"]

    trigger = report.trigger
    if trigger is None:
        lines.append(f"{INDENT}No match for oom-killer invocation")
    else:
        details = []
        if trigger.gfp_mask is not None:
            details.append(f"gfp_mask={trigger.gfp_mask}")
        if trigger.order is not None:
            details.append(f"order={trigger.order}")
        if trigger.oom_score_adj is not None:
            details.append(f"oom_score_adj={trigger.oom_score_adj}")
        suffix = f" ({', '.join(details)})" if details else ""
        lines.append(f"{INDENT}Invoked by: {trigger.command}{suffix}")

    victim = report.victim
    if victim is None:
        lines.append(f"{INDENT}No match for killed process")
    else:
        lines.append(f"{INDENT}Killed process: {victim.pid} ({victim.name})")

    return lines


def _memory_lines(report: Report) -> list[str]:
    lines: list[str] = []
    for section in SECTION_ORDER:
        stats = [stat for stat in report.memory_stats if stat.definition.section == section]
        lines.append("")
        lines.append(f"{section}:")
        for stat in stats:
            title = stat.definition.title
            if not stat.found:
                lines.append(f"{INDENT}No match for {title}")
                continue
            lines.append(f"{INDENT}{title}: {stat.display}{format_share(stat.percent_of_total)}")
    return lines


def _command_lines(report: Report) -> list[str]:
    lines = ["", f"Top {report.top_n} unique commands using memory:", ""]
    if not report.top_commands:
        lines.append(f"{INDENT}No match for process list")
        return lines
    for command in report.top_commands:
        lines.append(f"{INDENT}{command.name}: {command.display}")
    return lines


def _process_lines(report: Report) -> list[str]:
    lines = ["", "Processes:", ""]
    if not report.process_table:
        lines.append(f"{INDENT}No match for process list")
        return lines
    rows = table_rows(report)
    # Human-unit RSS goes just before the name column
    rows[0].insert(-1, "rss_size")
    for row, record in zip(rows[1:], report.process_table):
        row.insert(-1, record.rss_display)
    lines.extend(f"{INDENT}{line}" for line in align_columns(rows))
    return lines


def render_text(report: Report) -> str:
    """
    Render the report into the deterministic operator summary
    """
    lines = _event_lines(report)
    lines.extend(_memory_lines(report))
    lines.extend(_command_lines(report))
    lines.extend(_process_lines(report))

    lines.append("")
    lines.append("Total user RSS:")
    lines.append(
        f"{INDENT}{report.total_user_rss_display}{format_share(report.total_user_rss_percent)}"
    )

    if report.rows_rejected:
        lines.append("")
        lines.append("Warnings:")
        lines.append(f"{INDENT}Skipped malformed process rows: {report.rows_rejected}")

    return "\n".join(lines)


class TextRenderer(Renderer):
    name = "text"

    def render(self, report: Report) -> str:
        return render_text(report)
