"""
parseoom.cli
------------
AUTHOR: carter-vin

Operator entrypoint: summarize the oom-killer event in a captured log

Key contract:
- `parseoom LOGFILE` prints the summary and writes the cleaned table to ./ps.out
- exit 0 on success, 1 on IO failure, 3 when the log holds no oom event
- structured events go to stderr; stdout carries only the summary
"""

from __future__ import annotations

import platform
import sys
from pathlib import Path

import typer

from parseoom.emit import OutputTargets, write_process_table
from parseoom.errors import MalformedRow, NoEventFound
from parseoom.logging import emit_event, line_fields
from parseoom.parse import ParseSettings, run
from parseoom.read import read_lines
from parseoom.render import SUMMARY_FORMATS, format_report


app = typer.Typer(
    add_completion=False,
    help="parseoom: summarize an oom-killer event from a kernel log",
)

TOOL_VERSION = "0.1.0"

EXIT_IO_ERROR = 1
EXIT_NO_EVENT = 3


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"parseoom v{TOOL_VERSION}")
    typer.echo(f"python={sys.version.split()[0]}")
    typer.echo(f"os={platform.system()} {platform.release()}")
    raise typer.Exit()


@app.command()
def main(
    logfile: str = typer.Argument(
        ...,
        help="Path to the captured kernel/syslog file.",
    ),
    ps_out: str = typer.Option(
        "ps.out",
        "--ps-out",
        help="Path of the cleaned process table side file.",
    ),
    top: int = typer.Option(
        10,
        "--top",
        help="Number of commands to rank by resident memory.",
        min=1,
    ),
    page_size: int = typer.Option(
        4096,
        "--page-size",
        help="Bytes per kernel page for page-count columns.",
        min=1,
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        help="Summary format: text or json.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Print version and runtime environment, then exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Parse LOGFILE and report memory usage at the time of the oom kill
    """
    if output_format not in SUMMARY_FORMATS:
        raise typer.BadParameter("--format must be 'text' or 'json'")

    path = Path(logfile)
    settings = ParseSettings(page_size=page_size, top_n=top)
    targets = OutputTargets(ps_out_path=Path(ps_out), output_format=output_format)

    emit_event(
        "parse_started",
        tool_version=TOOL_VERSION,
        path=str(path),
        page_size=settings.page_size,
        top_n=settings.top_n,
    )

    try:
        lines = read_lines(path)
    except OSError as e:
        emit_event(
            "input_read_failed",
            tool_version=TOOL_VERSION,
            path=str(path),
            error_type=type(e).__name__,
            message=str(e),
        )
        typer.echo(f"error: cannot read {path}: {e.strerror or e}", err=True)
        raise typer.Exit(code=EXIT_IO_ERROR)

    def _on_row_rejected(line_no: int, error: MalformedRow) -> None:
        emit_event(
            "row_rejected",
            tool_version=TOOL_VERSION,
            message=error.reason,
            **line_fields(line_no, error.line),
        )

    def _on_table_closed(line_no: int, rows_admitted: int, rows_rejected: int) -> None:
        emit_event(
            "table_closed",
            tool_version=TOOL_VERSION,
            line_no=line_no,
            rows_admitted=rows_admitted,
            rows_rejected=rows_rejected,
        )

    try:
        report = run(
            lines,
            settings,
            on_row_rejected=_on_row_rejected,
            on_table_closed=_on_table_closed,
        )
    except NoEventFound as e:
        emit_event(
            "no_event_found",
            tool_version=TOOL_VERSION,
            path=str(path),
            lines_read=len(lines),
        )
        typer.echo(f"error: {e}: {path}", err=True)
        raise typer.Exit(code=EXIT_NO_EVENT)

    for label in report.missing_metrics():
        emit_event("metric_missing", tool_version=TOOL_VERSION, metric=label)

    summary, table = format_report(report, output_format=targets.output_format)

    def _on_write_error(e: Exception, out_path: Path) -> None:
        emit_event(
            "side_file_write_failed",
            tool_version=TOOL_VERSION,
            path=str(out_path),
            error_type=type(e).__name__,
            message=str(e),
        )

    try:
        written = write_process_table(table, targets, on_write_error=_on_write_error)
    except OSError as e:
        typer.echo(f"error: cannot write {targets.ps_out_path}: {e.strerror or e}", err=True)
        raise typer.Exit(code=EXIT_IO_ERROR)

    emit_event(
        "side_file_written",
        tool_version=TOOL_VERSION,
        path=str(targets.ps_out_path),
        rows=len(report.process_table),
        bytes=written,
    )

    typer.echo(summary)

    emit_event(
        "parse_finished",
        tool_version=TOOL_VERSION,
        rows_admitted=len(report.process_table),
        rows_rejected=report.rows_rejected,
        metrics_missing=len(report.missing_metrics()),
    )


if __name__ == "__main__":
    app()
