"""parseoom.render registry."""

from __future__ import annotations

from parseoom.model import Report
from parseoom.render.json import JsonRenderer
from parseoom.render.table import TableRenderer
from parseoom.render.text import TextRenderer

_RENDERERS = {
    "json": JsonRenderer(),
    "text": TextRenderer(),
    "table": TableRenderer(),
}

SUMMARY_FORMATS = ("text", "json")


def get_renderer(name: str):
    if name not in _RENDERERS:
        raise ValueError(f"unknown renderer: {name}")
    return _RENDERERS[name]


def format_report(report: Report, *, output_format: str = "text") -> tuple[str, str]:
    """
    Render (summary_text, process_table_text) for one report
    """
    if output_format not in SUMMARY_FORMATS:
        raise ValueError(f"unknown summary format: {output_format}")
    summary = get_renderer(output_format).render(report)
    table = get_renderer("table").render(report)
    return summary, table
