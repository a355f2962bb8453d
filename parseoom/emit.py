"""
parseoom.emit

AUTHOR: carter-vin

OUTPUT:
- cleaned process table side file (default ./ps.out)
- overwritten on every successful run

Design goals:
- Create parent directory if missing
- Write the whole table in one call so readers never see a partial header
- Provide explicit error surfaces (do not silently drop data)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional


DEFAULT_PS_OUT = Path("ps.out")


@dataclass(frozen=True)
class OutputTargets:
    """
    Output destination configuration.

    ps_out_path:
    - side file for the cleaned process table
    output_format:
    - stdout summary format: "text" or "json"
    """

    ps_out_path: Path = DEFAULT_PS_OUT
    output_format: str = "text"


def write_process_table(
    table_text: str,
    targets: OutputTargets,
    *,
    on_write_error: Optional[Callable[[Exception, Path], None]] = None,
) -> int:
    """
    Overwrite the side file with the rendered process table

    Returns bytes written.

    Failure semantics:
    - raises on IO errors; the callback lets the caller log before exiting
    """
    path = targets.ps_out_path
    payload = table_text if table_text.endswith("\n") else table_text + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open(mode="w", encoding="utf-8", newline="\n") as f:
            f.write(payload)
    except OSError as e:
        if on_write_error is not None:
            on_write_error(e, path)
        raise

    return len(payload.encode("utf-8"))
