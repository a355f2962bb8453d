"""
parseoom.read
AUTHOR: carter-vin

Input reader for captured kernel logs
"""

from __future__ import annotations

from pathlib import Path


def read_lines(path: Path) -> list[str]:
    """
    Read a capture into lines without trailing newlines

    Failure semantics:
    - raises OSError when the file is missing or unreadable; caller decides exit code
    """
    with path.open("rb") as handle:
        data = handle.read()

    # Replace invalid bytes to keep parsing deterministic
    return data.decode("utf-8", errors="replace").splitlines()
