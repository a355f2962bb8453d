"""
parseoom.errors
AUTHOR: carter-vin

Error taxonomy
- NoEventFound: fatal, the capture holds no process table
- MalformedRow: local, the row is skipped and counted
- IO failures stay as the built-in OSError
"""

from __future__ import annotations


class OomParseError(Exception):
    """Base class for parse failures."""


class NoEventFound(OomParseError):
    """
    No process-table header was observed in the input
    """

    def __init__(self, message: str = "no oom-killer process table found in input") -> None:
        super().__init__(message)


class MalformedRow(OomParseError):
    """
    A process-table line disagrees with the discovered column schema
    """

    def __init__(self, line: str, *, expected: int, actual: int, reason: str | None = None) -> None:
        self.line = line
        self.expected = expected
        self.actual = actual
        self.reason = reason or f"expected {expected} columns, got {actual}"
        super().__init__(self.reason)
