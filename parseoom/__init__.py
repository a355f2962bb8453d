"""parseoom package exports."""

from parseoom.errors import MalformedRow, NoEventFound, OomParseError
from parseoom.parse import ParseSettings, run

__all__ = [
    "MalformedRow",
    "NoEventFound",
    "OomParseError",
    "ParseSettings",
    "run",
]
