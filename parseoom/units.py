"""
parseoom.units
AUTHOR: carter-vin

Unit normalization helpers
- everything is normalized to bytes before aggregation
- kernel "kB" means KiB
"""

from __future__ import annotations


KIB = 1024
MIB = 1024 ** 2
GIB = 1024 ** 3

# Kernel page size assumed for page-count quantities; callers can override it
DEFAULT_PAGE_SIZE = 4096

_UNIT_BYTES = {
    "KiB": KIB,
    "MiB": MIB,
    "GiB": GIB,
}


def pages_to_bytes(pages: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return pages * page_size


def kib_to_bytes(kib: int) -> int:
    return kib * KIB


def format_quantity(bytes_value: int | None, unit: str) -> str:
    """
    Render a byte count in a fixed unit

    KiB renders as a whole number, larger units with one decimal
    """
    if bytes_value is None:
        return "n/a"
    if unit not in _UNIT_BYTES:
        raise ValueError(f"unknown unit: {unit}")
    value = bytes_value / _UNIT_BYTES[unit]
    if unit == "KiB":
        return f"{value:.0f} {unit}"
    return f"{value:.1f} {unit}"


def format_percent(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f}%"
