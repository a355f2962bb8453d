"""
parseoom.render.base
AUTHOR: carter-vin

Renderer interface
"""

from __future__ import annotations

from parseoom.model import Report


class Renderer:
    name: str = "base"

    def render(self, report: Report) -> str:
        raise NotImplementedError
