"""
parseoom.render.json
AUTHOR: carter-vin

JSON renderer
"""

from __future__ import annotations

import json

from parseoom.model import Report
from parseoom.render.base import Renderer


def render_json(report: Report) -> dict:
    """
    Render the report into a deterministic JSON payload
    """
    return report.to_dict()


class JsonRenderer(Renderer):
    name = "json"

    def render(self, report: Report) -> str:
        payload = render_json(report)
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
