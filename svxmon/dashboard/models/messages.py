"""Outbound message shapes.

Snapshot messages are plain dicts because the dashboard pages expect the
exact upper-case envelope; the HTTP status response is a pydantic model.
"""

from __future__ import annotations

from typing import Any, Iterable, Literal

from pydantic import BaseModel

from .nodes import NodeRecord


def traffic_message(records: Iterable[NodeRecord], observer_count: int) -> dict[str, Any]:
    """Routine tick message."""
    return {
        "TRAFFIC": [r.to_wire() for r in records],
        "BIGEARS": str(observer_count),
    }


def config_message(records: Iterable[NodeRecord]) -> dict[str, Any]:
    """Message sent once when an observer is admitted."""
    return {"CONFIG": {"PACKETS": {"TRAFFIC": [r.to_wire() for r in records]}}}


class MonitorStatus(BaseModel):
    """Summary returned by /api/status."""

    system_name: str
    version: str
    dialect: Literal["standalone", "reflector"]
    log_file: str
    last_processed_line: int
    node_count: int
    observer_count: int
