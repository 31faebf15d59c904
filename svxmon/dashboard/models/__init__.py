"""Dashboard data models.

- nodes.py: NodeRecord, its patches and state enums
- messages.py: Outbound WebSocket / HTTP payloads
"""

from .nodes import NodeEvent, NodePatch, NodeRecord, OnlineState, PacketState, format_stamp
from .messages import MonitorStatus, config_message, traffic_message

__all__ = [
    "NodeEvent",
    "NodePatch",
    "NodeRecord",
    "OnlineState",
    "PacketState",
    "format_stamp",
    "MonitorStatus",
    "config_message",
    "traffic_message",
]
