"""Node records and the patches applied to them.

These models represent the per-callsign state built from relay log lines.
The wire representation keeps the upper-case keys the dashboard pages read.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class OnlineState(IntEnum):
    """Connection state of a node, serialized as its integer value."""

    OFFLINE = 0
    ONLINE = 1
    TIMEOUT = 2
    UNKNOWN = 3


class PacketState(str, Enum):
    """Whether a transmission is in progress."""

    START = "START"
    END = "END"


@dataclass
class NodeRecord:
    """Current state of one node built from log events."""

    callsign: str
    talker: str = ""
    talkgroup_id: str = ""
    monitoring: str = ""
    region: str = ""
    ip: str = ""
    port: str = ""
    protocol_version: str = ""
    date: str = ""
    time: str = ""
    start_xmit_ms: int = 0
    delay_seconds: float = 0.0
    packet_state: PacketState = PacketState.END
    online_state: OnlineState = OnlineState.UNKNOWN
    radio_identity: str = "{}"

    def copy(self) -> NodeRecord:
        """Detached copy for snapshots."""
        return replace(self)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the keys the dashboard pages expect."""
        return {
            "CALLSIGN": self.callsign,
            "TALKER": self.talker,
            "TGID": self.talkgroup_id,
            "MONITORING": self.monitoring,
            "REGION": self.region,
            "IP": self.ip,
            "PORT": self.port,
            "PROTOCOL": self.protocol_version,
            "DATE": self.date,
            "TIME": self.time,
            "STARTXMIT": self.start_xmit_ms,
            "DELAY": self.delay_seconds,
            "PACKET": self.packet_state.value,
            "ONLINE": int(self.online_state),
            "RADIOID": self.radio_identity,
        }


@dataclass
class NodePatch:
    """Partial update for a NodeRecord.

    Plain fields left as None are not touched. Timing is expressed as
    instructions relative to `timestamp_ms` so the table can compute the
    delay against the record's own start time:
    - start_xmit: the event opens a transmission or connection
    - stop_xmit: the event closes one; delay is computed
    When `timestamp_ms` is None (absent or malformed stamp) no timing field
    changes.
    """

    timestamp_ms: int | None = None
    start_xmit: bool = False
    stop_xmit: bool = False
    talkgroup_id: str | None = None
    monitoring: str | None = None
    region: str | None = None
    ip: str | None = None
    port: str | None = None
    protocol_version: str | None = None
    packet_state: PacketState | None = None
    online_state: OnlineState | None = None

    def apply_to(self, record: NodeRecord) -> None:
        """Merge this patch into a record in place."""
        for name in (
            "talkgroup_id",
            "monitoring",
            "region",
            "ip",
            "port",
            "protocol_version",
            "packet_state",
            "online_state",
        ):
            value = getattr(self, name)
            if value is not None:
                setattr(record, name, value)

        if self.timestamp_ms is None:
            return

        record.date, record.time = format_stamp(self.timestamp_ms)
        if self.start_xmit:
            record.start_xmit_ms = self.timestamp_ms
            record.delay_seconds = 0.0
        elif self.stop_xmit:
            if record.start_xmit_ms:
                record.delay_seconds = (self.timestamp_ms - record.start_xmit_ms) / 1000
            else:
                record.delay_seconds = 0.0


@dataclass
class NodeEvent:
    """One state transition parsed from a log line."""

    callsign: str
    patch: NodePatch = field(default_factory=NodePatch)


def format_stamp(timestamp_ms: int) -> tuple[str, str]:
    """Split an epoch-ms stamp into the DD-MM-YYYY and HH:MM:SS display fields."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return dt.strftime("%d-%m-%Y"), dt.strftime("%H:%M:%S")
