"""Log dialects: relay log lines -> node events.

Two relay programs write the logs this monitor reads:
- SvxLink (standalone relay): one "Connected nodes:" summary per session,
  then talker start/stop lines.
- SvxReflector (federated reflector): one line per login, monitor, select,
  talker and disconnect event, with the acting callsign at a fixed column.

Markers are fixed, case-sensitive substrings checked in a fixed priority
order; the first marker found decides how a line is read.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import ClassVar, Sequence

from ..models.nodes import NodeEvent, NodePatch, OnlineState, PacketState
from .node_table import NodeTable

logger = logging.getLogger(__name__)


def _epoch_ms(stamp: str, fmt: str) -> int | None:
    """Local-time stamp to epoch milliseconds, None when malformed."""
    try:
        dt = datetime.strptime(stamp, fmt)
    except ValueError:
        return None
    return int(dt.timestamp()) * 1000


class LogDialect(ABC):
    """Strategy for one relay log format."""

    name: ClassVar[str]
    banner: ClassVar[str]
    session_marker: ClassVar[str]

    def is_banner(self, line: str) -> bool:
        """Line starts a new relay session."""
        return self.banner in line

    def is_session_marker(self, line: str) -> bool:
        """Line marks a connection being established (diagnostic only)."""
        return self.session_marker in line

    @abstractmethod
    def parse_timestamp(self, line: str) -> int | None:
        """Epoch ms of the line's stamp prefix, None when absent or malformed."""

    @abstractmethod
    def parse_line(self, line: str) -> NodeEvent | None:
        """Event recognized on the incremental path, None for other lines."""

    @abstractmethod
    def replay(self, lines: Sequence[str], start: int, table: NodeTable) -> int:
        """Apply the bootstrap rules from `start`; return the next line to process."""


class StandaloneDialect(LogDialect):
    """SvxLink standalone relay log."""

    name = "standalone"
    banner = "SvxLink v"
    session_marker = "ReflectorLogic: Connection established to"

    CONNECTED_NODES = "Connected nodes:"
    STAMP_WIDTH = 24
    STAMP_FORMAT = "%a %b %d %H:%M:%S %Y"

    # "Talker start: F1ABC" and "Talker start on TG #33: F1ABC"
    _TALKER_START = re.compile(r"Talker start(?: on TG #(\d+))?:\s*(\S+)")
    _TALKER_STOP = re.compile(r"Talker stop(?: on TG #(\d+))?:\s*(\S+)")
    _REGION = re.compile(r"\(([^)]+)\)")

    def parse_timestamp(self, line: str) -> int | None:
        return _epoch_ms(line[: self.STAMP_WIDTH], self.STAMP_FORMAT)

    def parse_line(self, line: str) -> NodeEvent | None:
        match = self._TALKER_START.search(line)
        if match:
            return NodeEvent(
                callsign=match.group(2),
                patch=NodePatch(
                    timestamp_ms=self.parse_timestamp(line),
                    start_xmit=True,
                    talkgroup_id=match.group(1),
                    packet_state=PacketState.START,
                ),
            )

        match = self._TALKER_STOP.search(line)
        if match:
            return NodeEvent(
                callsign=match.group(2),
                patch=NodePatch(
                    timestamp_ms=self.parse_timestamp(line),
                    stop_xmit=True,
                    packet_state=PacketState.END,
                ),
            )

        return None

    def parse_summary(self, line: str) -> list[NodeEvent] | None:
        """Seed events for every node on a "Connected nodes:" line."""
        index = line.find(self.CONNECTED_NODES)
        if index == -1:
            return None

        timestamp = self.parse_timestamp(line)
        events: list[NodeEvent] = []
        for entry in line[index + len(self.CONNECTED_NODES):].split(","):
            entry = entry.strip()
            callsign = entry[entry.find(")") + 1:].strip()
            if not callsign:
                continue
            region = self._REGION.search(entry)
            events.append(
                NodeEvent(
                    callsign=callsign,
                    patch=NodePatch(
                        timestamp_ms=timestamp,
                        start_xmit=True,
                        region=region.group(1) if region else "",
                        talkgroup_id="",
                        monitoring="",
                        packet_state=PacketState.END,
                        online_state=OnlineState.ONLINE,
                    ),
                )
            )
        return events

    def replay(self, lines: Sequence[str], start: int, table: NodeTable) -> int:
        for i in range(start, len(lines)):
            events = self.parse_summary(lines[i])
            if events is None:
                continue
            for event in events:
                table.apply(event)
            logger.info("Last node connection found at line %d (%d nodes)", i + 1, len(events))
            return i + 1
        logger.warning("No '%s' line after session start", self.CONNECTED_NODES)
        return start


class ReflectorDialect(LogDialect):
    """SvxReflector federated reflector log.

    Example:
        03.11.2023 15:37:18: F5XXX-R: Login OK from 127.0.0.1:51560 with protocol version 2.0
    The stamp takes the first 19 characters and the callsign starts at
    column 21, ending two characters before the marker.
    """

    name = "reflector"
    banner = "SvxReflector v1"
    session_marker = "Client "

    CALL_OFFSET = 21
    STAMP_WIDTH = 19
    STAMP_FORMAT = "%d.%m.%Y %H:%M:%S"

    CLIENT_CONNECTED = " connected"
    LOGIN_OK_FROM = "Login OK from"
    MONITOR_TG = "Monitor TG#:"
    SELECT_TG = "Select TG #"
    TALKER_START = "Talker start on TG #"
    TALKER_STOP = "Talker stop on TG #"
    TALKER_TIMEOUT = "Talker audio timeout on TG #"
    PEER_DISCONNECT = "disconnected: Connection closed by remote peer"
    LOCAL_DISCONNECT = "disconnected: Locally ordered disconnect"

    def is_session_marker(self, line: str) -> bool:
        # "Client 1.2.3.4:5 connected" (not "disconnected")
        return self.session_marker in line and self.CLIENT_CONNECTED in line

    def parse_timestamp(self, line: str) -> int | None:
        return _epoch_ms(line[: self.STAMP_WIDTH], self.STAMP_FORMAT)

    def _callsign(self, line: str, index: int) -> str:
        # Marker must follow "<stamp>: <CALL>: "
        if index < self.CALL_OFFSET + 2:
            return ""
        return line[self.CALL_OFFSET: index - 2].strip()

    def _event(self, line: str, index: int, patch: NodePatch) -> NodeEvent | None:
        callsign = self._callsign(line, index)
        if not callsign:
            return None
        return NodeEvent(callsign=callsign, patch=patch)

    def parse_line(self, line: str) -> NodeEvent | None:
        # Counted through the following "Login OK" line
        if self.is_session_marker(line):
            return None

        index = line.find(self.LOGIN_OK_FROM)
        if index != -1:
            tokens = line[index + len(self.LOGIN_OK_FROM):].split()
            address = tokens[0] if tokens else ""
            ip, _, port = address.rpartition(":")
            if not ip:
                ip, port = address, ""
            return self._event(line, index, NodePatch(
                timestamp_ms=self.parse_timestamp(line),
                start_xmit=True,
                ip=ip,
                port=port,
                protocol_version=tokens[4] if len(tokens) > 4 else "",
                packet_state=PacketState.END,
                online_state=OnlineState.ONLINE,
            ))

        index = line.find(self.MONITOR_TG)
        if index != -1:
            return self._event(line, index, NodePatch(
                monitoring=line[index + len(self.MONITOR_TG):].strip(),
            ))

        index = line.find(self.SELECT_TG)
        if index != -1:
            return self._event(line, index, NodePatch(
                talkgroup_id=line[index + len(self.SELECT_TG):].strip(),
            ))

        index = line.find(self.TALKER_START)
        if index != -1:
            return self._event(line, index, NodePatch(
                timestamp_ms=self.parse_timestamp(line),
                start_xmit=True,
                talkgroup_id=line[index + len(self.TALKER_START):].strip(),
                packet_state=PacketState.START,
                online_state=OnlineState.ONLINE,
            ))

        index = line.find(self.TALKER_STOP)
        if index != -1:
            return self._event(line, index, NodePatch(
                timestamp_ms=self.parse_timestamp(line),
                stop_xmit=True,
                packet_state=PacketState.END,
                online_state=OnlineState.ONLINE,
            ))

        index = line.find(self.TALKER_TIMEOUT)
        if index != -1:
            return self._event(line, index, NodePatch(
                online_state=OnlineState.TIMEOUT,
            ))

        if self.session_marker not in line:
            index = line.find(self.PEER_DISCONNECT)
            if index == -1:
                index = line.find(self.LOCAL_DISCONNECT)
            if index != -1:
                return self._event(line, index, NodePatch(
                    timestamp_ms=self.parse_timestamp(line),
                    stop_xmit=True,
                    packet_state=PacketState.END,
                    online_state=OnlineState.OFFLINE,
                ))

        return None

    def replay(self, lines: Sequence[str], start: int, table: NodeTable) -> int:
        cursor = start
        for i in range(start, len(lines)):
            line = lines[i]
            if self.is_session_marker(line):
                cursor = i + 1
                continue
            event = self.parse_line(line)
            if event is not None:
                table.apply(event)
                cursor = i + 1
        return cursor


def select_dialect(log_name: str) -> LogDialect:
    """Pick the dialect from the configured log file name."""
    if "reflector" in log_name.lower():
        return ReflectorDialect()
    return StandaloneDialect()
