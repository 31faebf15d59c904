"""Access policy for WebSocket observers.

Page observers (clients that loaded the dashboard page) see everything.
Direct service connections are matched by address against the allow-list;
an entry may restrict which talkgroups the connection gets to see.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from ...config_schema import AllowedClient
from ..models.nodes import NodeRecord, PacketState

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def normalize_address(host: str | None) -> str:
    """Remote address as written in the allow-list (IPv4 when mapped)."""
    if not host:
        return ""
    if host == "::1":
        return "127.0.0.1"
    if host.lower().startswith("::ffff:"):
        return host[7:]
    return host


def talkgroup_matches(pattern: str, talkgroup: str | None) -> bool:
    """Match one talkgroup against an exact, '209*' prefix or '100..200' range pattern."""
    if not talkgroup:
        return False
    pattern = pattern.strip()
    if pattern == talkgroup:
        return True

    star = pattern.find("*")
    if star != -1:
        return talkgroup.startswith(pattern[:star])

    low, sep, high = pattern.partition("..")
    if sep:
        try:
            return int(low) <= int(talkgroup) <= int(high)
        except ValueError:
            return False

    return False


def active_talkgroup(records: Sequence[NodeRecord]) -> str | None:
    """Talkgroup the snapshot is about.

    The node currently transmitting wins; otherwise the node whose last
    transmission or connection started most recently, among those with a
    talkgroup.
    """
    talking = [r for r in records if r.packet_state is PacketState.START and r.talkgroup_id]
    candidates = talking or [r for r in records if r.talkgroup_id]
    if not candidates:
        return None
    return max(candidates, key=lambda r: r.start_xmit_ms).talkgroup_id


@dataclass
class Admission:
    """Outcome of a connection check."""

    from_page: bool
    grant: AllowedClient | None = None


class PageSessions:
    """Addresses that loaded the dashboard page."""

    def __init__(self) -> None:
        self._addresses: set[str] = set()

    def register(self, address: str) -> None:
        if address not in self._addresses:
            logger.debug("Page session for %s", address)
        self._addresses.add(address)

    def discard(self, address: str) -> None:
        self._addresses.discard(address)

    def __contains__(self, address: object) -> bool:
        return address in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)


class AccessPolicy:
    """Allow-list evaluation for direct connections.

    Numeric leases count whole days from `loaded_at` (policy creation).
    """

    def __init__(
        self,
        allowed_clients: Iterable[AllowedClient],
        loaded_at: float | None = None,
    ) -> None:
        self.allowed_clients = list(allowed_clients)
        self.loaded_at = time.time() if loaded_at is None else loaded_at

    def lease_valid(self, entry: AllowedClient, now: float | None = None) -> bool:
        if entry.lease == "*":
            return True
        now = time.time() if now is None else now
        return now < self.loaded_at + int(entry.lease) * SECONDS_PER_DAY

    def find_grant(
        self, address: str, page: str, now: float | None = None
    ) -> AllowedClient | None:
        """First entry granting `address` access for `page`."""
        for entry in self.allowed_clients:
            if entry.ipaddress != address:
                continue
            if (entry.id == "*" or entry.id == page) and self.lease_valid(entry, now):
                return entry
        return None

    def admit(
        self, address: str, page: str, has_session: bool, now: float | None = None
    ) -> Admission | None:
        """Decide whether a new connection is accepted and how it is treated.

        Returns None when the connection must be refused.
        """
        if has_session:
            return Admission(from_page=True)

        if not self.allowed_clients:
            return Admission(from_page=False)

        entry = self.find_grant(address, page, now)
        if entry is None:
            return None
        return Admission(from_page=entry.id != page, grant=entry)

    def allows_snapshot(
        self,
        address: str,
        page: str,
        records: Sequence[NodeRecord],
        now: float | None = None,
    ) -> bool:
        """Gate one snapshot for a direct observer (all or nothing)."""
        if not self.allowed_clients:
            return True

        entry = self.find_grant(address, page, now)
        if entry is None:
            return False
        if not entry.tglist:
            return True

        talkgroup = active_talkgroup(records)
        return any(talkgroup_matches(p, talkgroup) for p in entry.tglist)
