"""Node state table: callsign -> NodeRecord.

Responsible for:
- Lookup-or-create of records by callsign
- Merging parsed patches into records
- Handing out detached snapshots for broadcast
"""

from __future__ import annotations

import logging

from ..models.nodes import NodeEvent, NodePatch, NodeRecord
from .aliases import SubscriberAliases

logger = logging.getLogger(__name__)


class NodeTable:
    """Insertion ordered table of node records.

    Records are never removed; a node that left shows OFFLINE. Lookup is a
    linear scan, node counts are in the tens.

    Usage:
        table = NodeTable(aliases)
        index = table.upsert("F1ABC-R")
        table.apply_patch(index, NodePatch(talkgroup_id="33"))
        records = table.snapshot()
    """

    def __init__(self, aliases: SubscriberAliases | None = None) -> None:
        self._records: list[NodeRecord] = []
        self._aliases = aliases or SubscriberAliases()

    def __len__(self) -> int:
        return len(self._records)

    def index_of(self, callsign: str) -> int | None:
        """Position of a callsign, or None when unknown."""
        for i, record in enumerate(self._records):
            if record.callsign == callsign:
                return i
        return None

    def get(self, callsign: str) -> NodeRecord | None:
        """Live record for a callsign (not a copy)."""
        index = self.index_of(callsign)
        return self._records[index] if index is not None else None

    def upsert(self, callsign: str) -> int:
        """Return the index for a callsign, creating the record on first use."""
        index = self.index_of(callsign)
        if index is not None:
            return index

        talker, identity = self._aliases.resolve(callsign)
        self._records.append(
            NodeRecord(callsign=callsign, talker=talker, radio_identity=identity)
        )
        logger.debug("New node %s", callsign)
        return len(self._records) - 1

    def apply_patch(self, index: int, patch: NodePatch) -> None:
        """Merge a patch into the record at index."""
        patch.apply_to(self._records[index])

    def apply(self, event: NodeEvent) -> int:
        """Lookup-or-create the event's node and merge its patch."""
        index = self.upsert(event.callsign)
        self.apply_patch(index, event.patch)
        return index

    def snapshot(self) -> list[NodeRecord]:
        """Copies of every record in insertion order."""
        return [r.copy() for r in self._records]
