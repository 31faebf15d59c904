"""Incremental updater: new log lines -> table mutations -> one broadcast."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .dialects import LogDialect
from .node_table import NodeTable

if TYPE_CHECKING:
    from ..api.websocket import BroadcastDispatcher
    from ..watcher import LogLineSource

logger = logging.getLogger(__name__)


class IncrementalUpdater:
    """Parse lines appended since the last cursor and publish the table.

    Usage:
        updater = IncrementalUpdater(source, dialect, table, dispatcher, cursor)
        await updater.tick()        # one poll
        await updater.run(0.5)      # forever
    """

    def __init__(
        self,
        source: LogLineSource,
        dialect: LogDialect,
        table: NodeTable,
        dispatcher: BroadcastDispatcher,
        last_processed_line: int = 0,
        client_timeout: float = 0,
    ) -> None:
        self.source = source
        self.dialect = dialect
        self.table = table
        self.dispatcher = dispatcher
        self.last_processed_line = last_processed_line
        self.client_timeout = client_timeout
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def apply_new_lines(self) -> int | None:
        """Apply events from lines added since the cursor.

        Returns the number of mutations, or None when the file did not grow
        or could not be read (nothing to publish).
        """
        if not self.source.has_grown():
            return None

        try:
            lines = self.source.current_lines()
        except OSError as e:
            logger.warning("Cannot read %s, retrying next tick: %s", self.source.log_path, e)
            self.source.mark_stale()
            return None

        end = len(lines) if self.source.last_line_complete else len(lines) - 1
        if end < self.last_processed_line:
            logger.warning(
                "%s shrank below line %d, waiting for it to grow",
                self.source.log_path,
                self.last_processed_line,
            )
            return None

        mutations = 0
        for i in range(self.last_processed_line, end):
            event = self.dialect.parse_line(lines[i])
            if event is None:
                continue
            self.table.apply(event)
            mutations += 1

        self.last_processed_line = end
        if mutations:
            logger.debug("Applied %d events, cursor at line %d", mutations, end)
        return mutations

    async def tick(self) -> int:
        """One poll: apply new lines, then broadcast the full table once."""
        mutations = self.apply_new_lines()
        if mutations is not None:
            await self.dispatcher.publish(self.table.snapshot())
        if self.client_timeout > 0:
            await self.dispatcher.expire_idle(self.client_timeout)
        return mutations or 0

    async def run(self, period: float) -> None:
        """Poll every `period` seconds until cancelled."""
        self._running = True
        try:
            while True:
                await asyncio.sleep(period)
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Update tick failed")
        finally:
            self._running = False
