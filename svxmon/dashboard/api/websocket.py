"""WebSocket observers and snapshot broadcast."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from fastapi import WebSocket, WebSocketDisconnect

from ..models.messages import config_message, traffic_message
from ..models.nodes import NodeRecord
from .access import AccessPolicy, PageSessions, normalize_address

if TYPE_CHECKING:
    from ..context import MonitorContext

logger = logging.getLogger(__name__)

DEFAULT_PAGE = "generic"


@dataclass(eq=False)
class Observer:
    """One connected WebSocket client."""

    websocket: WebSocket
    address: str
    page: str = DEFAULT_PAGE
    from_page: bool = True
    connected_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_seen = time.time()


class BroadcastDispatcher:
    """Registered observers and the per-observer snapshot filter.

    Sends to all qualifying observers run concurrently, each bounded by
    `send_timeout`, so a slow observer costs the tick at most one timeout;
    a failure drops only that observer.
    """

    def __init__(
        self,
        policy: AccessPolicy,
        sessions: PageSessions | None = None,
        send_timeout: float = 5.0,
    ) -> None:
        self.policy = policy
        self.sessions = sessions or PageSessions()
        self.send_timeout = send_timeout
        self._observers: list[Observer] = []
        self.publish_count: int = 0

    @property
    def observer_count(self) -> int:
        """Number of registered observers."""
        return len(self._observers)

    @property
    def observers(self) -> list[Observer]:
        return list(self._observers)

    def register(self, observer: Observer) -> None:
        self._observers.append(observer)
        logger.info(
            "WebSocket connection from page %s (%s). Total connections: %d",
            observer.page,
            observer.address,
            len(self._observers),
        )

    def unregister(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            logger.info(
                "WebSocket disconnected (%s). Total connections: %d",
                observer.address,
                len(self._observers),
            )

    async def _send(self, observer: Observer, data: str) -> bool:
        try:
            await asyncio.wait_for(observer.websocket.send_text(data), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.warning("Failed to send to WebSocket %s: %s", observer.address, e)
            return False

    async def publish(self, snapshot: Sequence[NodeRecord]) -> int:
        """Deliver one snapshot to every qualifying observer.

        Returns the number of observers the snapshot was sent to.
        """
        self.publish_count += 1
        if not self._observers:
            return 0

        message = traffic_message(snapshot, len(self._observers))
        page_data = json.dumps(message)
        direct: dict[str, Any] = {k: v for k, v in message.items() if k != "BIGEARS"}
        direct_data = json.dumps(direct)

        targets: list[tuple[Observer, str]] = []
        now = time.time()
        for observer in list(self._observers):
            if observer.from_page:
                targets.append((observer, page_data))
            elif self.policy.allows_snapshot(observer.address, observer.page, snapshot, now):
                targets.append((observer, direct_data))

        results = await asyncio.gather(*(self._send(o, data) for o, data in targets))

        for (observer, _), ok in zip(targets, results):
            if not ok:
                self.unregister(observer)

        return sum(results)

    async def expire_idle(self, timeout: float, now: float | None = None) -> int:
        """Close observers silent for longer than `timeout` seconds."""
        now = time.time() if now is None else now
        stale = [o for o in self._observers if now - o.last_seen > timeout]
        for observer in stale:
            self.unregister(observer)
            try:
                await observer.websocket.close()
            except Exception as e:
                logger.debug("Closing idle WebSocket %s: %s", observer.address, e)
        if stale:
            logger.info("Closed %d idle WebSocket connections", len(stale))
        return len(stale)


async def observer_endpoint(websocket: WebSocket, ctx: MonitorContext) -> None:
    """WebSocket endpoint handler.

    Admits or refuses the connection, sends the initial table, then keeps
    the connection alive until the client leaves.
    """
    address = normalize_address(websocket.client.host if websocket.client else None)
    page = websocket.query_params.get("page") or DEFAULT_PAGE

    admission = ctx.policy.admit(address, page, address in ctx.sessions)
    if admission is None:
        logger.warning("Unauthenticated WebSocket from '%s' connection rejected", address)
        await websocket.close(code=1008)
        return

    await websocket.accept()
    observer = Observer(
        websocket=websocket,
        address=address,
        page=page,
        from_page=admission.from_page,
    )
    ctx.dispatcher.register(observer)

    receive_timeout = ctx.config.server.receive_timeout
    try:
        await websocket.send_text(json.dumps(config_message(ctx.table.snapshot())))

        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=receive_timeout)
                observer.touch()

                if data == "ping":
                    await websocket.send_text("pong")
                else:
                    logger.debug("Received WebSocket message: %s", data[:100])

            except asyncio.TimeoutError:
                # Send keepalive ping
                await websocket.send_text("ping")

    except WebSocketDisconnect:
        logger.debug("Client %s disconnected normally", address)
    except Exception as e:
        logger.warning("WebSocket error: %s", e)
    finally:
        ctx.dispatcher.unregister(observer)
        if observer.from_page:
            ctx.sessions.discard(address)
