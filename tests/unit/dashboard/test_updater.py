"""Tests for the incremental updater."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from svxmon.config_schema import AllowedClient
from svxmon.dashboard.api.access import AccessPolicy
from svxmon.dashboard.api.websocket import BroadcastDispatcher, Observer
from svxmon.dashboard.context import build_context
from svxmon.dashboard.core.bootstrap import bootstrap
from svxmon.dashboard.core.dialects import ReflectorDialect, StandaloneDialect
from svxmon.dashboard.core.node_table import NodeTable
from svxmon.dashboard.core.updater import IncrementalUpdater
from svxmon.dashboard.models.nodes import OnlineState, PacketState
from svxmon.dashboard.watcher import LogLineSource

from tests.testing_utils import (
    REFLECTOR_BANNER,
    STANDALONE_BANNER,
    FakeWebSocket,
    append_log,
    reflector_line,
    standalone_line,
    write_log,
)


def _updater(path: Path, dialect=None) -> tuple[IncrementalUpdater, FakeWebSocket]:
    dialect = dialect or ReflectorDialect()
    source = LogLineSource(path)
    table = NodeTable()
    result = bootstrap(source.complete_lines, dialect, table)
    dispatcher = BroadcastDispatcher(AccessPolicy([AllowedClient(ipaddress="127.0.0.1")]))
    ws = FakeWebSocket()
    dispatcher.register(Observer(websocket=ws, address="10.0.0.2", from_page=True))  # type: ignore[arg-type]
    updater = IncrementalUpdater(source, dialect, table, dispatcher, result.last_processed_line)
    return updater, ws


class TestReflectorUpdates:
    """New reflector lines become mutations and one broadcast per tick."""

    @pytest.mark.asyncio
    async def test_no_growth_no_broadcast(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "svxreflector.log", [REFLECTOR_BANNER])
        updater, ws = _updater(path)

        first = await updater.tick()
        second = await updater.tick()

        assert first == 0
        assert second == 0
        assert ws.sent == []
        assert updater.dispatcher.publish_count == 0

    @pytest.mark.asyncio
    async def test_new_lines_are_applied_once(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "svxreflector.log", [REFLECTOR_BANNER])
        updater, ws = _updater(path)

        append_log(path, [
            reflector_line("03.11.2023 14:15:00", "F1ABC-R", "Login OK from 10.1.1.1:4000 with protocol version 2.0"),
            reflector_line("03.11.2023 14:15:06", "F1ABC-R", "Talker start on TG #33"),
        ])
        mutations = await updater.tick()

        assert mutations == 2
        assert updater.last_processed_line == 3
        assert len(ws.messages()) == 1
        traffic = ws.messages()[0]["TRAFFIC"]
        assert traffic[0]["CALLSIGN"] == "F1ABC-R"
        assert traffic[0]["PACKET"] == "START"
        assert ws.messages()[0]["BIGEARS"] == "1"

        # Nothing new: no re-application, no broadcast
        assert await updater.tick() == 0
        assert len(ws.sent) == 1

        append_log(path, [reflector_line("03.11.2023 14:15:09", "F1ABC-R", "Talker stop on TG #33")])
        assert await updater.tick() == 1

        record = updater.table.get("F1ABC-R")
        assert record is not None
        assert record.packet_state is PacketState.END
        assert record.delay_seconds == 3.0
        assert record.online_state is OnlineState.ONLINE
        assert len(ws.sent) == 2

    @pytest.mark.asyncio
    async def test_growth_without_events_still_broadcasts(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "svxreflector.log", [REFLECTOR_BANNER])
        updater, ws = _updater(path)

        append_log(path, ["03.11.2023 14:15:00: nothing of interest"])

        assert await updater.tick() == 0
        assert len(ws.sent) == 1

    @pytest.mark.asyncio
    async def test_partial_last_line_waits(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "svxreflector.log", [REFLECTOR_BANNER])
        updater, _ = _updater(path)

        with open(path, "a", encoding="utf-8") as f:
            f.write("03.11.2023 14:15:06: F1ABC-R: Talker sta")
        os.utime(path, ns=(path.stat().st_mtime_ns + 10**9,) * 2)
        assert await updater.tick() == 0
        assert updater.last_processed_line == 1

        with open(path, "a", encoding="utf-8") as f:
            f.write("rt on TG #33\n")
        os.utime(path, ns=(path.stat().st_mtime_ns + 10**9,) * 2)
        assert await updater.tick() == 1

        record = updater.table.get("F1ABC-R")
        assert record is not None
        assert record.talkgroup_id == "33"

    @pytest.mark.asyncio
    async def test_unreadable_file_is_retried(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_log(tmp_path / "svxreflector.log", [REFLECTOR_BANNER])
        updater, ws = _updater(path)
        append_log(path, [reflector_line("03.11.2023 14:15:06", "F1ABC-R", "Talker start on TG #33")])

        def boom() -> list[str]:
            raise OSError("busy")

        monkeypatch.setattr(updater.source, "current_lines", boom)
        assert await updater.tick() == 0
        assert ws.sent == []

        monkeypatch.undo()
        assert await updater.tick() == 1
        assert len(ws.sent) == 1


class TestStandaloneUpdates:
    """Standalone incremental path: talker start/stop only."""

    STAMP = "Tue Nov  7 10:23:45 2023"

    @pytest.mark.asyncio
    async def test_talker_start_stop(self, tmp_path: Path) -> None:
        path = write_log(tmp_path / "svxlink.log", [
            STANDALONE_BANNER,
            standalone_line(self.STAMP, "ReflectorLogic: Connected nodes: (EU)F1ABC, (EU)F5XYZ"),
        ])
        updater, ws = _updater(path, StandaloneDialect())

        append_log(path, [
            standalone_line("Tue Nov  7 10:30:00 2023", "ReflectorLogic: Talker start on TG #208: F5XYZ"),
            standalone_line("Tue Nov  7 10:30:12 2023", "ReflectorLogic: Talker stop on TG #208: F5XYZ"),
            standalone_line("Tue Nov  7 10:31:00 2023", "ReflectorLogic: Connected nodes: (EU)NEW1"),
        ])
        assert await updater.tick() == 2

        record = updater.table.get("F5XYZ")
        assert record is not None
        assert record.talkgroup_id == "208"
        assert record.delay_seconds == 12.0
        assert updater.table.get("NEW1") is None
        assert len(ws.sent) == 1


class TestStartupOnPartialLine:
    """A line still being written at startup is applied once it is finished."""

    @pytest.mark.asyncio
    async def test_unterminated_line_is_left_for_the_updater(self, make_config) -> None:
        config = make_config()
        path = write_log(config.monitor.log_file, [
            REFLECTOR_BANNER,
            reflector_line("03.11.2023 14:15:00", "F1ABC-R", "Login OK from 10.1.1.1:4000 with protocol version 2.0"),
        ])
        with open(path, "a", encoding="utf-8") as f:
            f.write(reflector_line("03.11.2023 14:15:06", "F1ABC-R", "Talker start on TG #3"))

        ctx = build_context(config)

        assert ctx.bootstrap_result.last_processed_line == 2
        record = ctx.table.get("F1ABC-R")
        assert record is not None
        assert record.packet_state is PacketState.END

        append_log(path, ["3"])
        assert await ctx.updater.tick() == 1

        record = ctx.table.get("F1ABC-R")
        assert record is not None
        assert record.talkgroup_id == "33"
        assert record.packet_state is PacketState.START
