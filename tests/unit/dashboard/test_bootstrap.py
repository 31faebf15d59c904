"""Tests for the cold-start bootstrap."""

import pytest

from svxmon.dashboard.core.bootstrap import bootstrap, find_session_start
from svxmon.dashboard.core.dialects import ReflectorDialect, StandaloneDialect
from svxmon.dashboard.core.node_table import NodeTable
from svxmon.dashboard.errors import BootstrapError
from svxmon.dashboard.models.nodes import OnlineState, PacketState

from tests.testing_utils import (
    REFLECTOR_BANNER,
    STANDALONE_BANNER,
    reflector_line,
    standalone_line,
)


def _login(stamp: str, callsign: str, port: int = 51560) -> str:
    return reflector_line(stamp, callsign, f"Login OK from 127.0.0.1:{port} with protocol version 2.0")


class TestFindSessionStart:
    """Backward scan for the last banner."""

    def test_last_banner_wins(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("01.11.2023 08:00:05", "F1OLD-R"),
            REFLECTOR_BANNER,
            "03.11.2023 14:15:00: Client 127.0.0.1:39728 connected",
            _login("03.11.2023 14:15:01", "F1ABC-R"),
        ]

        start, session = find_session_start(lines, ReflectorDialect())

        assert start == 3
        assert session == 4

    def test_no_banner(self) -> None:
        assert find_session_start(["a", "b"], ReflectorDialect()) == (None, None)


class TestReflectorBootstrap:
    """Reflector replay of every event after the banner."""

    def test_scenario_login_talk(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("03.11.2023 14:15:00", "F1ABC-R"),
            reflector_line("03.11.2023 14:15:06", "F1ABC-R", "Talker start on TG #33"),
            reflector_line("03.11.2023 14:15:08", "F1ABC-R", "Talker stop on TG #33"),
        ]
        table = NodeTable()

        result = bootstrap(lines, ReflectorDialect(), table)

        record = table.get("F1ABC-R")
        assert record is not None
        assert record.online_state is OnlineState.ONLINE
        assert record.talkgroup_id == "33"
        assert record.packet_state is PacketState.END
        assert record.delay_seconds == 2.0
        assert result.start_line == 1
        assert result.last_processed_line == 4

    def test_only_last_session_is_replayed(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("01.11.2023 08:00:05", "F1OLD-R"),
            REFLECTOR_BANNER,
            _login("03.11.2023 14:15:00", "F1ABC-R"),
        ]
        table = NodeTable()

        bootstrap(lines, ReflectorDialect(), table)

        assert [r.callsign for r in table.snapshot()] == ["F1ABC-R"]

    def test_state_follows_last_event(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("03.11.2023 14:15:00", "F1ABC-R"),
            _login("03.11.2023 14:15:01", "F5XYZ-R", port=51561),
            _login("03.11.2023 14:15:02", "ON4AB-R", port=51562),
            reflector_line("03.11.2023 14:16:00", "F5XYZ-R", "Talker audio timeout on TG #33"),
            reflector_line("03.11.2023 14:17:00", "ON4AB-R", "disconnected: Connection closed by remote peer"),
            reflector_line("03.11.2023 14:18:00", "F1ABC-R", "disconnected: Locally ordered disconnect"),
            _login("03.11.2023 14:19:00", "F1ABC-R"),
        ]
        table = NodeTable()

        bootstrap(lines, ReflectorDialect(), table)

        states = {r.callsign: r.online_state for r in table.snapshot()}
        assert len(table) <= 7
        assert states == {
            "F1ABC-R": OnlineState.ONLINE,
            "F5XYZ-R": OnlineState.TIMEOUT,
            "ON4AB-R": OnlineState.OFFLINE,
        }

    def test_disconnect_records_connection_length(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("03.11.2023 14:15:00", "F1ABC-R"),
            reflector_line("03.11.2023 14:25:00", "F1ABC-R", "disconnected: Connection closed by remote peer"),
        ]
        table = NodeTable()

        bootstrap(lines, ReflectorDialect(), table)

        record = table.get("F1ABC-R")
        assert record is not None
        assert record.delay_seconds == 600.0

    def test_login_fields(self) -> None:
        table = NodeTable()
        bootstrap([REFLECTOR_BANNER, _login("03.11.2023 15:37:18", "F5XXX-R")], ReflectorDialect(), table)

        record = table.get("F5XXX-R")
        assert record is not None
        assert (record.ip, record.port, record.protocol_version) == ("127.0.0.1", "51560", "2.0")

    def test_no_banner_is_empty(self) -> None:
        table = NodeTable()

        result = bootstrap([_login("03.11.2023 14:15:00", "F1ABC-R")], ReflectorDialect(), table)

        assert len(table) == 0
        assert result.last_processed_line == 0

    def test_cursor_stops_at_last_recognized_line(self) -> None:
        lines = [
            REFLECTOR_BANNER,
            _login("03.11.2023 14:15:00", "F1ABC-R"),
            "03.11.2023 14:15:01: unrelated noise",
        ]

        result = bootstrap(lines, ReflectorDialect(), NodeTable())

        assert result.last_processed_line == 2


class TestStandaloneBootstrap:
    """Standalone seeding from the connected nodes summary."""

    STAMP = "Tue Nov  7 10:23:45 2023"

    def test_summary_seeds_table(self, aliases) -> None:
        lines = [
            STANDALONE_BANNER,
            standalone_line(self.STAMP, "ReflectorLogic: Connection established to 1.2.3.4:5300"),
            standalone_line(self.STAMP, "ReflectorLogic: Connected nodes: (EU)F1ABC, (EU)F5XYZ"),
            standalone_line(self.STAMP, "ReflectorLogic: Connected nodes: (EU)IGNORED"),
        ]
        table = NodeTable(aliases)

        result = bootstrap(lines, StandaloneDialect(), table)

        records = table.snapshot()
        assert [r.callsign for r in records] == ["F1ABC", "F5XYZ"]
        assert all(r.region == "EU" for r in records)
        assert all(r.online_state is OnlineState.ONLINE for r in records)
        assert '"radio_id": 2080002' in records[1].radio_identity
        assert result.start_line == 1
        assert result.session_line == 2
        assert result.last_processed_line == 3

    def test_no_summary_resumes_after_banner(self) -> None:
        result = bootstrap([STANDALONE_BANNER], StandaloneDialect(), NodeTable())

        assert result.last_processed_line == 1

    def test_no_banner_is_fatal(self) -> None:
        with pytest.raises(BootstrapError):
            bootstrap(["nothing here"], StandaloneDialect(), NodeTable(), source_name="svxlink.log")
