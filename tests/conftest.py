"""Pytest fixtures for svxmon tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from svxmon.config_schema import AppConfig, validate_config_dict
from svxmon.dashboard.core.aliases import SubscriberAliases


@pytest.fixture
def aliases() -> SubscriberAliases:
    """Small subscriber dictionary."""
    return SubscriberAliases(
        [
            {"radio_id": 2080001, "callsign": "F1ABC", "fname": "Jean", "country": "France"},
            {"radio_id": 2080002, "callsign": "F5XYZ", "fname": "Paul", "country": "France"},
        ]
    )


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AppConfig]:
    """Build an AppConfig pointing at a log in tmp_path.

    Extra keyword arguments are merged in as top-level sections.
    """

    def _make(log_name: str = "svxreflector.log", **sections: Any) -> AppConfig:
        raw: dict[str, Any] = {
            "monitor": {"log_path": str(tmp_path), "log_name": log_name},
            "server": {"static_dir": str(tmp_path / "pages")},
            "aliases": {"path": str(tmp_path / "assets")},
        }
        for name, values in sections.items():
            raw.setdefault(name, {}).update(values)
        return validate_config_dict(raw)

    return _make
