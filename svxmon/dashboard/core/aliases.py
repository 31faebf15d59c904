"""Subscriber alias dictionary: callsign / radio-ID to identity.

The dictionary is a batch-refreshed JSON file in the radioid.net
`users.json` shape ({"users": [{"radio_id": ..., "callsign": ...}, ...]}).
A bare list of user objects is accepted as well.
"""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any

import httpx

from ...config_schema import AliasConfig

logger = logging.getLogger(__name__)

_TALKER_PREFIX = re.compile(r"^\w+\b")


def has_numeric_suffix(callsign: str) -> bool:
    """True when the 2nd or 3rd character is a digit (amateur callsign shape)."""
    return callsign[1:2].isdigit() or callsign[2:3].isdigit()


class SubscriberAliases:
    """In-memory alias dictionary keyed by callsign and radio id."""

    def __init__(self, users: list[dict[str, Any]] | None = None) -> None:
        self._by_callsign: dict[str, dict[str, Any]] = {}
        self._by_id: dict[str, dict[str, Any]] = {}
        for user in users or []:
            callsign = str(user.get("callsign", "")).strip().upper()
            if callsign and callsign not in self._by_callsign:
                self._by_callsign[callsign] = user
            radio_id = str(user.get("radio_id", user.get("id", ""))).strip()
            if radio_id:
                self._by_id[radio_id] = user

    def __len__(self) -> int:
        return len(self._by_callsign) + len(self._by_id)

    @classmethod
    def from_file(cls, path: str | Path) -> SubscriberAliases:
        """Load the dictionary; a missing or malformed file gives an empty one."""
        path = Path(path)
        if not path.exists():
            logger.warning("Subscriber file %s not found, aliases disabled", path)
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cannot load subscriber file %s: %s", path, e)
            return cls()

        users = data.get("users", []) if isinstance(data, dict) else data
        if not isinstance(users, list):
            logger.warning("Subscriber file %s has no user list", path)
            return cls()

        aliases = cls([u for u in users if isinstance(u, dict)])
        logger.info("ID ALIAS MAPPER: subscriber_ids dictionary is available (%d users)", len(users))
        return aliases

    def lookup(self, token: str) -> dict[str, Any] | None:
        """Find a subscriber by radio id (all digits) or by callsign."""
        token = token.strip()
        if token.isdigit():
            return self._by_id.get(token)
        return self._by_callsign.get(token.upper())

    def resolve(self, callsign: str) -> tuple[str, str]:
        """Return (talker, serialized identity) for a node callsign."""
        if not has_numeric_suffix(callsign):
            return callsign, "{}"

        match = _TALKER_PREFIX.match(callsign)
        if match is None:
            return callsign, "{}"

        talker = match.group(0)
        user = self.lookup(talker)
        return talker, json.dumps(user) if user is not None else "{}"


def download_subscriber_file(config: AliasConfig, client: httpx.Client | None = None) -> bool:
    """Refresh the subscriber file when it is older than `reload_days`.

    The body is written to a temporary file which replaces the current one
    only when non-empty. Returns True when a new file was installed.

    Raises:
        httpx.HTTPError: On transport or HTTP status failure.
    """
    target = config.subscriber_path
    stale_seconds = config.reload_days * 24 * 3600

    if target.exists() and (time.time() - target.stat().st_mtime) < stale_seconds:
        logger.info("ID ALIAS MAPPER: %s is current, not downloaded", target.name)
        return False

    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    if tmp.exists():
        tmp.unlink()

    own_client = client is None
    http = client or httpx.Client(timeout=config.download_timeout, follow_redirects=True)
    try:
        with http.stream("GET", config.subscriber_url) as response:
            response.raise_for_status()
            with open(tmp, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
    except httpx.HTTPError:
        if tmp.exists():
            tmp.unlink()
        raise
    finally:
        if own_client:
            http.close()

    if tmp.stat().st_size == 0:
        tmp.unlink()
        logger.warning("ID ALIAS MAPPER: %s downloaded with size 0", target)
        return False

    tmp.replace(target)
    logger.info("ID ALIAS MAPPER: %s downloaded", target)
    return True
