"""Line source for the relay log: whole-file reads and mtime change checks."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .errors import LogSourceError

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class LogLineSource:
    """Expose the relay log as a list of lines and detect growth.

    There is no byte-range reading: every read returns the whole file split
    on line breaks. Growth is detected by a strictly newer modification time.
    """

    def __init__(self, log_path: str | Path) -> None:
        self.log_path = Path(log_path)
        self._last_mtime_ns: int = 0
        self._lines: list[str] = []
        self.last_line_complete: bool = True

        try:
            self._last_mtime_ns = self.log_path.stat().st_mtime_ns
            self._lines = self._read()
        except OSError as e:
            raise LogSourceError(str(self.log_path), e.strerror or str(e)) from e

    @property
    def lines(self) -> list[str]:
        """Lines from the most recent read."""
        return self._lines

    @property
    def complete_lines(self) -> list[str]:
        """Lines from the most recent read, minus an unterminated last line."""
        if self.last_line_complete:
            return self._lines
        return self._lines[:-1]

    def _read(self) -> list[str]:
        content = self.log_path.read_text(encoding="utf-8", errors="replace")
        self.last_line_complete = content == "" or content.endswith("\n")
        lines = _LINE_BREAK.split(content)
        if self.last_line_complete:
            # split leaves an empty string after the final newline
            lines.pop()
        return lines

    def current_lines(self) -> list[str]:
        """Re-read the file.

        Raises:
            OSError: The file is transiently unreadable.
        """
        self._lines = self._read()
        return self._lines

    def has_grown(self) -> bool:
        """True once per modification-time advance."""
        try:
            mtime_ns = self.log_path.stat().st_mtime_ns
        except OSError as e:
            logger.debug("Cannot stat %s: %s", self.log_path, e)
            return False

        if mtime_ns > self._last_mtime_ns:
            self._last_mtime_ns = mtime_ns
            return True
        return False

    def mark_stale(self) -> None:
        """Forget the observed mtime so the next check reports growth."""
        self._last_mtime_ns = 0
