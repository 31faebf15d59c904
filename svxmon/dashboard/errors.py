"""Exceptions raised by the monitor.

Fatal errors (the monitor cannot start) derive from MonitorError and are
handled by the entry point, which logs them and exits. Per-tick problems
are never raised out of the updater.
"""


class MonitorError(Exception):
    """Base class for monitor failures."""


class LogSourceError(MonitorError):
    """The relay log cannot be read at startup."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read or parse {path}: {reason}")


class BootstrapError(MonitorError):
    """No session banner was found where one is required."""

    def __init__(self, path: str, banner: str) -> None:
        self.path = path
        self.banner = banner
        super().__init__(f"No '{banner}' session start found in {path}")
