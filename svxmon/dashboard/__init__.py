"""Dashboard module: live node table reconstructed from the relay log."""

from .server import create_app, run_dashboard
from .context import MonitorContext, build_context
from .core.node_table import NodeTable
from .watcher import LogLineSource

__all__ = ["create_app", "run_dashboard", "MonitorContext", "build_context", "NodeTable", "LogLineSource"]
