"""Dashboard core logic.

Structured into:
- dialects.py: Relay log lines → node events
- bootstrap.py: Last session → initial node table
- updater.py: New lines → table mutations → broadcast
- node_table.py: callsign → NodeRecord
- aliases.py: Subscriber (radio-ID) dictionary
"""

from .aliases import SubscriberAliases
from .bootstrap import BootstrapResult, bootstrap
from .dialects import LogDialect, ReflectorDialect, StandaloneDialect, select_dialect
from .node_table import NodeTable
from .updater import IncrementalUpdater

__all__ = [
    "SubscriberAliases",
    "BootstrapResult",
    "bootstrap",
    "LogDialect",
    "ReflectorDialect",
    "StandaloneDialect",
    "select_dialect",
    "NodeTable",
    "IncrementalUpdater",
]
