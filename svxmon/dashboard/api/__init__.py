"""Dashboard API layer.

access.py: Allow-list, page sessions and talkgroup patterns
websocket.py: Observers and snapshot broadcast
"""

from .access import AccessPolicy, PageSessions, talkgroup_matches
from .websocket import BroadcastDispatcher, Observer, observer_endpoint

__all__ = [
    "AccessPolicy",
    "PageSessions",
    "talkgroup_matches",
    "BroadcastDispatcher",
    "Observer",
    "observer_endpoint",
]
