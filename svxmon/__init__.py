"""SVX Monitor source package.

This package contains the monitor components:
- config: Configuration loading and management
- dashboard: Log-derived node table, dialect parsers and WebSocket broadcast
"""

from __future__ import annotations

__version__ = "1.0.0"

__all__: list[str] = ["__version__"]
