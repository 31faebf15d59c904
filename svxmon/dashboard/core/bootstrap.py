"""Cold-start bootstrap: rebuild the node table from the last session.

The log is scanned backward for the dialect's session banner; the lines
after it are then replayed forward with the dialect's bootstrap rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..errors import BootstrapError
from .dialects import LogDialect, ReflectorDialect
from .node_table import NodeTable

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Where the last session starts and where incremental parsing resumes."""

    start_line: int
    session_line: int | None
    last_processed_line: int


def find_session_start(lines: Sequence[str], dialect: LogDialect) -> tuple[int | None, int | None]:
    """Backward scan for the banner.

    Returns (banner index + 1, session marker index + 1). The session marker
    position is the latest one after the banner, if any; both are None when
    not found.
    """
    session_line: int | None = None
    for i in range(len(lines) - 1, -1, -1):
        line = lines[i]
        if not line:
            continue
        if dialect.is_banner(line):
            return i + 1, session_line
        if session_line is None and dialect.is_session_marker(line):
            session_line = i + 1
    return None, session_line


def bootstrap(
    lines: Sequence[str],
    dialect: LogDialect,
    table: NodeTable,
    source_name: str = "log",
) -> BootstrapResult:
    """Populate `table` from the most recent session in `lines`.

    Raises:
        BootstrapError: No banner found and the dialect needs one.
    """
    start_line, session_line = find_session_start(lines, dialect)

    if start_line is None:
        if isinstance(dialect, ReflectorDialect):
            logger.warning(
                "No '%s' found in %s, starting with an empty table", dialect.banner, source_name
            )
            return BootstrapResult(start_line=0, session_line=session_line, last_processed_line=0)
        raise BootstrapError(source_name, dialect.banner)

    logger.info("%s start found at line %d of %s", dialect.banner.strip(), start_line, source_name)
    if session_line is not None:
        logger.info("Client connection found at line %d of %s", session_line, source_name)

    cursor = dialect.replay(lines, start_line, table)
    logger.info("Bootstrap replayed %d nodes up to line %d", len(table), cursor)

    return BootstrapResult(
        start_line=start_line,
        session_line=session_line,
        last_processed_line=cursor,
    )
