"""Process-wide monitor state, built once by the composition root."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config_schema import AppConfig
from .api.access import AccessPolicy, PageSessions
from .api.websocket import BroadcastDispatcher
from .core.aliases import SubscriberAliases
from .core.bootstrap import BootstrapResult, bootstrap
from .core.dialects import LogDialect, select_dialect
from .core.node_table import NodeTable
from .core.updater import IncrementalUpdater
from .watcher import LogLineSource

logger = logging.getLogger(__name__)


@dataclass
class MonitorContext:
    """Everything the server, updater and endpoints share."""

    config: AppConfig
    dialect: LogDialect
    source: LogLineSource
    aliases: SubscriberAliases
    table: NodeTable
    policy: AccessPolicy
    sessions: PageSessions
    dispatcher: BroadcastDispatcher
    updater: IncrementalUpdater
    bootstrap_result: BootstrapResult


def build_context(
    config: AppConfig,
    aliases: SubscriberAliases | None = None,
) -> MonitorContext:
    """Open the log, bootstrap the table and wire the components.

    Raises:
        LogSourceError: The log cannot be read.
        BootstrapError: No session banner in a standalone relay log.
    """
    log_file = config.monitor.log_file
    dialect = select_dialect(config.monitor.log_name)
    logger.info("Monitoring %s with the %s dialect", log_file, dialect.name)

    source = LogLineSource(log_file)
    if aliases is None:
        aliases = SubscriberAliases.from_file(config.aliases.subscriber_path)

    table = NodeTable(aliases)
    result = bootstrap(source.complete_lines, dialect, table, source_name=str(log_file))

    policy = AccessPolicy(config.access.allowed_clients)
    sessions = PageSessions()
    dispatcher = BroadcastDispatcher(policy, sessions, send_timeout=config.server.send_timeout)
    updater = IncrementalUpdater(
        source,
        dialect,
        table,
        dispatcher,
        last_processed_line=result.last_processed_line,
        client_timeout=config.monitor.client_timeout,
    )

    return MonitorContext(
        config=config,
        dialect=dialect,
        source=source,
        aliases=aliases,
        table=table,
        policy=policy,
        sessions=sessions,
        dispatcher=dispatcher,
        updater=updater,
        bootstrap_result=result,
    )
