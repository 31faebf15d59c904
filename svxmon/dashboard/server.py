"""FastAPI server for the SVX monitor dashboard."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

import httpx
from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config_schema import AppConfig
from .api.access import normalize_address
from .api.websocket import observer_endpoint
from .context import MonitorContext, build_context
from .core.aliases import SubscriberAliases, download_subscriber_file
from .models.messages import MonitorStatus

logger = logging.getLogger(__name__)

INDEX_PAGE = "index.html"


def _render_index(ctx: MonitorContext, path: Path) -> str:
    """Load the page template and fill in the system strings."""
    page = path.read_text(encoding="utf-8")
    replacements = {
        "__SYSTEM_NAME__": ctx.config.monitor.system_name,
        "__VERSION__": __version__,
        "__SOCKET_SERVER_PORT__": str(ctx.config.server.port),
        "__WEBSOCKET_PATH__": ctx.config.server.websocket_path,
    }
    for token, value in replacements.items():
        page = page.replace(token, value)
    return page


def _register_page_routes(app: FastAPI, ctx: MonitorContext) -> None:
    """Dashboard page and static assets."""
    static_dir = Path(ctx.config.server.static_dir)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> str:
        """Serve the dashboard page and open a page session for the client."""
        index_path = static_dir / INDEX_PAGE
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Dashboard page not installed")

        address = normalize_address(request.client.host if request.client else None)
        ctx.sessions.register(address)
        return _render_index(ctx, index_path)

    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")


def _register_api_routes(app: FastAPI, ctx: MonitorContext) -> None:
    """Read-only JSON views of the node table."""

    @app.get("/api/nodes")
    async def get_nodes() -> dict[str, Any]:
        """Current node table in the broadcast wire format."""
        return {"TRAFFIC": [r.to_wire() for r in ctx.table.snapshot()]}

    @app.get("/api/status")
    async def get_status() -> MonitorStatus:
        """Monitor summary."""
        return MonitorStatus(
            system_name=ctx.config.monitor.system_name,
            version=__version__,
            dialect=ctx.dialect.name,
            log_file=str(ctx.source.log_path),
            last_processed_line=ctx.updater.last_processed_line,
            node_count=len(ctx.table),
            observer_count=ctx.dispatcher.observer_count,
        )


def _register_websocket_routes(app: FastAPI, ctx: MonitorContext) -> None:
    """Observer WebSocket endpoint."""

    @app.websocket(ctx.config.server.websocket_path)
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await observer_endpoint(websocket, ctx)


def create_app(config: AppConfig, ctx: MonitorContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Validated configuration
        ctx: Prebuilt monitor context; built (and bootstrapped) from config when omitted

    Raises:
        LogSourceError / BootstrapError: When the context cannot be built.
    """
    if ctx is None:
        ctx = build_context(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        period = config.monitor.frequency_ms / 1000.0
        task = asyncio.create_task(ctx.updater.run(period))
        logger.info("Dashboard updates every %d ms", config.monitor.frequency_ms)
        try:
            yield
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title=config.monitor.system_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.monitor = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_page_routes(app, ctx)
    _register_api_routes(app, ctx)
    _register_websocket_routes(app, ctx)

    return app


def refresh_aliases(config: AppConfig) -> SubscriberAliases:
    """Download the subscriber file if stale, then load it."""
    logger.info("Starting files download, be patient, it could take several minutes...")
    try:
        download_subscriber_file(config.aliases)
    except httpx.HTTPError as e:
        logger.warning("Downloading %s failed: %s", config.aliases.subscriber_url, e)
    return SubscriberAliases.from_file(config.aliases.subscriber_path)


def run_dashboard(config: AppConfig, download: bool = True) -> None:
    """Bootstrap the monitor and serve it until interrupted."""
    import uvicorn

    aliases = refresh_aliases(config) if download else SubscriberAliases.from_file(
        config.aliases.subscriber_path
    )
    ctx = build_context(config, aliases=aliases)
    app = create_app(config, ctx=ctx)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
