from __future__ import annotations

import contextlib
import json
import logging
import re
import typing as t
from collections.abc import AsyncIterator

import anyio
import click
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from pydantic import AnyUrl
from starlette.applications import Starlette
from starlette.routing import Mount
from starlette.types import Receive, Scope, Send

from . import __version__
from .cache.ttl_cache import CacheSet, run_sweeper
from .core.errors import ErrorCode, StandardError
from .core.models import IsochroneInput, RouteInput
from .core.orchestrator import SERVER_NAME, RequestOrchestrator
from .core.result import Err, Result
from .engine.base import RoutingEngine
from .engine.client import ValhallaClient
from .monitoring.metrics import MetricsCollector
from .utils.config import ServerConfig

logger = logging.getLogger(__name__)

HEALTH_URI = "health://status"
METRICS_URI = "metrics://summary"
TILE_URI_TEMPLATE = "tile://{z}/{x}/{y}"
_TILE_URI = re.compile(r"^tile://(?P<z>[^/]+)/(?P<x>[^/]+)/(?P<y>[^/]+?)(?:\.pbf)?$")

JSON_MIME = "application/json"
TILE_MIME = "application/x-protobuf"


def _dump(payload: t.Any) -> str:
    return json.dumps(payload, indent=2)


def _json_contents(payload: t.Any) -> t.List[ReadResourceContents]:
    return [ReadResourceContents(content=_dump(payload), mime_type=JSON_MIME)]


def _error_result(error: StandardError) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=_dump(error.to_response()))],
        isError=True,
    )


def _tool_content(result: Result[t.Any]) -> t.Union[t.List[types.ContentBlock], types.CallToolResult]:
    if isinstance(result, Err):
        return _error_result(result.error)
    return [types.TextContent(type="text", text=_dump(result.value))]


def build_orchestrator(config: ServerConfig, engine: t.Optional[RoutingEngine] = None) -> RequestOrchestrator:
    """Construct the single engine client, cache set and collector for this process."""
    engine = engine or ValhallaClient(config.engine.base_url, timeout_seconds=config.engine.timeout_seconds)
    caches = CacheSet.create(
        route_ttl_seconds=config.cache.route_ttl_seconds,
        isochrone_ttl_seconds=config.cache.isochrone_ttl_seconds,
        health_ttl_seconds=config.cache.health_ttl_seconds,
        max_size=config.cache.max_size,
    )
    metrics = MetricsCollector(max_history=config.metrics.max_history, health_window=config.metrics.health_window)
    return RequestOrchestrator(engine, caches, metrics, server_version=__version__)


def create_server(orchestrator: RequestOrchestrator) -> Server:
    app = Server(SERVER_NAME, version=__version__)

    @app.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name="route",
                description=(
                    "Calculate a route between two points using the Valhalla routing engine. "
                    "Returns a GeoJSON FeatureCollection of LineStrings with summary statistics."
                ),
                inputSchema=RouteInput.model_json_schema(),
            ),
            types.Tool(
                name="isochrone",
                description=(
                    "Generate an isochrone polygon showing the area reachable within a travel time "
                    "from a given point."
                ),
                inputSchema=IsochroneInput.model_json_schema(),
            ),
        ]

    # Arguments are validated by the orchestrator so failures land in metrics.
    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict) -> t.Union[list[types.ContentBlock], types.CallToolResult]:
        logger.info("Tool %s called", name)
        if name == "route":
            return _tool_content(await orchestrator.route(arguments or {}))
        if name == "isochrone":
            return _tool_content(await orchestrator.isochrone(arguments or {}))
        return _error_result(StandardError(f"Unknown tool: {name}", ErrorCode.NOT_FOUND))

    @app.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [
            types.Resource(
                uri=AnyUrl(HEALTH_URI),
                name="health",
                description="Health status and version information of the Valhalla routing engine",
                mimeType=JSON_MIME,
            ),
            types.Resource(
                uri=AnyUrl(METRICS_URI),
                name="metrics",
                description="Performance metrics, cache statistics and system health of this server",
                mimeType=JSON_MIME,
            ),
        ]

    @app.list_resource_templates()
    async def list_resource_templates() -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=TILE_URI_TEMPLATE,
                name="tile",
                description="Valhalla vector tile in Mapbox protobuf format",
                mimeType=TILE_MIME,
            )
        ]

    @app.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        return await read_resource_contents(orchestrator, str(uri))

    return app


async def read_resource_contents(orchestrator: RequestOrchestrator, uri: str) -> t.List[ReadResourceContents]:
    uri = uri.rstrip("/")
    if uri == HEALTH_URI:
        result = await orchestrator.health()
        if isinstance(result, Err):
            return _json_contents(
                {
                    "status": "unhealthy",
                    "error": result.error.to_response(),
                    "server": orchestrator.server_info(),
                }
            )
        return _json_contents(result.value)

    if uri == METRICS_URI:
        return _json_contents(orchestrator.metrics_report())

    match = _TILE_URI.match(uri)
    if match:
        z, x, y = match.group("z"), match.group("x"), match.group("y")
        result = await orchestrator.tile(z, x, y)
        if isinstance(result, Err):
            return _json_contents({**result.error.to_response(), "tile": {"z": z, "x": x, "y": y}})
        return [ReadResourceContents(content=result.value, mime_type=TILE_MIME)]

    return _json_contents(StandardError(f"Unknown resource: {uri}", ErrorCode.NOT_FOUND).to_response())


async def run_stdio(app: Server, orchestrator: RequestOrchestrator, sweep_interval: float) -> None:
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(run_sweeper, orchestrator.caches, sweep_interval)
            async with stdio_server() as (read_stream, write_stream):
                logger.info("Valhalla MCP server started on stdio")
                await app.run(read_stream, write_stream, app.create_initialization_options())
            tg.cancel_scope.cancel()
    finally:
        await orchestrator.engine.aclose()


def run_http(
    app: Server,
    orchestrator: RequestOrchestrator,
    *,
    host: str,
    port: int,
    sweep_interval: float,
    json_response: bool,
) -> None:
    session_manager = StreamableHTTPSessionManager(app=app, event_store=None, json_response=json_response)

    async def handle_streamable_http(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(starlette_app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run(), anyio.create_task_group() as tg:
            tg.start_soon(run_sweeper, orchestrator.caches, sweep_interval)
            logger.info("Valhalla MCP server started with StreamableHTTP session manager")
            try:
                yield
            finally:
                logger.info("Application shutting down...")
                tg.cancel_scope.cancel()
                await orchestrator.engine.aclose()

    starlette_app = Starlette(routes=[Mount("/mcp", app=handle_streamable_http)], lifespan=lifespan)

    import uvicorn

    uvicorn.run(starlette_app, host=host, port=port)


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"], case_sensitive=False),
    default=None,
    help="MCP transport (default: stdio)",
)
@click.option("--host", default=None, help="Host to bind for the HTTP transport")
@click.option("--port", type=int, default=None, help="Port to listen on for the HTTP transport")
@click.option("--base-url", default=None, envvar="VALHALLA_BASE_URL", show_envvar=True, help="Valhalla base URL")
@click.option(
    "--timeout",
    type=float,
    default=None,
    envvar="VALHALLA_TIMEOUT_SECONDS",
    show_envvar=True,
    help="Routing engine timeout in seconds",
)
@click.option(
    "--log-level",
    default=None,
    envvar="LOG_LEVEL",
    show_envvar=True,
    help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.option(
    "--json-response",
    is_flag=True,
    default=False,
    help="Enable JSON responses instead of SSE streams (HTTP transport)",
)
def main(
    transport: t.Optional[str],
    host: t.Optional[str],
    port: t.Optional[int],
    base_url: t.Optional[str],
    timeout: t.Optional[float],
    log_level: t.Optional[str],
    json_response: bool,
) -> int:
    config = ServerConfig.from_env()
    if transport:
        config.transport = transport.lower()
    if host:
        config.host = host
    if port is not None:
        config.port = port
    if base_url:
        config.engine.base_url = base_url
    if timeout is not None:
        config.engine.timeout_seconds = timeout
    if log_level:
        config.log_level = log_level.upper()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Initializing Valhalla MCP server (engine=%s)", config.engine.base_url)

    orchestrator = build_orchestrator(config)
    app = create_server(orchestrator)

    if config.transport == "http":
        run_http(
            app,
            orchestrator,
            host=config.host,
            port=config.port,
            sweep_interval=config.cache.sweep_interval_seconds,
            json_response=json_response,
        )
    else:
        anyio.run(run_stdio, app, orchestrator, config.cache.sweep_interval_seconds)
    return 0


if __name__ == "__main__":
    main()
