"""MCP server entry point for playlist-intel.

Runs FastMCP with Streamable HTTP transport. Sync results and the video
cache live in one JSON file and the daily quota counter in another, so
both survive restarts.
"""

import logging
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastmcp import FastMCP

from .auth import Credentials
from .client import YouTubeClient
from .config import Config, load_config
from .quota import QuotaTracker
from .storage import JsonFileStore
from .sync import SyncOrchestrator
from .tools import register_tools

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def client_lifespan(
    client: YouTubeClient,
) -> Callable[[FastMCP], AbstractAsyncContextManager[dict]]:
    """Server lifespan that closes the HTTP client when the server stops."""

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[dict]:
        try:
            yield {}
        finally:
            logger.info("Shutting down, closing connections...")
            await client.aclose()

    return lifespan


def build_server(config: Config) -> tuple[FastMCP, YouTubeClient]:
    """Wire stores, quota tracker, client and orchestrator into an MCP server."""
    store = JsonFileStore(config.state_file)
    quota = QuotaTracker(
        JsonFileStore(config.quota_file),
        daily_limit=config.quota_daily_limit,
        safety_margin=config.quota_safety_margin,
    )
    client = YouTubeClient(config, quota)
    orchestrator = SyncOrchestrator(
        client,
        store,
        progress=lambda p: logger.info("[%3d%%] %s", p.percent, p.label),
    )
    token_cache = config.token_cache()

    async def get_credentials() -> Credentials:
        return await config.credentials(token_cache)

    mcp = FastMCP("playlist-intel", lifespan=client_lifespan(client))
    register_tools(mcp, orchestrator, get_credentials)
    return mcp, client


def main() -> None:
    """Run the playlist-intel MCP server."""
    config = load_config()
    configure_logging(config.log_level)
    mcp, _ = build_server(config)

    logger.info(
        "Starting playlist-intel MCP server on %s:%d (streamable-http)",
        config.server_host,
        config.server_port,
    )
    mcp.run(
        transport="streamable-http",
        host=config.server_host,
        port=config.server_port,
    )


if __name__ == "__main__":
    main()
