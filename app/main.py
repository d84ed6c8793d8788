"""Entry point for the graphstats FastAPI application."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI

from .api import slack as slack_router
from .config import Settings, settings
from .core.providers import get_graph_client


def configure_logging(config: Settings = settings) -> None:
    """Apply the configured level; ``debug`` turns on dispatcher traces."""

    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    logging.getLogger("app").setLevel(level)


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Let in-flight lookups finish posting to Slack before shutting down."""

    yield
    provider = application.dependency_overrides.get(
        slack_router.get_stats_collector, slack_router.get_stats_collector
    )
    collector = provider()
    if collector.pending:
        logger.info("Waiting for %d statistics lookups before shutdown", collector.pending)
    await collector.wait_pending()


app = FastAPI(
    lifespan=lifespan,
    title="graphstats API",
    version="0.1.0",
    summary="Slack user, channel and keyword statistics from a graph database",
)


async def _probe_graph() -> Dict[str, Any]:
    """Probe the graph API and normalize the response."""

    client = get_graph_client()
    try:
        details = await client.health()
        return {"status": "healthy", "endpoint": client.api_url, "details": details}
    except Exception as exc:  # pragma: no cover - best effort health probe
        return {"status": "unhealthy", "endpoint": client.api_url, "error": str(exc)}


@app.get("/", tags=["meta"])
def index() -> Dict[str, Any]:
    """Basic service descriptor."""

    return {
        "service": "graphstats-api",
        "environment": settings.app_env,
        "docs": "/docs",
        "health": "/healthz",
    }


@app.get("/healthz", tags=["meta"])
async def healthz() -> Dict[str, Any]:
    """Aggregate health check for the graph database."""

    return {
        "status": "ok",
        "environment": settings.app_env,
        "dependencies": {"graph": await _probe_graph()},
    }


app.include_router(slack_router.router, prefix="/api/v1")


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
