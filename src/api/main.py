"""
FastAPI Application.

Main API entry point for the plan executor service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, config
from src.graph import PlanExecutor
from src.mcp import MCPServer, ToolRegistry
from src.utils import setup_logging

from .routes import API_VERSION, router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: ToolRegistry | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Optional settings (defaults to global config)
        registry: Optional prebuilt registry; when omitted the built-in
            MCP tools are started with the app and closed on shutdown
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        setup_logging(settings.log_level, settings.log_format)
        logger.info("Starting Plan Executor API...")

        server: MCPServer | None = None
        if registry is None:
            server = MCPServer(settings)
            app.state.registry = server.registry
        else:
            app.state.registry = registry

        app.state.executor = PlanExecutor(app.state.registry, settings)

        yield

        logger.info("Shutting down Plan Executor API...")
        if server is not None:
            await server.close()

    app = FastAPI(
        title="Plan Executor API",
        description="Executes structured BI analysis plans against registered tools",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api/v1")

    return app


# Create app instance
app = create_app()


def main() -> None:
    """Run the application."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=config.api.host,
        port=config.api.port,
    )


if __name__ == "__main__":
    main()
