# src/post_emitter/main.py
"""Main entry point for the Post Emitter service."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from post_emitter.api.v1 import (
    logs_router,
    queue_router,
    receivers_router,
    reports_router,
    system_router,
)
from post_emitter.context import AppContext, build_context
from post_emitter.core.settings import get_settings
from post_emitter.services.logs import current_actor

ACTOR_HEADER = "X-Actor-Id"


def _parse_actor(raw: str | None) -> int | None:
    if raw is None:
        return None
    raw = raw.strip()
    return int(raw) if raw.isdigit() else None


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the FastAPI application.

    When ``context`` is omitted it is built from the environment settings at
    start-up.
    """
    settings = context.settings if context is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        ctx: AppContext = context if context is not None else build_context(settings)
        app.state.context = ctx
        if ctx.settings.worker_enabled:
            await ctx.worker.start()
        try:
            yield
        finally:
            await ctx.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Replicates posts to remote receiver endpoints",
        version=settings.app_version,
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    app.include_router(receivers_router, prefix="/api/v1")
    app.include_router(queue_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(logs_router, prefix="/api/v1")
    app.include_router(system_router, prefix="/api/v1")

    @app.middleware("http")
    async def bind_actor(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        token = current_actor.set(_parse_actor(request.headers.get(ACTOR_HEADER)))
        try:
            return await call_next(request)
        finally:
            current_actor.reset(token)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("post_emitter.main:app", host="0.0.0.0", port=8000, reload=get_settings().debug)
