"""FastAPI application -- entry point for the studio QA API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qagate.config import GateSettings
from qagate.errors import (
    InvalidInputError,
    ProjectNotFoundError,
    QualityGateError,
    RenderJobNotFoundError,
    ReportFetchTimeoutError,
    SceneNotFoundError,
    SceneTransitionError,
)
from studio_api.deps import Services, build_services
from studio_api.routes import quality, render

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[QualityGateError], int] = {
    InvalidInputError: 422,
    SceneTransitionError: 409,
    ProjectNotFoundError: 404,
    SceneNotFoundError: 404,
    RenderJobNotFoundError: 404,
    ReportFetchTimeoutError: 504,
}


def create_app(services: Services | None = None) -> FastAPI:
    """Build the app. Without *services* they are created from env at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "services", None) is None:
            settings = GateSettings()
            logging.basicConfig(
                level=settings.log_level,
                format="%(asctime)s %(name)s %(levelname)s %(message)s",
            )
            owned = await build_services(settings)
            app.state.services = owned
            logger.info("Studio QA API started (policy=%s)", owned.policy)
        yield
        if owned is not None:
            await owned.close()

    app = FastAPI(
        title="Studio QA API",
        version="0.1.0",
        description="Scene quality gate and render guard for generated video projects.",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS -- allow the local dev frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(quality.router)
    app.include_router(render.router)

    @app.exception_handler(QualityGateError)
    async def quality_gate_error(request: Request, exc: QualityGateError):
        status = _ERROR_STATUS.get(type(exc), 400)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.get("/health")
    async def health():
        """Unauthenticated health-check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
