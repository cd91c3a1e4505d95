from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from . import __version__
from .agents.base import AnalysisAgent
from .api.routes import router as api_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging, get_logger
from .orchestration.orchestrator import AnalysisOrchestrator

settings = get_settings()
configure_logging(settings.observability.log_level)
logger = get_logger(name=__name__)


def create_app(*, agents: Iterable[AnalysisAgent] = (), app_settings: Settings | None = None) -> FastAPI:
    """Build the API around one orchestrator that owns the given agents."""
    app_settings = app_settings or settings
    orchestrator = AnalysisOrchestrator.from_settings(app_settings, agents=list(agents))

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        async with orchestrator.lifecycle():
            yield

    app = FastAPI(title="logscope", version=__version__, lifespan=app_lifespan)
    app.state.orchestrator = orchestrator
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.frontend_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=app_settings.api_v1_prefix)

    @app.get("/", tags=["health"])
    async def root() -> dict[str, str]:
        return {"message": "logscope orchestrator running"}

    if app_settings.observability.prometheus_enabled:

        @app.get("/metrics", tags=["observability"])
        async def metrics() -> Response:
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
