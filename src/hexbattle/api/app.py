"""FastAPI application wiring for hexbattle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hexbattle.api import routes
from hexbattle.api.runtime import ApiState, build_state
from hexbattle.config import get_settings
from hexbattle.domain.errors import InvariantViolation

logger = logging.getLogger(__name__)


async def _invariant_violation(request: Request, exc: Exception) -> JSONResponse:
    logger.error("rules invariant broken while serving %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "battle state is inconsistent"},
    )


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Instantiate the FastAPI application with routing and lifecycle hooks."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        try:
            yield
        finally:
            await state.shutdown()

    app = FastAPI(title="hexbattle API", version="0.1.0", lifespan=lifespan)
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(InvariantViolation, _invariant_violation)
    app.include_router(routes.router)
    return app


app = create_app()
