"""
FastAPI application entry point for the portfolio backend.

    uvicorn portfolio.app:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from portfolio.auth import SessionStore
from portfolio.config import Settings, get_settings
from portfolio.db import DbClient
from portfolio.dependencies import (
    build_db_client,
    build_media_storage,
    build_session_store,
)
from portfolio.errors import PortfolioError
from portfolio.routes import router
from portfolio.seed import seed_sample_projects
from portfolio.storage import LocalMediaStorage, MediaStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Portfolio API starting (%s)", app.state.settings.environment)
    yield
    logger.info("Portfolio API shutting down")
    app.state.db.close()


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        logger.warning(
            "%s %s failed: %s (%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.error_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": {"errors": jsonable_encoder(exc.errors())},
                }
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    db: Optional[DbClient] = None,
    media_storage: Optional[MediaStorage] = None,
    sessions: Optional[SessionStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Portfolio CMS", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db or build_db_client(settings)
    app.state.media_storage = media_storage or build_media_storage(settings)
    app.state.sessions = sessions or build_session_store(app.state.db)

    if settings.seed_sample_data:
        seed_sample_projects(app.state.db)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    if isinstance(app.state.media_storage, LocalMediaStorage):
        app.mount(
            settings.upload_url_prefix,
            StaticFiles(directory=app.state.media_storage.directory),
            name="uploads",
        )
    return app
