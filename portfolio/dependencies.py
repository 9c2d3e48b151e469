"""
Dependency wiring for the FastAPI app.

Backends are built once by `create_app` and kept on `app.state`; request
handlers reach them through the getters below rather than module globals.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from portfolio.auth import (
    DEV_CLAIMS,
    Claims,
    InMemorySessionStore,
    SessionStore,
    SqlSessionStore,
)
from portfolio.config import Settings
from portfolio.db import DbClient, InMemoryDbClient, PostgresDbClient
from portfolio.errors import AuthenticationError
from portfolio.storage import (
    InMemoryMediaStorage,
    LocalMediaStorage,
    MediaStorage,
    S3MediaStorage,
)

logger = logging.getLogger(__name__)


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory database")
        return InMemoryDbClient()
    return PostgresDbClient(settings.database_url)


def build_media_storage(settings: Settings) -> MediaStorage:
    if settings.use_in_memory_backends:
        return InMemoryMediaStorage(url_prefix=settings.upload_url_prefix)
    if settings.s3_bucket:
        return S3MediaStorage(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url or "",
        )
    return LocalMediaStorage(
        directory=settings.upload_dir, url_prefix=settings.upload_url_prefix
    )


def build_session_store(db: DbClient) -> SessionStore:
    if isinstance(db, PostgresDbClient):
        return SqlSessionStore(db)
    return InMemorySessionStore()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_media_storage(request: Request) -> MediaStorage:
    return request.app.state.media_storage


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_current_claims(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    db: DbClient = Depends(get_db_client),
    sessions: SessionStore = Depends(get_session_store),
) -> Optional[Claims]:
    """
    Resolve the signed-in identity from the session cookie, refreshing the
    session's expiry. With the development bypass on, a fixed developer
    identity is used instead and recorded as a user on first sight, unless the
    browser has logged out of it.
    """
    if settings.dev_bypass_active:
        if request.cookies.get(settings.logged_out_cookie_name):
            return None
        if db.get_user(DEV_CLAIMS.sub) is None:
            db.upsert_user(DEV_CLAIMS.to_upsert())
        return DEV_CLAIMS

    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        return None
    record = sessions.get(sid)
    if record is None:
        return None
    sessions.touch(sid, settings.session_ttl_seconds)
    return record.claims


def require_claims(
    claims: Optional[Claims] = Depends(get_current_claims),
) -> Claims:
    if claims is None:
        raise AuthenticationError()
    return claims
