"""
HTTP routes for the portfolio API.

Public routes serve published case studies and accept contact submissions;
everything under /admin requires a signed-in session.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    Request,
    Response,
    UploadFile,
)

from portfolio.auth import Claims, SessionStore
from portfolio.config import Settings
from portfolio.db import DbClient
from portfolio.dependencies import (
    get_app_settings,
    get_db_client,
    get_media_storage,
    get_session_store,
    require_claims,
)
from portfolio.errors import NotFoundError
from portfolio.records import ProjectStatus
from portfolio.schemas import (
    ContactCreate,
    ContactResponse,
    ContactStatusUpdate,
    HealthResponse,
    MediaResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    UserResponse,
)
from portfolio.slugs import slugify
from portfolio.storage import MediaStorage
from portfolio.uploads import accept_upload

logger = logging.getLogger(__name__)

router = APIRouter()
admin = APIRouter(prefix="/admin", dependencies=[Depends(require_claims)])


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# Auth


@router.get("/auth/user", response_model=UserResponse)
def current_user(
    claims: Claims = Depends(require_claims),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(claims.sub)
    if not user:
        raise NotFoundError("User", claims.sub)
    return UserResponse.model_validate(user)


@router.post("/login", status_code=204)
def dev_login(response: Response, settings: Settings = Depends(get_app_settings)):
    """Sign back in as the developer identity. Only exists under the bypass."""
    if not settings.dev_bypass_active:
        raise NotFoundError("Route")
    response.delete_cookie(settings.logged_out_cookie_name)


@router.post("/logout", status_code=204)
def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionStore = Depends(get_session_store),
):
    sid = request.cookies.get(settings.session_cookie_name)
    if sid:
        sessions.delete(sid)
    response.delete_cookie(settings.session_cookie_name)
    if settings.dev_bypass_active:
        response.set_cookie(
            settings.logged_out_cookie_name, "1", httponly=True, samesite="lax"
        )


# Public projects


@router.get("/projects", response_model=list[ProjectResponse])
def list_published_projects(db: DbClient = Depends(get_db_client)):
    projects = db.get_projects(ProjectStatus.PUBLISHED.value)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/projects/{slug}", response_model=ProjectResponse)
def get_published_project(slug: str, db: DbClient = Depends(get_db_client)):
    project = db.get_project_by_slug(slug)
    if not project or project.status != ProjectStatus.PUBLISHED:
        raise NotFoundError("Project")
    return ProjectResponse.model_validate(project)


# Contact form


@router.post("/contact", response_model=ContactResponse, status_code=201)
def submit_contact(payload: ContactCreate, db: DbClient = Depends(get_db_client)):
    contact = db.create_contact(payload.model_dump())
    logger.info("Contact submission %s received", contact.id)
    return ContactResponse.model_validate(contact)


# Admin projects


@admin.get("/projects", response_model=list[ProjectResponse])
def list_all_projects(
    status: Optional[ProjectStatus] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    projects = db.get_projects(status.value if status else None)
    return [ProjectResponse.model_validate(p) for p in projects]


@admin.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(project_id: int, db: DbClient = Depends(get_db_client)):
    project = db.get_project(project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    return ProjectResponse.model_validate(project)


@admin.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    payload: ProjectCreate,
    claims: Claims = Depends(require_claims),
    db: DbClient = Depends(get_db_client),
):
    data = payload.model_dump(exclude_none=True)
    data["slug"] = slugify(payload.title)
    data["author_id"] = claims.sub
    project = db.create_project(data)
    logger.info("Created project %s (%s)", project.id, project.slug)
    return ProjectResponse.model_validate(project)


@admin.put("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: DbClient = Depends(get_db_client),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        changes["slug"] = slugify(changes["title"])
    project = db.update_project(project_id, changes)
    logger.info("Updated project %s", project_id)
    return ProjectResponse.model_validate(project)


@admin.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: int, db: DbClient = Depends(get_db_client)):
    db.delete_project(project_id)
    logger.info("Deleted project %s", project_id)


# Admin media


@admin.get("/media", response_model=list[MediaResponse])
def list_media(db: DbClient = Depends(get_db_client)):
    return [MediaResponse.model_validate(m) for m in db.get_media()]


@admin.post("/media", response_model=MediaResponse, status_code=201)
async def upload_media(
    file: UploadFile = File(...),
    alt_text: Optional[str] = Form(None, alias="altText"),
    claims: Claims = Depends(require_claims),
    settings: Settings = Depends(get_app_settings),
    db: DbClient = Depends(get_db_client),
    storage: MediaStorage = Depends(get_media_storage),
):
    # One byte past the limit is enough to reject an oversized file.
    data = await file.read(settings.max_upload_bytes + 1)
    payload = accept_upload(
        file.filename or "",
        file.content_type,
        data,
        storage,
        max_bytes=settings.max_upload_bytes,
        alt_text=alt_text,
        uploaded_by=claims.sub,
    )
    try:
        media = db.create_media(payload)
    except Exception:
        storage.delete(payload["filename"])
        raise
    return MediaResponse.model_validate(media)


@admin.delete("/media/{media_id}", status_code=204)
def delete_media(
    media_id: int,
    db: DbClient = Depends(get_db_client),
    storage: MediaStorage = Depends(get_media_storage),
):
    media = db.get_media_by_id(media_id)
    db.delete_media(media_id)
    if media:
        storage.delete(media.filename)
        logger.info("Deleted media %s (%s)", media_id, media.filename)


# Admin contacts


@admin.get("/contacts", response_model=list[ContactResponse])
def list_contacts(db: DbClient = Depends(get_db_client)):
    return [ContactResponse.model_validate(c) for c in db.get_contacts()]


@admin.patch("/contacts/{contact_id}", status_code=204)
def update_contact_status(
    contact_id: int,
    payload: ContactStatusUpdate,
    db: DbClient = Depends(get_db_client),
):
    db.update_contact_status(contact_id, payload.status.value)


router.include_router(admin)
