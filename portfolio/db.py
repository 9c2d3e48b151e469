"""
Database abstraction for Postgres and an in-memory implementation.

Both clients honour the same contract: sequential integer ids that are never
reused, newest-first listings, merge-style updates and idempotent deletes.
Uniqueness violations surface as ConflictError, unreachable databases as
TransportError.
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio.errors import ConflictError, NotFoundError, TransportError, ValidationError
from portfolio.records import (
    ContactStatus,
    ContactSubmission,
    Media,
    Project,
    ProjectStatus,
    User,
    UserUpsert,
    newest_first,
    next_timestamp,
    normalize_new_contact,
    normalize_new_media,
    normalize_new_project,
    normalize_project_changes,
    parse_contact_status,
    parse_project_status,
    utcnow,
)


class DbClient(Protocol):
    """Interface for database access."""

    def get_user(self, user_id: str) -> Optional[User]:
        ...

    def upsert_user(self, user: UserUpsert) -> User:
        ...

    def get_projects(self, status: Optional[str] = None) -> list[Project]:
        ...

    def get_project(self, project_id: int) -> Optional[Project]:
        ...

    def get_project_by_slug(self, slug: str) -> Optional[Project]:
        ...

    def create_project(self, data: Mapping[str, Any]) -> Project:
        ...

    def update_project(self, project_id: int, changes: Mapping[str, Any]) -> Project:
        ...

    def delete_project(self, project_id: int) -> None:
        ...

    def get_media(self) -> list[Media]:
        ...

    def get_media_by_id(self, media_id: int) -> Optional[Media]:
        ...

    def create_media(self, data: Mapping[str, Any]) -> Media:
        ...

    def delete_media(self, media_id: int) -> None:
        ...

    def get_contacts(self) -> list[ContactSubmission]:
        ...

    def create_contact(self, data: Mapping[str, Any]) -> ContactSubmission:
        ...

    def update_contact_status(self, contact_id: int, status: str) -> None:
        ...

    def close(self) -> None:
        ...


def _require_user_id(user: UserUpsert) -> str:
    if not user.id or not user.id.strip():
        raise ValidationError("User ID is required", details={"field": "id"})
    return user.id


class InMemoryDbClient:
    """
    Dict-backed store for development and tests.

    Not thread-safe; meant for a single process with a single writer.
    """

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.projects: Dict[int, Project] = {}
        self.media: Dict[int, Media] = {}
        self.contacts: Dict[int, ContactSubmission] = {}
        self._next_project_id = 1
        self._next_media_id = 1
        self._next_contact_id = 1

    def reset(self) -> None:
        """Clear all stored data. Id counters keep counting."""
        self.users.clear()
        self.projects.clear()
        self.media.clear()
        self.contacts.clear()

    def close(self) -> None:
        return None

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    def upsert_user(self, user: UserUpsert) -> User:
        user_id = _require_user_id(user)
        fields = user.supplied_fields()
        email = fields.get("email")
        if email and any(
            other.email == email and other.id != user_id
            for other in self.users.values()
        ):
            raise ConflictError(
                f"Email {email!r} is already registered",
                details={"field": "email"},
            )
        existing = self.users.get(user_id)
        if existing:
            stored = replace(
                existing, **fields, updated_at=next_timestamp(existing.updated_at)
            )
        else:
            now = utcnow()
            stored = User(id=user_id, created_at=now, updated_at=now, **fields)
        self.users[user_id] = stored
        return copy.deepcopy(stored)

    # Projects

    def _check_slug_free(self, slug: str, project_id: Optional[int] = None) -> None:
        for project in self.projects.values():
            if project.slug == slug and project.id != project_id:
                raise ConflictError(
                    f"A project with slug {slug!r} already exists",
                    details={"field": "slug"},
                )

    def get_projects(self, status: Optional[str] = None) -> list[Project]:
        projects = list(self.projects.values())
        if status is not None:
            wanted = parse_project_status(status)
            projects = [p for p in projects if p.status == wanted]
        return copy.deepcopy(newest_first(projects))

    def get_project(self, project_id: int) -> Optional[Project]:
        project = self.projects.get(project_id)
        return copy.deepcopy(project) if project else None

    def get_project_by_slug(self, slug: str) -> Optional[Project]:
        for project in self.projects.values():
            if project.slug == slug:
                return copy.deepcopy(project)
        return None

    def create_project(self, data: Mapping[str, Any]) -> Project:
        fields = normalize_new_project(data)
        self._check_slug_free(fields["slug"])
        project_id = self._next_project_id
        self._next_project_id += 1
        now = utcnow()
        project = Project(id=project_id, created_at=now, updated_at=now, **fields)
        self.projects[project_id] = project
        return copy.deepcopy(project)

    def update_project(self, project_id: int, changes: Mapping[str, Any]) -> Project:
        existing = self.projects.get(project_id)
        if not existing:
            raise NotFoundError("Project", project_id)
        fields = normalize_project_changes(changes)
        if "slug" in fields:
            self._check_slug_free(fields["slug"], project_id)
        updated = replace(
            existing, **fields, updated_at=next_timestamp(existing.updated_at)
        )
        self.projects[project_id] = updated
        return copy.deepcopy(updated)

    def delete_project(self, project_id: int) -> None:
        self.projects.pop(project_id, None)

    # Media

    def get_media(self) -> list[Media]:
        return copy.deepcopy(newest_first(self.media.values()))

    def get_media_by_id(self, media_id: int) -> Optional[Media]:
        media = self.media.get(media_id)
        return copy.deepcopy(media) if media else None

    def create_media(self, data: Mapping[str, Any]) -> Media:
        fields = normalize_new_media(data)
        if any(m.filename == fields["filename"] for m in self.media.values()):
            raise ConflictError(
                f"Media file {fields['filename']!r} already exists",
                details={"field": "filename"},
            )
        media_id = self._next_media_id
        self._next_media_id += 1
        media = Media(id=media_id, created_at=utcnow(), **fields)
        self.media[media_id] = media
        return copy.deepcopy(media)

    def delete_media(self, media_id: int) -> None:
        self.media.pop(media_id, None)

    # Contacts

    def get_contacts(self) -> list[ContactSubmission]:
        return copy.deepcopy(newest_first(self.contacts.values()))

    def create_contact(self, data: Mapping[str, Any]) -> ContactSubmission:
        fields = normalize_new_contact(data)
        contact_id = self._next_contact_id
        self._next_contact_id += 1
        contact = ContactSubmission(
            id=contact_id, status=ContactStatus.NEW, created_at=utcnow(), **fields
        )
        self.contacts[contact_id] = contact
        return copy.deepcopy(contact)

    def update_contact_status(self, contact_id: int, status: str) -> None:
        new_status = parse_contact_status(status)
        existing = self.contacts.get(contact_id)
        if existing:
            self.contacts[contact_id] = replace(existing, status=new_status)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _integrity_error(exc: IntegrityError) -> Exception:
    detail = str(exc.orig)
    if "foreign key" in detail.lower():
        return ValidationError(
            "Referenced record does not exist", details={"reason": detail}
        )
    return ConflictError("Record violates a uniqueness constraint", details={"reason": detail})


def engine_url(database_url: str) -> str:
    """Point bare Postgres URLs at the psycopg driver."""
    for scheme in ("postgres://", "postgresql://"):
        if database_url.startswith(scheme):
            return "postgresql+psycopg://" + database_url[len(scheme):]
    return database_url


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_kwargs: dict[str, Any] = {
            "future": True,
            "pool_pre_ping": True,
            "pool_recycle": 1800,
        }
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every session sees the same database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine = create_engine(engine_url(database_url), **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except (OperationalError, InterfaceError) as exc:
            raise TransportError(
                "Could not initialise database schema", details={"reason": str(exc)}
            ) from exc

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except IntegrityError as exc:
            raise _integrity_error(exc) from exc
        except (OperationalError, InterfaceError) as exc:
            raise TransportError(details={"reason": str(exc)}) from exc
        finally:
            session.close()

    # Row conversion

    def _to_user(self, row: "UserRow") -> User:
        return User(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            profile_image_url=row.profile_image_url,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def _to_project(self, row: "ProjectRow") -> Project:
        return Project(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description,
            content=row.content,
            category=row.category,
            featured_image=row.featured_image,
            tags=list(row.tags or []),
            status=ProjectStatus(row.status),
            author_id=row.author_id,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def _to_media(self, row: "MediaRow") -> Media:
        return Media(
            id=row.id,
            filename=row.filename,
            original_name=row.original_name,
            mime_type=row.mime_type,
            size=row.size,
            url=row.url,
            alt_text=row.alt_text,
            uploaded_by=row.uploaded_by,
            created_at=as_utc(row.created_at),
        )

    def _to_contact(self, row: "ContactRow") -> ContactSubmission:
        return ContactSubmission(
            id=row.id,
            name=row.name,
            email=row.email,
            subject=row.subject,
            message=row.message,
            status=ContactStatus(row.status),
            created_at=as_utc(row.created_at),
        )

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        with self.session_scope() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def upsert_user(self, user: UserUpsert) -> User:
        user_id = _require_user_id(user)
        fields = user.supplied_fields()
        with self.session_scope() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                if self.insert_user_if_absent(session, user_id, fields):
                    return self._to_user(session.get(UserRow, user_id))
                # Another request created this user first; merge into it.
                row = session.get(UserRow, user_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = next_timestamp(as_utc(row.updated_at))
            session.commit()
            return self._to_user(row)

    def insert_user_if_absent(
        self, session: Session, user_id: str, fields: Mapping[str, Any]
    ) -> bool:
        """
        Insert a user in a single statement that does nothing when the id is
        already taken. Returns True if this call created the row.
        """
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            insert = postgresql_insert
        elif dialect == "sqlite":
            insert = sqlite_insert
        else:
            raise ValueError(f"Unsupported database dialect: {dialect}")
        now = utcnow()
        stmt = (
            insert(UserRow)
            .values(id=user_id, created_at=now, updated_at=now, **fields)
            .on_conflict_do_nothing(index_elements=[UserRow.id])
        )
        inserted = session.execute(stmt).rowcount
        session.commit()
        return inserted == 1

    # Projects

    def get_projects(self, status: Optional[str] = None) -> list[Project]:
        stmt = select(ProjectRow)
        if status is not None:
            stmt = stmt.where(ProjectRow.status == parse_project_status(status).value)
        stmt = stmt.order_by(ProjectRow.created_at.desc(), ProjectRow.id.desc())
        with self.session_scope() as session:
            return [self._to_project(row) for row in session.execute(stmt).scalars()]

    def get_project(self, project_id: int) -> Optional[Project]:
        with self.session_scope() as session:
            row = session.get(ProjectRow, project_id)
            return self._to_project(row) if row else None

    def get_project_by_slug(self, slug: str) -> Optional[Project]:
        with self.session_scope() as session:
            stmt = select(ProjectRow).where(ProjectRow.slug == slug)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_project(row) if row else None

    def create_project(self, data: Mapping[str, Any]) -> Project:
        fields = normalize_new_project(data)
        fields["status"] = fields["status"].value
        now = utcnow()
        with self.session_scope() as session:
            row = ProjectRow(created_at=now, updated_at=now, **fields)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_project(row)

    def update_project(self, project_id: int, changes: Mapping[str, Any]) -> Project:
        fields = normalize_project_changes(changes)
        if "status" in fields:
            fields["status"] = fields["status"].value
        with self.session_scope() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                raise NotFoundError("Project", project_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = next_timestamp(as_utc(row.updated_at))
            session.commit()
            session.refresh(row)
            return self._to_project(row)

    def delete_project(self, project_id: int) -> None:
        with self.session_scope() as session:
            row = session.get(ProjectRow, project_id)
            if row:
                session.delete(row)
                session.commit()

    # Media

    def get_media(self) -> list[Media]:
        stmt = select(MediaRow).order_by(MediaRow.created_at.desc(), MediaRow.id.desc())
        with self.session_scope() as session:
            return [self._to_media(row) for row in session.execute(stmt).scalars()]

    def get_media_by_id(self, media_id: int) -> Optional[Media]:
        with self.session_scope() as session:
            row = session.get(MediaRow, media_id)
            return self._to_media(row) if row else None

    def create_media(self, data: Mapping[str, Any]) -> Media:
        fields = normalize_new_media(data)
        with self.session_scope() as session:
            row = MediaRow(created_at=utcnow(), **fields)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_media(row)

    def delete_media(self, media_id: int) -> None:
        with self.session_scope() as session:
            row = session.get(MediaRow, media_id)
            if row:
                session.delete(row)
                session.commit()

    # Contacts

    def get_contacts(self) -> list[ContactSubmission]:
        stmt = select(ContactRow).order_by(
            ContactRow.created_at.desc(), ContactRow.id.desc()
        )
        with self.session_scope() as session:
            return [self._to_contact(row) for row in session.execute(stmt).scalars()]

    def create_contact(self, data: Mapping[str, Any]) -> ContactSubmission:
        fields = normalize_new_contact(data)
        with self.session_scope() as session:
            row = ContactRow(
                status=ContactStatus.NEW.value, created_at=utcnow(), **fields
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_contact(row)

    def update_contact_status(self, contact_id: int, status: str) -> None:
        new_status = parse_contact_status(status)
        with self.session_scope() as session:
            row = session.get(ContactRow, contact_id)
            if not row:
                return
            row.status = new_status.value
            session.commit()


Base = declarative_base()

# text[] on Postgres, JSON everywhere else.
TagList = JSON().with_variant(ARRAY(Text), "postgresql")


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ProjectRow(Base):
    __tablename__ = "projects"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    featured_image = Column(String, nullable=True)
    category = Column(String(100), nullable=False)
    tags = Column(TagList, nullable=True)
    status = Column(String(50), nullable=False, default=ProjectStatus.DRAFT.value, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    author_id = Column(String, ForeignKey("users.id"), nullable=True)


class MediaRow(Base):
    __tablename__ = "media"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String(255), nullable=False, unique=True)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(String(50), nullable=False)
    url = Column(String(500), nullable=False)
    alt_text = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    uploaded_by = Column(String, ForeignKey("users.id"), nullable=True)


class ContactRow(Base):
    __tablename__ = "contact_submissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(50), nullable=False, default=ContactStatus.NEW.value)
    created_at = Column(DateTime(timezone=True), nullable=False)


class SessionRow(Base):
    """Login sessions; read and written only by portfolio.auth."""

    __tablename__ = "sessions"

    sid = Column(String, primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime(timezone=True), nullable=False, index=True)
