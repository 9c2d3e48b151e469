"""
Session-cookie authentication.

The OAuth handshake lives outside this service; whatever completes it calls
`establish_session` with the identity claims it obtained. Requests then carry
the session id in a cookie, and the session's expiry is pushed forward each
time it is used.
"""

from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol

from sqlalchemy import delete, select

from portfolio.db import DbClient, PostgresDbClient, SessionRow, as_utc
from portfolio.records import UserUpsert, utcnow


@dataclass
class Claims:
    """Identity asserted by the login provider. `sub` is the user id."""

    sub: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict) -> "Claims":
        return cls(
            sub=payload["sub"],
            email=payload.get("email"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            profile_image_url=payload.get("profile_image_url"),
        )

    def to_upsert(self) -> UserUpsert:
        return UserUpsert(
            id=self.sub,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            profile_image_url=self.profile_image_url,
        )


# Identity used when the development bypass is switched on.
DEV_CLAIMS = Claims(
    sub="mock-user-123",
    email="dev@example.com",
    first_name="Developer",
    last_name="User",
)


@dataclass
class SessionRecord:
    sid: str
    claims: Claims
    expire: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expire <= (now or utcnow())


class SessionStore(Protocol):
    def create(self, claims: Claims, ttl_seconds: int) -> SessionRecord:
        ...

    def get(self, sid: str) -> Optional[SessionRecord]:
        """Return a live session, or None if unknown or expired."""
        ...

    def touch(self, sid: str, ttl_seconds: int) -> None:
        ...

    def delete(self, sid: str) -> None:
        ...

    def purge_expired(self) -> int:
        ...


def _new_sid() -> str:
    return secrets.token_urlsafe(32)


class InMemorySessionStore:
    def __init__(self):
        self.sessions: Dict[str, SessionRecord] = {}

    def create(self, claims: Claims, ttl_seconds: int) -> SessionRecord:
        record = SessionRecord(
            sid=_new_sid(),
            claims=claims,
            expire=utcnow() + timedelta(seconds=ttl_seconds),
        )
        self.sessions[record.sid] = record
        return record

    def get(self, sid: str) -> Optional[SessionRecord]:
        record = self.sessions.get(sid)
        if record is None:
            return None
        if record.is_expired():
            del self.sessions[sid]
            return None
        return record

    def touch(self, sid: str, ttl_seconds: int) -> None:
        record = self.sessions.get(sid)
        if record:
            self.sessions[sid] = replace(
                record, expire=utcnow() + timedelta(seconds=ttl_seconds)
            )

    def delete(self, sid: str) -> None:
        self.sessions.pop(sid, None)

    def purge_expired(self) -> int:
        now = utcnow()
        expired = [sid for sid, r in self.sessions.items() if r.is_expired(now)]
        for sid in expired:
            del self.sessions[sid]
        return len(expired)


class SqlSessionStore:
    """Sessions kept in the `sessions` table next to the content tables."""

    def __init__(self, db: PostgresDbClient):
        self.db = db

    def create(self, claims: Claims, ttl_seconds: int) -> SessionRecord:
        record = SessionRecord(
            sid=_new_sid(),
            claims=claims,
            expire=utcnow() + timedelta(seconds=ttl_seconds),
        )
        with self.db.session_scope() as session:
            session.add(
                SessionRow(
                    sid=record.sid,
                    sess={"claims": claims.as_dict()},
                    expire=record.expire,
                )
            )
            session.commit()
        return record

    def get(self, sid: str) -> Optional[SessionRecord]:
        with self.db.session_scope() as session:
            row = session.get(SessionRow, sid)
            if row is None:
                return None
            record = SessionRecord(
                sid=row.sid,
                claims=Claims.from_dict(row.sess["claims"]),
                expire=as_utc(row.expire),
            )
            if record.is_expired():
                session.delete(row)
                session.commit()
                return None
            return record

    def touch(self, sid: str, ttl_seconds: int) -> None:
        with self.db.session_scope() as session:
            row = session.get(SessionRow, sid)
            if row:
                row.expire = utcnow() + timedelta(seconds=ttl_seconds)
                session.commit()

    def delete(self, sid: str) -> None:
        with self.db.session_scope() as session:
            session.execute(delete(SessionRow).where(SessionRow.sid == sid))
            session.commit()

    def purge_expired(self) -> int:
        with self.db.session_scope() as session:
            expired = session.execute(
                select(SessionRow.sid).where(SessionRow.expire <= utcnow())
            ).scalars().all()
            if expired:
                session.execute(delete(SessionRow).where(SessionRow.sid.in_(expired)))
                session.commit()
            return len(expired)


def establish_session(
    sessions: SessionStore, db: DbClient, claims: Claims, ttl_seconds: int
) -> SessionRecord:
    """Record the user behind `claims` and open a session for them."""
    db.upsert_user(claims.to_upsert())
    return sessions.create(claims, ttl_seconds)
