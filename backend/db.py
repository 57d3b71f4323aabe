"""
Database abstraction for SQL databases and an in-memory test implementation.
"""

from __future__ import annotations

import dataclasses
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy import Column, DateTime, String, Text, create_engine, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


Clock = Callable[[], datetime]


class DuplicateKeyError(Exception):
    """Raised when a unique field (the username) is already taken."""


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, username: str, password_hash: str) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_username(self, username: str) -> Optional["UserRecord"]:
        ...

    def create_entry(
        self,
        *,
        kind: str,
        title: Optional[str],
        body: str,
        owner_id: str,
        owner_name: str,
    ) -> "EntryRecord":
        ...

    def get_entry(self, entry_id: str) -> Optional["EntryRecord"]:
        ...

    def save_entry(self, entry: "EntryRecord") -> "EntryRecord":
        ...

    def delete_entry(self, entry_id: str) -> bool:
        ...

    def list_entries(
        self,
        *,
        kind: Optional[str] = None,
        query: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list["EntryRecord"]:
        ...

    def save_image(self, mime: str, data: str) -> "ImageRecord":
        ...

    def get_image(self, image_id: str) -> Optional["ImageRecord"]:
        ...


@dataclass
class UserRecord:
    id: str
    username: str
    password_hash: str
    created_at: datetime


@dataclass
class EntryRecord:
    id: str
    kind: str
    title: Optional[str]
    body: str
    owner_id: str
    owner_name: str
    created_at: datetime
    updated_at: datetime


@dataclass
class ImageRecord:
    id: str
    mime: str
    data: str
    created_at: datetime


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock
        self.users: Dict[str, UserRecord] = {}
        self.entries: Dict[str, EntryRecord] = {}
        self.images: Dict[str, ImageRecord] = {}

    def create_user(self, username: str, password_hash: str) -> UserRecord:
        if self.get_user_by_username(username):
            raise DuplicateKeyError(username)
        record = UserRecord(
            id=_new_id(),
            username=username,
            password_hash=password_hash,
            created_at=self.clock(),
        )
        self.users[record.id] = record
        return dataclasses.replace(record)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        return dataclasses.replace(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.username == username:
                return dataclasses.replace(user)
        return None

    def create_entry(
        self,
        *,
        kind: str,
        title: Optional[str],
        body: str,
        owner_id: str,
        owner_name: str,
    ) -> EntryRecord:
        now = self.clock()
        record = EntryRecord(
            id=_new_id(),
            kind=kind,
            title=title,
            body=body,
            owner_id=owner_id,
            owner_name=owner_name,
            created_at=now,
            updated_at=now,
        )
        self.entries[record.id] = record
        return dataclasses.replace(record)

    def get_entry(self, entry_id: str) -> Optional[EntryRecord]:
        entry = self.entries.get(entry_id)
        return dataclasses.replace(entry) if entry else None

    def save_entry(self, entry: EntryRecord) -> EntryRecord:
        stored = dataclasses.replace(entry, updated_at=self.clock())
        self.entries[stored.id] = stored
        return dataclasses.replace(stored)

    def delete_entry(self, entry_id: str) -> bool:
        return self.entries.pop(entry_id, None) is not None

    def list_entries(
        self,
        *,
        kind: Optional[str] = None,
        query: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[EntryRecord]:
        pattern = re.compile(re.escape(query), re.IGNORECASE) if query else None
        matches = []
        for entry in self.entries.values():
            if kind and entry.kind != kind:
                continue
            if pattern and not (
                pattern.search(entry.title or "") or pattern.search(entry.body)
            ):
                continue
            matches.append(entry)
        matches.sort(key=lambda e: e.created_at, reverse=True)
        return [dataclasses.replace(e) for e in matches[offset : offset + limit]]

    def save_image(self, mime: str, data: str) -> ImageRecord:
        record = ImageRecord(id=_new_id(), mime=mime, data=data, created_at=self.clock())
        self.images[record.id] = record
        return record

    def get_image(self, image_id: str) -> Optional[ImageRecord]:
        return self.images.get(image_id)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Search uses ``ILIKE``, so case folding follows the database: Postgres folds
    Unicode, while SQLite only folds ASCII letters ("CAFÉ" does not match
    "café"). ``InMemoryDbClient`` folds Unicode.
    """

    def __init__(self, database_url: str, clock: Clock = utc_now):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.clock = clock
        engine_kwargs = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # Share the single in-memory database across sessions.
            engine_kwargs.update(
                poolclass=StaticPool, connect_args={"check_same_thread": False}
            )
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            username=row.username,
            password_hash=row.password_hash,
            created_at=_as_utc(row.created_at),
        )

    def _to_entry_record(self, row: "EntryRow") -> EntryRecord:
        return EntryRecord(
            id=row.id,
            kind=row.kind,
            title=row.title,
            body=row.body,
            owner_id=row.owner_id,
            owner_name=row.owner_name,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _to_image_record(self, row: "ImageRow") -> ImageRecord:
        return ImageRecord(
            id=row.id, mime=row.mime, data=row.data, created_at=_as_utc(row.created_at)
        )

    def create_user(self, username: str, password_hash: str) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                id=_new_id(),
                username=username,
                password_hash=password_hash,
                created_at=self.clock(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(username) from exc
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.username == username)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def create_entry(
        self,
        *,
        kind: str,
        title: Optional[str],
        body: str,
        owner_id: str,
        owner_name: str,
    ) -> EntryRecord:
        now = self.clock()
        with self.Session() as session:
            row = EntryRow(
                id=_new_id(),
                kind=kind,
                title=title,
                body=body,
                owner_id=owner_id,
                owner_name=owner_name,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return self._to_entry_record(row)

    def get_entry(self, entry_id: str) -> Optional[EntryRecord]:
        with self.Session() as session:
            row = session.get(EntryRow, entry_id)
            return self._to_entry_record(row) if row else None

    def save_entry(self, entry: EntryRecord) -> EntryRecord:
        with self.Session() as session:
            row = session.get(EntryRow, entry.id)
            if row is None:
                raise KeyError(entry.id)
            row.title = entry.title
            row.body = entry.body
            row.updated_at = self.clock()
            session.commit()
            return self._to_entry_record(row)

    def delete_entry(self, entry_id: str) -> bool:
        with self.Session() as session:
            row = session.get(EntryRow, entry_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def list_entries(
        self,
        *,
        kind: Optional[str] = None,
        query: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[EntryRecord]:
        stmt = select(EntryRow)
        if kind:
            stmt = stmt.where(EntryRow.kind == kind)
        if query:
            pattern = _like_pattern(query)
            stmt = stmt.where(
                or_(
                    EntryRow.title.ilike(pattern, escape="\\"),
                    EntryRow.body.ilike(pattern, escape="\\"),
                )
            )
        stmt = stmt.order_by(EntryRow.created_at.desc()).offset(offset).limit(limit)
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_entry_record(row) for row in rows]

    def save_image(self, mime: str, data: str) -> ImageRecord:
        with self.Session() as session:
            row = ImageRow(id=_new_id(), mime=mime, data=data, created_at=self.clock())
            session.add(row)
            session.commit()
            return self._to_image_record(row)

    def get_image(self, image_id: str) -> Optional[ImageRecord]:
        with self.Session() as session:
            row = session.get(ImageRow, image_id)
            return self._to_image_record(row) if row else None


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class EntryRow(Base):
    __tablename__ = "entries"

    id = Column(String, primary_key=True)
    kind = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    body = Column(Text, nullable=False)
    owner_id = Column(String, nullable=False, index=True)
    owner_name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ImageRow(Base):
    __tablename__ = "images"

    id = Column(String, primary_key=True)
    mime = Column(String, nullable=False)
    data = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
