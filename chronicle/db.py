"""
Database access for the relational store and an in-memory test implementation.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol, Union

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    func,
    text,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.elements import TextClause

from chronicle.errors import UpstreamError

logger = logging.getLogger(__name__)

PROFILE_ID = 1
# Largest value a signed 64-bit id column can hold.
MAX_HISTORY_ID = 2**63 - 1

_HISTORY_ID_PATTERN = re.compile(r"[0-9]+")


class DbClient(Protocol):
    """Interface for the three resources the API serves."""

    def create_history(self, title: str, message: str) -> "HistoryRecord":
        ...

    def list_history(self) -> list["HistoryRecord"]:
        ...

    def get_history(self, history_id: str) -> Optional["HistoryRecord"]:
        ...

    def get_profile(self) -> Optional["ProfileRecord"]:
        ...

    def update_profile(
        self, name: str, profile_picture_url: Optional[str] = None
    ) -> None:
        ...

    def create_feedback(self, comment: str, rating: int) -> "FeedbackRecord":
        ...

    def close(self) -> None:
        ...


@dataclass
class HistoryRecord:
    id: int
    title: str
    message: str
    created_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "created_at": self.created_at,
        }


@dataclass
class ProfileRecord:
    id: int
    name: str
    profile_picture_url: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "profile_picture_url": self.profile_picture_url,
        }


@dataclass
class FeedbackRecord:
    id: int
    comment: str
    rating: int

    def as_dict(self) -> dict:
        return {"id": self.id, "comment": self.comment, "rating": self.rating}


@dataclass
class QueryResult:
    """Rows for SELECT-like statements, insert/update metadata otherwise."""

    rows: list[dict] = field(default_factory=list)
    last_insert_id: Optional[int] = None
    rowcount: int = 0

    def first(self) -> Optional[dict]:
        return self.rows[0] if self.rows else None


def _parse_history_id(history_id: Union[str, int]) -> Optional[int]:
    value = str(history_id).strip()
    if not _HISTORY_ID_PATTERN.fullmatch(value):
        return None
    parsed = int(value)
    if parsed > MAX_HISTORY_ID:
        return None
    return parsed


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self, profile: Optional[ProfileRecord] = None):
        self._lock = threading.Lock()
        self.history: dict[int, HistoryRecord] = {}
        self.feedback: dict[int, FeedbackRecord] = {}
        self.profile: Optional[ProfileRecord] = profile
        self._next_history_id = 1
        self._next_feedback_id = 1

    def create_history(self, title: str, message: str) -> HistoryRecord:
        with self._lock:
            record = HistoryRecord(
                id=self._next_history_id,
                title=title,
                message=message,
                created_at=datetime.now(timezone.utc),
            )
            self.history[record.id] = record
            self._next_history_id += 1
            return record

    def list_history(self) -> list[HistoryRecord]:
        return sorted(
            self.history.values(),
            key=lambda record: (record.created_at, record.id),
            reverse=True,
        )

    def get_history(self, history_id: str) -> Optional[HistoryRecord]:
        parsed = _parse_history_id(history_id)
        if parsed is None:
            return None
        return self.history.get(parsed)

    def get_profile(self) -> Optional[ProfileRecord]:
        return self.profile

    def update_profile(
        self, name: str, profile_picture_url: Optional[str] = None
    ) -> None:
        # Mirrors "UPDATE ... WHERE id = 1": no row, nothing changes.
        with self._lock:
            if self.profile is None:
                return
            self.profile.name = name
            if profile_picture_url:
                self.profile.profile_picture_url = profile_picture_url

    def create_feedback(self, comment: str, rating: int) -> FeedbackRecord:
        with self._lock:
            record = FeedbackRecord(
                id=self._next_feedback_id, comment=comment, rating=rating
            )
            self.feedback[record.id] = record
            self._next_feedback_id += 1
            return record

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.history.clear()
            self.feedback.clear()
            self.profile = None
            self._next_history_id = 1
            self._next_feedback_id = 1

    def close(self) -> None:
        pass


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (MySQL in
    production, SQLite for tests).

    Every call to ``query`` checks a connection out of a bounded pool, runs a
    single statement in its own transaction and hands the connection back,
    also when the statement fails. Callers that exceed ``pool_size`` wait
    for a free connection without a timeout.
    """

    def __init__(self, database_url: str, *, pool_size: int = 10):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        url = make_url(database_url)
        connect_args: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False
        self.engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=None,
            pool_pre_ping=True,
            pool_recycle=1800,
            connect_args=connect_args,
        )

    def query(
        self,
        statement: Union[str, TextClause],
        params: Optional[Mapping[str, Any]] = None,
    ) -> QueryResult:
        if isinstance(statement, str):
            statement = text(statement)
        try:
            with self.engine.connect() as connection:
                result = connection.execute(statement, dict(params or {}))
                if result.returns_rows:
                    rows = [dict(row) for row in result.mappings()]
                    outcome = QueryResult(rows=rows, rowcount=len(rows))
                else:
                    outcome = QueryResult(
                        last_insert_id=result.lastrowid,
                        rowcount=result.rowcount,
                    )
                connection.commit()
                return outcome
        except SQLAlchemyError as exc:
            orig = getattr(exc, "orig", None)
            raise UpstreamError(str(orig) if orig is not None else str(exc)) from exc

    def create_schema(self) -> None:
        """Create the tables and seed the profile row if they are missing."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise UpstreamError(str(exc)) from exc
        existing = self.query(
            "SELECT id FROM profile WHERE id = :id", {"id": PROFILE_ID}
        )
        if not existing.rows:
            self.query(
                "INSERT INTO profile (id, name) VALUES (:id, :name)",
                {"id": PROFILE_ID, "name": ""},
            )
            logger.info("Seeded profile row %s", PROFILE_ID)

    @staticmethod
    def _to_history(row: dict) -> HistoryRecord:
        return HistoryRecord(
            id=row["id"],
            title=row["title"],
            message=row["message"],
            created_at=row.get("created_at"),
        )

    def create_history(self, title: str, message: str) -> HistoryRecord:
        result = self.query(
            "INSERT INTO history (title, message) VALUES (:title, :message)",
            {"title": title, "message": message},
        )
        return HistoryRecord(id=result.last_insert_id, title=title, message=message)

    def list_history(self) -> list[HistoryRecord]:
        result = self.query(
            text("SELECT * FROM history ORDER BY created_at DESC, id DESC").columns(
                created_at=DateTime
            )
        )
        return [self._to_history(row) for row in result.rows]

    def get_history(self, history_id: str) -> Optional[HistoryRecord]:
        parsed = _parse_history_id(history_id)
        if parsed is None:
            return None
        result = self.query(
            text("SELECT * FROM history WHERE id = :id").columns(
                created_at=DateTime
            ),
            {"id": parsed},
        )
        row = result.first()
        return self._to_history(row) if row else None

    def get_profile(self) -> Optional[ProfileRecord]:
        row = self.query("SELECT * FROM profile LIMIT 1").first()
        if not row:
            return None
        return ProfileRecord(
            id=row["id"],
            name=row["name"],
            profile_picture_url=row.get("profile_picture_url"),
        )

    def update_profile(
        self, name: str, profile_picture_url: Optional[str] = None
    ) -> None:
        if profile_picture_url:
            self.query(
                "UPDATE profile SET name = :name, profile_picture_url = :url "
                "WHERE id = 1",
                {"name": name, "url": profile_picture_url},
            )
        else:
            self.query("UPDATE profile SET name = :name WHERE id = 1", {"name": name})

    def create_feedback(self, comment: str, rating: int) -> FeedbackRecord:
        result = self.query(
            "INSERT INTO feedback (comment, rating) VALUES (:comment, :rating)",
            {"comment": comment, "rating": rating},
        )
        return FeedbackRecord(id=result.last_insert_id, comment=comment, rating=rating)

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class HistoryRow(Base):
    __tablename__ = "history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class ProfileRow(Base):
    __tablename__ = "profile"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    profile_picture_url = Column(String(1024), nullable=True)


class FeedbackRow(Base):
    __tablename__ = "feedback"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 4", name="ck_feedback_rating"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    comment = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
