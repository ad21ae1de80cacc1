"""
Database schema and the SQLite storage backend.

Uses SQLite with SQLAlchemy. Each collection is a table; a write replaces
the table contents in one transaction, so a failed write leaves the previous
collection intact. `seq` keeps insertion order (directory order for
profiles), which the deck relies on for stable tie-breaking.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .errors import StorageError
from .models import parse_timestamp
from .storage import DIRECT_MESSAGES, MATCHES, MESSAGES, PROFILES, PROJECTS, SESSION, Store

Base = declarative_base()


def _to_db_time(value: Any) -> datetime:
    return parse_timestamp(value).astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> str:
    return parse_timestamp(value).isoformat()


class ProfileRow(Base):
    """Musician profile (read-only to the matching core)."""

    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    display_name = Column(String, nullable=False)
    role = Column(String, nullable=False)
    genres = Column(JSON, nullable=False, default=list)
    location = Column(String, nullable=False, default="")
    bio = Column(Text, nullable=False, default="")
    verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=0.0)
    highlight_count = Column(Integer, nullable=False, default=0)
    onboarded = Column(Boolean, nullable=False, default=False)

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "ProfileRow":
        return cls(
            id=data["id"],
            seq=seq,
            display_name=data["display_name"],
            role=data["role"],
            genres=list(data.get("genres", [])),
            location=data.get("location", ""),
            bio=data.get("bio", ""),
            verified=data.get("verified", False),
            rating=data.get("rating", 0.0),
            highlight_count=data.get("highlight_count", 0),
            onboarded=data.get("onboarded", False),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "role": self.role,
            "genres": list(self.genres or []),
            "location": self.location,
            "bio": self.bio,
            "verified": self.verified,
            "rating": self.rating,
            "highlight_count": self.highlight_count,
            "onboarded": self.onboarded,
        }


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    title = Column(String, nullable=False, default="")
    author_id = Column(String, nullable=False, default="")
    genres = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="open")

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "ProjectRow":
        return cls(
            id=data["id"],
            seq=seq,
            title=data.get("title", ""),
            author_id=data.get("author_id", ""),
            genres=list(data.get("genres", [])),
            status=data.get("status", "open"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author_id": self.author_id,
            "genres": list(self.genres or []),
            "status": self.status,
        }


class MatchRow(Base):
    __tablename__ = "matches"

    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    user_a = Column(String, nullable=False, index=True)
    user_b = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    read = Column(Boolean, nullable=False, default=False)

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "MatchRow":
        return cls(
            id=data["id"],
            seq=seq,
            user_a=data["user_a"],
            user_b=data["user_b"],
            created_at=_to_db_time(data["created_at"]),
            read=data.get("read", False),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_a": self.user_a,
            "user_b": self.user_b,
            "created_at": _from_db_time(self.created_at),
            "read": self.read,
        }


class MessageRow(Base):
    """Message in a match thread."""

    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    match_id = Column(String, nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    receiver_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime, nullable=False)
    read = Column(Boolean, nullable=False, default=False)

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "MessageRow":
        return cls(
            id=data["id"],
            seq=seq,
            match_id=data["match_id"],
            sender_id=data["sender_id"],
            receiver_id=data["receiver_id"],
            content=data["content"],
            sent_at=_to_db_time(data["sent_at"]),
            read=data.get("read", False),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "sent_at": _from_db_time(self.sent_at),
            "read": self.read,
        }


class DirectMessageRow(Base):
    """Message in a project thread."""

    __tablename__ = "direct_messages"

    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    project_id = Column(String, nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    receiver_id = Column(String, nullable=False)
    sender_name = Column(String, nullable=False, default="")
    receiver_name = Column(String, nullable=False, default="")
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime, nullable=False)
    read = Column(Boolean, nullable=False, default=False)

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "DirectMessageRow":
        return cls(
            id=data["id"],
            seq=seq,
            project_id=data["project_id"],
            sender_id=data["sender_id"],
            receiver_id=data["receiver_id"],
            sender_name=data.get("sender_name", ""),
            receiver_name=data.get("receiver_name", ""),
            content=data["content"],
            sent_at=_to_db_time(data["sent_at"]),
            read=data.get("read", False),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "sender_name": self.sender_name,
            "receiver_name": self.receiver_name,
            "content": self.content,
            "sent_at": _from_db_time(self.sent_at),
            "read": self.read,
        }


class SessionRow(Base):
    __tablename__ = "session"

    id = Column(Integer, primary_key=True)
    seq = Column(Integer, nullable=False, default=0)
    viewer_id = Column(String, nullable=True)

    @classmethod
    def from_record(cls, seq: int, data: Dict[str, Any]) -> "SessionRow":
        return cls(id=seq + 1, seq=seq, viewer_id=data.get("viewer_id"))

    def to_record(self) -> Dict[str, Any]:
        return {"viewer_id": self.viewer_id}


ROW_TYPES = {
    PROFILES: ProfileRow,
    PROJECTS: ProjectRow,
    MATCHES: MatchRow,
    MESSAGES: MessageRow,
    DIRECT_MESSAGES: DirectMessageRow,
    SESSION: SessionRow,
}


def _engine_for(db_path: Path):
    return create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = _engine_for(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


class SqlStore(Store):
    """Store backed by a SQLite database file."""

    def __init__(self, db_path: Path):
        super().__init__()
        self.db_path = Path(db_path)
        init_database(self.db_path)
        self._engine = _engine_for(self.db_path)
        self._sessionmaker = sessionmaker(bind=self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def get_session(self):
        """
        Get a database session on this store's engine.

        Returns:
            SQLAlchemy session; the caller closes it
        """
        return self._sessionmaker()

    def _read_rows(self, name: str) -> List[Dict[str, Any]]:
        row_type = ROW_TYPES[name]
        session = self.get_session()
        try:
            return [row.to_record() for row in session.query(row_type).order_by(row_type.seq)]
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot read {name} from {self.db_path}: {e}") from e
        finally:
            session.close()

    def _replace_rows(self, name: str, records: List[Dict[str, Any]]) -> None:
        row_type = ROW_TYPES[name]
        session = self.get_session()
        try:
            session.query(row_type).delete()
            session.add_all(row_type.from_record(i, r) for i, r in enumerate(records))
            session.commit()
        except (SQLAlchemyError, KeyError, ValueError) as e:
            session.rollback()
            raise StorageError(f"Cannot write {name} to {self.db_path}: {e}") from e
        finally:
            session.close()

    async def read_collection(self, name: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read_rows, name)

    async def write_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        await asyncio.to_thread(self._replace_rows, name, records)
