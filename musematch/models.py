"""
Record types shared by the scorer, deck, ledger and messaging layers.

Profiles and projects are owned by outside collaborators and are read-only
here. Matches, messages and direct messages are created by this package.
Every record converts to and from a JSON-ready dict; `from_dict` also accepts
the camelCase shape written by the mobile app.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple


class Role(str, Enum):
    PRODUCER = "producer"
    VOCALIST = "vocalist"
    SONGWRITER = "songwriter"
    INSTRUMENTALIST = "instrumentalist"
    MIXER = "mixer"
    A_AND_R = "a&r"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        if isinstance(value, Role):
            return value
        text = str(value or "").strip().lower()
        if text in ("a and r", "a&r", "anr"):
            return cls.A_AND_R
        return cls(text)


def generate_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Profile:
    """A musician's public profile."""
    id: str
    display_name: str
    role: Role
    genres: FrozenSet[str] = field(default_factory=frozenset)
    location: str = ""
    bio: str = ""
    verified: bool = False
    rating: float = 0.0
    highlight_count: int = 0
    onboarded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "role": self.role.value,
            "genres": sorted(self.genres),
            "location": self.location,
            "bio": self.bio,
            "verified": self.verified,
            "rating": self.rating,
            "highlight_count": self.highlight_count,
            "onboarded": self.onboarded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        highlights = _first(data, "highlight_count", "highlightCount", "highlights", default=0)
        if isinstance(highlights, (list, tuple)):
            highlights = len(highlights)
        return cls(
            id=str(data["id"]),
            display_name=_first(data, "display_name", "displayName", "name", default=""),
            role=Role.parse(data.get("role")),
            genres=frozenset(g for g in data.get("genres") or [] if g),
            location=data.get("location") or "",
            bio=data.get("bio") or "",
            verified=bool(data.get("verified", False)),
            rating=float(data.get("rating") or 0.0),
            highlight_count=int(highlights or 0),
            onboarded=bool(_first(data, "onboarded", "isOnboarded", default=False)),
        )


@dataclass(frozen=True)
class CandidateEntry:
    """A profile in a viewer's deck together with its compatibility score."""
    profile: Profile
    score: float


@dataclass
class Match:
    id: str
    user_a: str
    user_b: str
    created_at: datetime
    read: bool = False

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.user_a, self.user_b))

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_a, self.user_b)

    def other(self, user_id: str) -> str:
        """Return the participant that is not `user_id`."""
        if user_id == self.user_a:
            return self.user_b
        if user_id == self.user_b:
            return self.user_a
        raise ValueError(f"User {user_id} is not part of match {self.id}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_a": self.user_a,
            "user_b": self.user_b,
            "created_at": self.created_at.isoformat(),
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        return cls(
            id=str(data["id"]),
            user_a=str(_first(data, "user_a", "userId")),
            user_b=str(_first(data, "user_b", "matchedUserId")),
            created_at=parse_timestamp(_first(data, "created_at", "matchedAt", "createdAt")),
            read=bool(_first(data, "read", "isRead", default=False)),
        )


@dataclass
class Message:
    """A message in a match-scoped thread."""
    id: str
    match_id: str
    sender_id: str
    receiver_id: str
    content: str
    sent_at: datetime
    read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "sent_at": self.sent_at.isoformat(),
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=str(data["id"]),
            match_id=str(_first(data, "match_id", "matchId")),
            sender_id=str(_first(data, "sender_id", "senderId")),
            receiver_id=str(_first(data, "receiver_id", "receiverId")),
            content=data.get("content", ""),
            sent_at=parse_timestamp(_first(data, "sent_at", "sentAt")),
            read=bool(_first(data, "read", "isRead", default=False)),
        )


@dataclass
class DirectMessage:
    """A message between two users about a project."""
    id: str
    project_id: str
    sender_id: str
    receiver_id: str
    sender_name: str
    receiver_name: str
    content: str
    sent_at: datetime
    read: bool = False

    @property
    def pair(self) -> Tuple[str, str]:
        return ordered_pair(self.sender_id, self.receiver_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "sender_name": self.sender_name,
            "receiver_name": self.receiver_name,
            "content": self.content,
            "sent_at": self.sent_at.isoformat(),
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectMessage":
        return cls(
            id=str(data["id"]),
            project_id=str(_first(data, "project_id", "projectId")),
            sender_id=str(_first(data, "sender_id", "senderId")),
            receiver_id=str(_first(data, "receiver_id", "receiverId")),
            sender_name=_first(data, "sender_name", "senderName", default=""),
            receiver_name=_first(data, "receiver_name", "receiverName", default=""),
            content=data.get("content", ""),
            sent_at=parse_timestamp(_first(data, "sent_at", "sentAt")),
            read=bool(_first(data, "read", "isRead", default=False)),
        )


@dataclass(frozen=True)
class Project:
    """A collaboration listing. Only the fields messaging needs are kept."""
    id: str
    title: str
    author_id: str
    genres: FrozenSet[str] = field(default_factory=frozenset)
    status: str = "open"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author_id": self.author_id,
            "genres": sorted(self.genres),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            author_id=str(_first(data, "author_id", "authorId", "createdBy", default="")),
            genres=frozenset(data.get("genres") or []),
            status=data.get("status", "open"),
        )


def ordered_pair(x: str, y: str) -> Tuple[str, str]:
    a, b = sorted((x, y))
    return a, b


@dataclass(frozen=True)
class MatchThreadKey:
    match_id: str

    def __str__(self) -> str:
        return f"match:{self.match_id}"


@dataclass(frozen=True)
class DirectThreadKey:
    """Project thread between two users; the pair is always stored sorted."""
    project_id: str
    user_a: str
    user_b: str

    @classmethod
    def for_pair(cls, project_id: str, x: str, y: str) -> "DirectThreadKey":
        a, b = ordered_pair(x, y)
        return cls(project_id=project_id, user_a=a, user_b=b)

    @property
    def participants(self) -> Tuple[str, str]:
        return self.user_a, self.user_b

    def __str__(self) -> str:
        return f"project:{self.project_id}:{self.user_a}:{self.user_b}"


def index_by_id(records: Iterable[Any]) -> Dict[str, Any]:
    return {r.id: r for r in records}


def find_by_id(records: Iterable[Any], record_id: str) -> Optional[Any]:
    for r in records:
        if r.id == record_id:
            return r
    return None
