"""
Messaging.

Two thread types share one contract:

- match threads, keyed by the Match id (`MatchThreadKey`)
- project threads, keyed by the project and the sorted user pair
  (`DirectThreadKey`), so both participants read the same thread

Threads are append-only. Messages are returned in ascending `sent_at` order;
only the receiver flips `read`. Every mutation is a full read-modify-write
of the message collection and the created record is returned only after the
write succeeded.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .concurrency import SerialGuard
from .errors import EmptyMessageError, InvalidThreadKeyError, MessageTooLongError, ValidationError
from .ledger import MatchLedger
from .logger import get_logger
from .models import (
    DirectMessage,
    DirectThreadKey,
    Match,
    MatchThreadKey,
    Message,
    find_by_id,
    generate_id,
    index_by_id,
    utcnow,
)
from .storage import DIRECT_MESSAGES, MESSAGES, Store

MAX_MESSAGE_LENGTH = 500


def validate_content(content: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Return the trimmed message body.

    Raises:
        EmptyMessageError: If nothing but whitespace is left
        MessageTooLongError: If the trimmed body exceeds `limit`
    """
    text = (content or "").strip()
    if not text:
        raise EmptyMessageError("Message cannot be empty")
    if len(text) > limit:
        raise MessageTooLongError(len(text), limit)
    return text


def chronological(messages: List[Any]) -> List[Any]:
    # sorted() is stable: same-instant messages keep append order
    return sorted(messages, key=lambda m: m.sent_at)


@dataclass
class MatchSummary:
    match: Match
    other_user_id: str
    last_message: Optional[Message]
    unread_count: int


@dataclass
class Conversation:
    project_id: str
    other_user_id: str
    other_user_name: str
    last_message: DirectMessage
    unread_count: int


class _ThreadBook:
    """Shared send/list/read logic over one message collection."""

    collection = ""
    thread_type = ""

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock
        self._guard = SerialGuard(f"{self.thread_type} thread")

    # Hooks

    async def _check_key(self, key) -> Any:
        raise NotImplementedError

    def _check_participants(self, key, context, sender_id: str, receiver_id: str) -> None:
        raise NotImplementedError

    def _in_thread(self, message, key) -> bool:
        raise NotImplementedError

    async def _build(self, key, context, sender_id: str, receiver_id: str, content: str):
        raise NotImplementedError

    async def _load_all(self) -> List[Any]:
        raise NotImplementedError

    # Contract

    async def send_message(self, key, sender_id: str, receiver_id: str, content: str):
        """
        Validate, append and persist a message.

        Raises:
            EmptyMessageError: If the content is blank
            MessageTooLongError: If the content exceeds MAX_MESSAGE_LENGTH
            InvalidThreadKeyError: If the key or participants do not match a thread
            OperationInFlightError: If a send on the same thread is still pending
            StorageError: If the write fails; nothing is appended then
        """
        try:
            text = validate_content(content)
        except ValidationError as e:
            get_logger().record_rejection(type(e).__name__)
            raise
        key = self._normalize(key)
        async with self._guard.hold((key, sender_id)):
            context = await self._check_key(key)
            self._check_participants(key, context, sender_id, receiver_id)
            message = await self._build(key, context, sender_id, receiver_id, text)
            await self._store.mutate(self.collection, lambda current: (current + [message], None))
        get_logger().record_message(self.thread_type)
        get_logger().info(
            "Message sent",
            thread=str(key),
            message_id=message.id,
            sender_id=sender_id,
            length=len(text),
        )
        return message

    async def thread_messages(self, key) -> List[Any]:
        """All messages of the thread, oldest first."""
        key = self._normalize(key)
        await self._check_key(key)
        return chronological([m for m in await self._load_all() if self._in_thread(m, key)])

    async def mark_thread_read(self, key, reader_id: str) -> int:
        """
        Mark every unread message addressed to `reader_id` as read.

        Returns:
            Number of messages flipped (0 is not an error)
        """
        key = self._normalize(key)
        await self._check_key(key)

        def change(current):
            flipped = 0
            for m in current:
                if self._in_thread(m, key) and m.receiver_id == reader_id and not m.read:
                    m.read = True
                    flipped += 1
            return (current if flipped else None), flipped

        flipped = await self._store.mutate(self.collection, change)
        if flipped:
            get_logger().record_thread_read()
            get_logger().debug("Thread marked read", thread=str(key), reader_id=reader_id, flipped=flipped)
        return flipped

    async def unread_count(self, key, viewer_id: str) -> int:
        key = self._normalize(key)
        await self._check_key(key)
        return sum(
            1 for m in await self._load_all()
            if self._in_thread(m, key) and m.receiver_id == viewer_id and not m.read
        )

    def _normalize(self, key):
        return key


class MatchThreads(_ThreadBook):
    """Threads scoped to a match."""

    collection = MESSAGES
    thread_type = "match"

    def __init__(self, store: Store, ledger: MatchLedger, clock: Callable[[], datetime] = utcnow):
        super().__init__(store, clock)
        self._ledger = ledger

    def _normalize(self, key) -> MatchThreadKey:
        if isinstance(key, Match):
            return MatchThreadKey(key.id)
        if isinstance(key, str):
            return MatchThreadKey(key)
        if not isinstance(key, MatchThreadKey):
            raise InvalidThreadKeyError(f"Not a match thread key: {key!r}")
        return key

    async def _check_key(self, key: MatchThreadKey) -> Match:
        if not key.match_id:
            raise InvalidThreadKeyError("Match thread key has no match id")
        match = await self._ledger.get(key.match_id)
        if match is None:
            raise InvalidThreadKeyError(f"Unknown match: {key.match_id}")
        return match

    def _check_participants(self, key, match: Match, sender_id: str, receiver_id: str) -> None:
        if sender_id == receiver_id or {sender_id, receiver_id} != match.pair:
            raise InvalidThreadKeyError(
                f"{sender_id} and {receiver_id} are not the participants of match {match.id}"
            )

    def _in_thread(self, message: Message, key: MatchThreadKey) -> bool:
        return message.match_id == key.match_id

    async def _build(self, key, match, sender_id, receiver_id, content) -> Message:
        return Message(
            id=generate_id(),
            match_id=key.match_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            sent_at=self._clock(),
            read=False,
        )

    async def _load_all(self) -> List[Message]:
        return await self._store.list_messages()

    async def inbox(self, viewer_id: str) -> List[MatchSummary]:
        """One summary per match of the viewer, newest match first."""
        matches = await self._ledger.matches_for(viewer_id)
        by_match: Dict[str, List[Message]] = {}
        for m in await self._store.list_messages():
            by_match.setdefault(m.match_id, []).append(m)

        summaries = []
        for match in matches:
            thread = chronological(by_match.get(match.id, []))
            summaries.append(MatchSummary(
                match=match,
                other_user_id=match.other(viewer_id),
                last_message=thread[-1] if thread else None,
                unread_count=sum(1 for m in thread if m.receiver_id == viewer_id and not m.read),
            ))
        return sorted(summaries, key=lambda s: s.match.created_at, reverse=True)


class DirectThreads(_ThreadBook):
    """Threads between two users about a project."""

    collection = DIRECT_MESSAGES
    thread_type = "direct"

    def _normalize(self, key) -> DirectThreadKey:
        if isinstance(key, tuple) and len(key) == 3:
            key = DirectThreadKey.for_pair(*key)
        if not isinstance(key, DirectThreadKey):
            raise InvalidThreadKeyError(f"Not a project thread key: {key!r}")
        if not (key.project_id and key.user_a and key.user_b) or key.user_a == key.user_b:
            raise InvalidThreadKeyError(f"Invalid project thread key: {key}")
        return DirectThreadKey.for_pair(key.project_id, key.user_a, key.user_b)

    async def _check_key(self, key: DirectThreadKey):
        project = find_by_id(await self._store.list_projects(), key.project_id)
        if project is None:
            raise InvalidThreadKeyError(f"Unknown project: {key.project_id}")
        return project

    def _check_participants(self, key: DirectThreadKey, project, sender_id, receiver_id) -> None:
        if sender_id == receiver_id or {sender_id, receiver_id} != set(key.participants):
            raise InvalidThreadKeyError(f"{sender_id} and {receiver_id} are not the participants of {key}")

    def _in_thread(self, message: DirectMessage, key: DirectThreadKey) -> bool:
        return message.project_id == key.project_id and message.pair == key.participants

    async def _build(self, key, project, sender_id, receiver_id, content) -> DirectMessage:
        names = _names(await self._store.list_profiles())
        return DirectMessage(
            id=generate_id(),
            project_id=key.project_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            sender_name=names.get(sender_id, sender_id),
            receiver_name=names.get(receiver_id, receiver_id),
            content=content,
            sent_at=self._clock(),
            read=False,
        )

    async def _load_all(self) -> List[DirectMessage]:
        return await self._store.list_direct_messages()

    async def conversations(self, viewer_id: str) -> List[Conversation]:
        """The viewer's project threads, most recent activity first."""
        threads: Dict[Tuple[str, str], List[DirectMessage]] = {}
        for m in await self._store.list_direct_messages():
            if viewer_id not in (m.sender_id, m.receiver_id):
                continue
            other = m.receiver_id if m.sender_id == viewer_id else m.sender_id
            threads.setdefault((m.project_id, other), []).append(m)

        result = []
        for (project_id, other), messages in threads.items():
            last = chronological(messages)[-1]
            result.append(Conversation(
                project_id=project_id,
                other_user_id=other,
                other_user_name=last.receiver_name if last.sender_id == viewer_id else last.sender_name,
                last_message=last,
                unread_count=sum(1 for m in messages if m.receiver_id == viewer_id and not m.read),
            ))
        return sorted(result, key=lambda c: c.last_message.sent_at, reverse=True)


def _names(profiles) -> Dict[str, str]:
    return {pid: p.display_name for pid, p in index_by_id(profiles).items()}
