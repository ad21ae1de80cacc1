"""
Async storage contract and the JSON-file backend.

Every mutation is a full read-modify-write of one collection. `Store.mutate`
holds a per-collection lock for the whole cycle and is shielded from caller
cancellation, so a write that has started always finishes.
"""

import asyncio
import json
import os
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .errors import StorageError
from .logger import get_logger
from .models import DirectMessage, Match, Message, Profile, Project, find_by_id
from .schema import (
    validate_direct_message,
    validate_match,
    validate_message,
    validate_profile,
    validate_project,
)

PROFILES = "profiles"
PROJECTS = "projects"
MATCHES = "matches"
MESSAGES = "messages"
DIRECT_MESSAGES = "direct_messages"
SESSION = "session"

COLLECTIONS = (PROFILES, PROJECTS, MATCHES, MESSAGES, DIRECT_MESSAGES, SESSION)

_RECORD_TYPES = {
    PROFILES: (Profile, validate_profile),
    PROJECTS: (Project, validate_project),
    MATCHES: (Match, validate_match),
    MESSAGES: (Message, validate_message),
    DIRECT_MESSAGES: (DirectMessage, validate_direct_message),
}

T = TypeVar("T")
Change = Callable[[List[Any]], Tuple[Optional[List[Any]], T]]


class Store:
    """
    Base class for backing stores.

    Subclasses implement `read_collection` and `write_collection` over
    JSON-ready dicts; everything typed lives here.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def read_collection(self, name: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def write_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    # Typed reads

    async def load(self, name: str) -> List[Any]:
        """Read a collection as records, skipping entries that fail validation."""
        record_type, validate = _RECORD_TYPES[name]
        records = []
        for raw in await self._read(name):
            errors = validate(raw) if isinstance(raw, dict) else ["not an object"]
            if errors:
                get_logger().warning(
                    "Skipping malformed record",
                    collection=name,
                    record_id=raw.get("id") if isinstance(raw, dict) else None,
                    errors=errors,
                )
                continue
            records.append(record_type.from_dict(raw))
        return records

    async def save(self, name: str, records: List[Any]) -> None:
        await self._write(name, [r.to_dict() for r in records])

    async def mutate(self, name: str, change: Change) -> T:
        """
        Run one read-modify-write cycle on a collection.

        Args:
            name: Collection name
            change: Function taking the current records and returning
                (new_records or None for no write, result)

        Returns:
            The result produced by `change`, once any write has succeeded
        """
        return await asyncio.shield(self._mutate(name, change))

    async def _mutate(self, name: str, change: Change) -> T:
        async with self._locks[name]:
            current = await self.load(name)
            updated, result = change(current)
            if updated is not None:
                await self.save(name, updated)
            return result

    async def _read(self, name: str) -> List[Dict[str, Any]]:
        try:
            return await self.read_collection(name)
        except StorageError:
            get_logger().record_storage_failure()
            raise

    async def _write(self, name: str, records: List[Dict[str, Any]]) -> None:
        try:
            await self.write_collection(name, records)
        except StorageError as e:
            get_logger().record_storage_failure()
            get_logger().error("Storage write failed", collection=name, error=str(e))
            raise

    # Viewer session

    async def get_current_viewer(self) -> Optional[Profile]:
        session = await self._read(SESSION)
        if session and not isinstance(session[0], dict):
            get_logger().record_storage_failure()
            raise StorageError(f"Corrupt session record: {session[0]!r}")
        viewer_id = session[0].get("viewer_id") if session else None
        if not viewer_id:
            return None
        return find_by_id(await self.list_profiles(), viewer_id)

    async def set_current_viewer(self, viewer_id: Optional[str]) -> None:
        async with self._locks[SESSION]:
            await self._write(SESSION, [{"viewer_id": viewer_id}] if viewer_id else [])

    # Directory

    async def list_profiles(self) -> List[Profile]:
        return await self.load(PROFILES)

    async def save_profiles(self, profiles: List[Profile]) -> None:
        async with self._locks[PROFILES]:
            await self.save(PROFILES, profiles)

    async def list_projects(self) -> List[Project]:
        return await self.load(PROJECTS)

    async def save_projects(self, projects: List[Project]) -> None:
        async with self._locks[PROJECTS]:
            await self.save(PROJECTS, projects)

    # Matches

    async def list_matches(self) -> List[Match]:
        return await self.load(MATCHES)

    async def append_match(self, match: Match) -> None:
        await self.mutate(MATCHES, lambda current: (current + [match], None))

    async def persist_matches(self, matches: List[Match]) -> None:
        await self.mutate(MATCHES, lambda current: (list(matches), None))

    # Messages

    async def list_messages(self, match_id: Optional[str] = None) -> List[Message]:
        messages = await self.load(MESSAGES)
        if match_id is None:
            return messages
        return [m for m in messages if m.match_id == match_id]

    async def append_message(self, message: Message) -> None:
        await self.mutate(MESSAGES, lambda current: (current + [message], None))

    async def persist_messages(self, messages: List[Message]) -> None:
        await self.mutate(MESSAGES, lambda current: (list(messages), None))

    async def list_direct_messages(self, project_id: Optional[str] = None) -> List[DirectMessage]:
        messages = await self.load(DIRECT_MESSAGES)
        if project_id is None:
            return messages
        return [m for m in messages if m.project_id == project_id]

    async def append_direct_message(self, message: DirectMessage) -> None:
        await self.mutate(DIRECT_MESSAGES, lambda current: (current + [message], None))

    async def persist_direct_messages(self, messages: List[DirectMessage]) -> None:
        await self.mutate(DIRECT_MESSAGES, lambda current: (list(messages), None))


def load_collection_file(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
    except OSError as e:
        raise StorageError(f"Cannot read {path}: {e}") from e
    if not content:
        return []
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageError(f"Corrupt collection file {path}: {e}") from e
    if not isinstance(data, list):
        raise StorageError(f"Collection file {path} does not hold a list")
    return data


def save_collection_file(path: Path, records: List[Dict[str, Any]]) -> None:
    """Write a collection atomically: temp file in the same directory, then replace."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except (OSError, TypeError, ValueError) as e:
        raise StorageError(f"Cannot write {path}: {e}") from e


class JsonStore(Store):
    """One JSON file per collection under `data_dir`."""

    def __init__(self, data_dir: Path):
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    async def read_collection(self, name: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(load_collection_file, self.path_for(name))

    async def write_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        await asyncio.to_thread(save_collection_file, self.path_for(name), records)
