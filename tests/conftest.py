"""
Pytest configuration and shared fixtures.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

from musematch.errors import StorageError
from musematch.logger import get_logger, reset_logger
from musematch.models import Profile, Role
from musematch.storage import JsonStore


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Route logs to a temp dir and start every test with fresh metrics."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


def make_profile(
    id: str,
    role: Role = Role.VOCALIST,
    genres=(),
    verified: bool = False,
    rating: float = 0.0,
    highlight_count: int = 0,
    onboarded: bool = True,
    name: str = "",
) -> Profile:
    return Profile(
        id=id,
        display_name=name or id.title(),
        role=role,
        genres=frozenset(genres),
        location="Somewhere",
        bio="",
        verified=verified,
        rating=rating,
        highlight_count=highlight_count,
        onboarded=onboarded,
    )


@pytest.fixture
def profile_factory():
    return make_profile


@pytest.fixture
def clock():
    """Clock that moves one second forward on every call."""
    state = {"now": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)}

    def tick() -> datetime:
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return tick


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data")


class FailingStore(JsonStore):
    """JSON store whose writes to the named collections always fail."""

    def __init__(self, data_dir: Path, failing: List[str]):
        super().__init__(data_dir)
        self.failing = set(failing)

    async def write_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        if name in self.failing:
            raise StorageError(f"disk full while writing {name}")
        await super().write_collection(name, records)


class GatedStore(JsonStore):
    """JSON store that holds writes to one collection until `release()`."""

    def __init__(self, data_dir: Path, gated: str):
        super().__init__(data_dir)
        self.gated = gated
        self.write_started = asyncio.Event()
        self.write_done = asyncio.Event()
        self._gate = asyncio.Event()

    def release(self):
        self._gate.set()

    async def write_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        if name != self.gated:
            await super().write_collection(name, records)
            return
        self.write_started.set()
        await self._gate.wait()
        await super().write_collection(name, records)
        self.write_done.set()


@pytest.fixture
def failing_store_factory(tmp_path):
    def build(*failing: str) -> FailingStore:
        return FailingStore(tmp_path / "data", list(failing))
    return build


@pytest.fixture
def gated_store_factory(tmp_path):
    def build(gated: str) -> GatedStore:
        return GatedStore(tmp_path / "data", gated)
    return build
