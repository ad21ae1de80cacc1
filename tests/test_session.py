"""
Tests for session.py and sample_data.py.
"""

import pytest

from musematch.deck import DeckState
from musematch.errors import NoCurrentViewerError
from musematch.models import Role
from musematch.sample_data import SAMPLE_PROFILES, SAMPLE_PROJECTS, seed_sample_data
from musematch.session import Session, require_viewer


class TestRequireViewer:
    @pytest.mark.asyncio
    async def test_no_viewer_raises(self, store, quiet_logger):
        """Test that require_viewer raises and counts the rejection without a viewer."""
        with pytest.raises(NoCurrentViewerError):
            await require_viewer(store)
        assert quiet_logger.get_metrics()["rejections_by_type"] == {"NoCurrentViewerError": 1}

    @pytest.mark.asyncio
    async def test_viewer_returned(self, store, profile_factory):
        """Test that require_viewer returns the signed-in profile."""
        await store.save_profiles([profile_factory("u1", role=Role.MIXER)])
        await store.set_current_viewer("u1")

        viewer = await require_viewer(store)

        assert viewer.id == "u1"
        assert viewer.role is Role.MIXER


class TestSeed:
    @pytest.mark.asyncio
    async def test_seed_empty_directory(self, store):
        """Test that seeding an empty directory installs the sample data."""
        added = await seed_sample_data(store)

        assert added == (len(SAMPLE_PROFILES), len(SAMPLE_PROJECTS))
        assert [p.id for p in await store.list_profiles()] == [p.id for p in SAMPLE_PROFILES]
        assert len(await store.list_projects()) == len(SAMPLE_PROJECTS)

    @pytest.mark.asyncio
    async def test_seed_never_overwrites(self, store, profile_factory):
        """Test that seeding leaves an existing directory alone."""
        await store.save_profiles([profile_factory("mine")])

        assert await seed_sample_data(store) == (0, 0)
        assert [p.id for p in await store.list_profiles()] == ["mine"]


class TestSession:
    """Test a signed-in viewer going through discover, match and chat."""

    @pytest.mark.asyncio
    async def test_open_without_viewer(self, store):
        """Test that a session cannot be opened without a viewer."""
        with pytest.raises(NoCurrentViewerError):
            await Session.open(store)

    @pytest.mark.asyncio
    async def test_sample_viewer_flow(self, store, clock):
        """Test discovering, matching and messaging as a sample viewer."""
        await seed_sample_data(store)
        await store.set_current_viewer("user_2")
        session = await Session.open(store, clock=clock)

        deck = await session.deck()
        assert deck.state is DeckState.READY
        assert [e.profile.id for e in deck.queue] == ["user_5", "user_1", "user_3", "user_4"]

        match = await deck.decide("like")
        assert match.pair == {"user_2", "user_5"}

        await session.match_threads.send_message(match, "user_5", "user_2", "Loved your last single")
        [summary] = await session.match_threads.inbox("user_2")
        assert summary.other_user_id == "user_5"
        assert summary.unread_count == 1

        again = await session.deck()
        assert [e.profile.id for e in again.queue] == ["user_1", "user_3", "user_4"]
