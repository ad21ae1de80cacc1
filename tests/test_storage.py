"""
Tests for storage.py - JSON collection files and the typed store API.
"""

import json

import pytest

from musematch.errors import StorageError
from musematch.models import DirectMessage, Match, Message, parse_timestamp
from musematch.storage import JsonStore, load_collection_file, save_collection_file


class TestCollectionFiles:
    """Test raw file helpers."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test that a missing collection file reads as empty."""
        assert load_collection_file(tmp_path / "nope.json") == []

    def test_blank_file_is_empty(self, tmp_path):
        """Test that a blank collection file reads as empty."""
        path = tmp_path / "matches.json"
        path.write_text("  \n")
        assert load_collection_file(path) == []

    def test_corrupt_file_raises(self, tmp_path):
        """Test that invalid JSON raises StorageError."""
        path = tmp_path / "matches.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            load_collection_file(path)

    def test_non_list_raises(self, tmp_path):
        """Test that a file not holding a list raises StorageError."""
        path = tmp_path / "matches.json"
        path.write_text(json.dumps({"roles": {}}))
        with pytest.raises(StorageError):
            load_collection_file(path)

    def test_save_creates_parent_and_leaves_no_temp_files(self, tmp_path):
        """Test that saving creates directories and leaves no temp files behind."""
        path = tmp_path / "nested" / "dir" / "messages.json"
        save_collection_file(path, [{"id": "m1"}])

        assert json.loads(path.read_text()) == [{"id": "m1"}]
        assert [p.name for p in path.parent.iterdir()] == ["messages.json"]

    def test_unserializable_records_raise_and_keep_old_file(self, tmp_path):
        """Test that a failed save raises and keeps the previous file."""
        path = tmp_path / "messages.json"
        save_collection_file(path, [{"id": "m1"}])

        with pytest.raises(StorageError):
            save_collection_file(path, [{"id": object()}])

        assert json.loads(path.read_text()) == [{"id": "m1"}]


class TestJsonStore:
    """Test the typed API over JSON files."""

    @pytest.mark.asyncio
    async def test_profiles_round_trip_in_order(self, store, profile_factory):
        """Test that saved profiles load back unchanged and in order."""
        profiles = [profile_factory("b"), profile_factory("a"), profile_factory("c")]
        await store.save_profiles(profiles)

        loaded = await store.list_profiles()

        assert loaded == profiles

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, store, quiet_logger):
        """Test that invalid profile records are skipped on read."""
        store.data_dir.mkdir(parents=True)
        store.path_for("profiles").write_text(json.dumps([
            {"id": "ok", "name": "Fine", "role": "producer"},
            {"id": "bad", "name": "No Role"},
            "not even a dict",
            {"id": "worse", "name": "Bad role", "role": "drummer"},
        ]))

        profiles = await store.list_profiles()

        assert [p.id for p in profiles] == ["ok"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_fields", [
        {"highlights": "lots"},
        {"highlight_count": "3"},
        {"genres": [["Pop"]]},
        {"genres": ["Pop", 7]},
        {"verified": "false"},
        {"isOnboarded": 1},
    ])
    async def test_profiles_with_bad_field_types_are_skipped(self, store, bad_fields):
        """Test that a profile whose fields have the wrong type is skipped, not loaded."""
        store.data_dir.mkdir(parents=True)
        bad = {"id": "x", "name": "X", "role": "producer", **bad_fields}
        store.path_for("profiles").write_text(json.dumps([
            {"id": "g", "name": "Good", "role": "vocalist", "highlights": [{"id": "h1"}]},
            bad,
        ]))

        profiles = await store.list_profiles()

        assert [p.id for p in profiles] == ["g"]
        assert profiles[0].highlight_count == 1

    @pytest.mark.asyncio
    async def test_legacy_app_records_load(self, store):
        """Test that matches written by the mobile app load."""
        store.data_dir.mkdir(parents=True)
        store.path_for("matches").write_text(json.dumps([{
            "id": "m1",
            "userId": "user_1",
            "matchedUserId": "user_2",
            "matchedAt": "2024-03-01T10:00:00.000Z",
            "isRead": False,
        }]))

        matches = await store.list_matches()

        assert matches[0].pair == {"user_1", "user_2"}
        assert matches[0].created_at == parse_timestamp("2024-03-01T10:00:00+00:00")

    @pytest.mark.asyncio
    async def test_list_messages_filters_by_match(self, store):
        """Test filtering messages by match id."""
        ts = parse_timestamp("2024-01-01T00:00:00+00:00")
        await store.append_message(Message("m1", "match_a", "u1", "u2", "hi", ts))
        await store.append_message(Message("m2", "match_b", "u1", "u3", "yo", ts))

        assert [m.id for m in await store.list_messages("match_a")] == ["m1"]
        assert len(await store.list_messages()) == 2

    @pytest.mark.asyncio
    async def test_append_and_persist_matches(self, store):
        """Test appending matches and replacing the collection."""
        ts = parse_timestamp("2024-01-01T00:00:00+00:00")
        await store.append_match(Match("m1", "u1", "u2", ts))
        await store.append_match(Match("m2", "u1", "u3", ts))
        await store.persist_matches([Match("m2", "u1", "u3", ts)])

        assert [m.id for m in await store.list_matches()] == ["m2"]

    @pytest.mark.asyncio
    async def test_mutate_without_change_does_not_write(self, store):
        """Test that a change returning None does not write."""
        result = await store.mutate("matches", lambda current: (None, len(current)))
        assert result == 0
        assert not store.path_for("matches").exists()

    @pytest.mark.asyncio
    async def test_current_viewer(self, store, profile_factory):
        """Test setting and reading the signed-in viewer."""
        assert await store.get_current_viewer() is None

        await store.save_profiles([profile_factory("u1")])
        await store.set_current_viewer("u1")
        assert (await store.get_current_viewer()).id == "u1"

        await store.set_current_viewer(None)
        assert await store.get_current_viewer() is None

    @pytest.mark.asyncio
    async def test_viewer_missing_from_directory(self, store):
        """Test that a viewer id with no profile reads as no viewer."""
        await store.set_current_viewer("ghost")
        assert await store.get_current_viewer() is None

    @pytest.mark.asyncio
    async def test_corrupt_session_record_raises(self, store, quiet_logger):
        """Test that a session collection not holding an object raises StorageError."""
        store.data_dir.mkdir(parents=True)
        store.path_for("session").write_text(json.dumps(["u1"]))

        with pytest.raises(StorageError):
            await store.get_current_viewer()
        assert quiet_logger.get_metrics()["storage_failures"] == 1

    @pytest.mark.asyncio
    async def test_corrupt_collection_propagates(self, store, quiet_logger):
        """Test that a corrupt collection raises and is counted as a storage failure."""
        store.data_dir.mkdir(parents=True)
        store.path_for("messages").write_text("[{")

        with pytest.raises(StorageError):
            await store.list_messages()
        assert quiet_logger.get_metrics()["storage_failures"] == 1

    @pytest.mark.asyncio
    async def test_direct_messages_filter_by_project(self, store):
        """Test appending, filtering and replacing project messages."""
        ts = parse_timestamp("2024-01-01T00:00:00+00:00")
        first = DirectMessage("d1", "p1", "u1", "u2", "One", "Two", "hey", ts)
        second = DirectMessage("d2", "p2", "u2", "u1", "Two", "One", "yo", ts)
        await store.append_direct_message(first)
        await store.append_direct_message(second)

        assert [m.id for m in await store.list_direct_messages("p2")] == ["d2"]

        await store.persist_direct_messages([second])
        assert [m.id for m in await store.list_direct_messages()] == ["d2"]
