"""Tests for sync.py: orchestration, partial failure and persistence."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from playlist_intel.auth import Credentials
from playlist_intel.categories import get_category_label
from playlist_intel.client import MissingCredentials, QuotaExceeded, UpstreamError
from playlist_intel.models import Playlist, SyncState, Video
from playlist_intel.quota import QUOTA_KEY
from playlist_intel.storage import MemoryStore
from playlist_intel.sync import (
    GLOBAL_STATS_KEY,
    ITEM_INDEX_KEY,
    LAST_SYNC_KEY,
    PLAYLIST_META_KEY,
    PLAYLIST_STATS_KEY,
    SyncOrchestrator,
    encode_index,
)

CREDS = Credentials(api_key="k", channel_id="UC1")


def _video(video_id, category_id):
    return Video(id=video_id, category_id=category_id, category=get_category_label(category_id))


class FakeClient:
    """In-memory stand-in for YouTubeClient."""

    def __init__(self, playlists, members, catalog):
        self.playlists = playlists
        self.members = members
        self.catalog = catalog
        self.resolve_calls: list[list[str]] = []
        self.list_calls = 0
        self.list_error: Exception | None = None
        self.member_errors: dict[str, Exception] = {}
        self.quota = None

    async def list_playlists(self, credentials):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.playlists)

    async def list_playlist_video_ids(self, playlist_id, credentials):
        if playlist_id in self.member_errors:
            raise self.member_errors[playlist_id]
        return list(self.members[playlist_id])

    async def resolve_video_details(self, video_ids, credentials):
        self.resolve_calls.append(list(video_ids))
        return {v: self.catalog[v] for v in video_ids if v in self.catalog}

    async def get_video(self, video_id, credentials):
        return self.catalog.get(video_id)


@pytest.fixture
def catalog():
    videos = {f"m{i}": _video(f"m{i}", "10") for i in range(8)}
    videos.update({f"g{i}": _video(f"g{i}", "20") for i in range(4)})
    videos["querymusic"] = _video("querymusic", "10")
    return videos


@pytest.fixture
def fake_client(catalog):
    playlists = [Playlist(id="gaming", title="Gaming"), Playlist(id="music", title="Music")]
    members = {
        "gaming": ["g0", "g1", "g2", "g3"],
        "music": [f"m{i}" for i in range(8)] + ["g0", "g1"],
    }
    return FakeClient(playlists, members, catalog)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def events():
    return []


@pytest.fixture
def orchestrator(fake_client, store, events):
    return SyncOrchestrator(fake_client, store, progress=events.append, clock=lambda: 1234.5)


@pytest.mark.asyncio
async def test_full_sync_persists_bundle(orchestrator, store):
    result = await orchestrator.run_sync(CREDS)

    assert result.success
    assert result.total_playlists == 2
    assert orchestrator.state == SyncState.COMPLETE

    music = store.data[PLAYLIST_STATS_KEY]["music"]
    assert music["total_videos"] == 10
    assert music["dominant_category"] == "Music"
    assert music["dominant_ratio"] == 0.8
    assert music["focus_label"] == "Highly Focused"
    assert music["unique_categories"] == 2

    assert store.data[GLOBAL_STATS_KEY] == {
        "total_playlists": 2,
        "total_videos": 14,
        "category_distribution": {"Music": 8, "Gaming": 6},
    }
    assert store.data[PLAYLIST_META_KEY]["gaming"]["title"] == "Gaming"
    assert list(store.data[ITEM_INDEX_KEY]["music"])[:2] == ["m0", "m1"]
    assert store.data[LAST_SYNC_KEY] == 1234.5


@pytest.mark.asyncio
async def test_progress_is_ordered_and_monotonic(orchestrator, events):
    await orchestrator.run_sync(CREDS)

    percents = [e.percent for e in events]
    assert percents == [5, 15, 15, 50, 90, 95, 100]
    assert percents == sorted(percents)
    assert events[2].label == "Analyzing: Gaming (1/2)"
    assert events[-1].label == "Sync complete!"


@pytest.mark.asyncio
async def test_second_sync_reuses_cache(orchestrator, fake_client, store):
    await orchestrator.run_sync(CREDS)
    first_calls = len(fake_client.resolve_calls)

    fake_client.members["music"] = [f"m{i}" for i in range(8)]
    result = await orchestrator.run_sync(CREDS)

    assert len(fake_client.resolve_calls) == first_calls
    assert result.detail_batches == 0
    assert "g0" not in store.data[ITEM_INDEX_KEY]["music"]
    assert store.data[PLAYLIST_STATS_KEY]["music"]["focus_label"] == "Highly Focused"


@pytest.mark.asyncio
async def test_only_new_videos_are_resolved(orchestrator, fake_client, catalog):
    catalog["new1"] = _video("new1", "27")
    previous = {"music": {v: catalog[v] for v in fake_client.members["music"]}}
    fake_client.members["music"] = fake_client.members["music"] + ["new1"]

    await orchestrator.run_sync(CREDS, previous_cache=previous)

    assert ["new1"] in fake_client.resolve_calls
    assert all("m0" not in call for call in fake_client.resolve_calls)


@pytest.mark.asyncio
async def test_one_failing_playlist_degrades_to_empty(orchestrator, fake_client, store):
    fake_client.member_errors["gaming"] = UpstreamError(404, "playlistNotFound")

    result = await orchestrator.run_sync(CREDS)

    assert result.success
    assert store.data[PLAYLIST_STATS_KEY]["gaming"]["focus_label"] == "Empty"
    assert store.data[PLAYLIST_STATS_KEY]["music"]["total_videos"] == 10


@pytest.mark.asyncio
async def test_failing_playlist_is_left_out_of_index(orchestrator, fake_client, store, catalog):
    fake_client.member_errors["gaming"] = QuotaExceeded(9500, 10000)
    previous = {"gaming": {"g0": catalog["g0"]}}

    await orchestrator.run_sync(CREDS, previous_cache=previous)

    assert "gaming" not in store.data[ITEM_INDEX_KEY]
    assert store.data[PLAYLIST_STATS_KEY]["gaming"]["focus_label"] == "Empty"


@pytest.mark.asyncio
async def test_failed_playlist_has_no_overlap_in_ranking(orchestrator, fake_client, catalog):
    fake_client.member_errors["gaming"] = QuotaExceeded(9500, 10000)
    previous = {"gaming": {"g0": catalog["g0"]}}
    await orchestrator.run_sync(CREDS, previous_cache=previous)

    response = await orchestrator.rank_category("20")

    gaming = next(r for r in response.ranked if r.playlist_id == "gaming")
    assert gaming.total_videos == 0
    assert gaming.has_overlap is False


@pytest.mark.asyncio
async def test_unexpected_error_in_one_playlist_does_not_abort(orchestrator, fake_client, store):
    fake_client.member_errors["gaming"] = AttributeError("'NoneType' object has no attribute 'get'")

    result = await orchestrator.run_sync(CREDS)

    assert result.success
    assert store.data[PLAYLIST_STATS_KEY]["gaming"]["focus_label"] == "Empty"
    assert store.data[PLAYLIST_STATS_KEY]["music"]["total_videos"] == 10


@pytest.mark.asyncio
async def test_malformed_playlist_items_page_is_tolerated(client, store):
    def _response(payload):
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status = MagicMock()
        return response

    async def fake_get(endpoint, params, headers):
        if endpoint == "playlists":
            return _response({"items": [{"id": "bad"}, None, {"id": "good"}]})
        if endpoint == "playlistItems":
            if params["playlistId"] == "bad":
                return _response({"items": [None, {"contentDetails": None}]})
            return _response({"items": [{"contentDetails": {"videoId": "v1"}}]})
        return _response(
            {"items": [None, {"id": "v1", "snippet": {"categoryId": "10", "thumbnails": []}}]}
        )

    orchestrator = SyncOrchestrator(client, store)
    with patch.object(client._client, "get", new_callable=AsyncMock, side_effect=fake_get):
        result = await orchestrator.run_sync(CREDS)

    assert result.success
    assert result.total_playlists == 2
    assert store.data[PLAYLIST_STATS_KEY]["bad"]["focus_label"] == "Empty"
    assert store.data[PLAYLIST_STATS_KEY]["good"]["dominant_category"] == "Music"


@pytest.mark.asyncio
async def test_quota_exceeded_while_listing_fails_run(orchestrator, fake_client, store):
    fake_client.list_error = QuotaExceeded(9500, 10000)

    result = await orchestrator.run_sync(CREDS)

    assert not result.success
    assert result.error_kind == "quota_exceeded"
    assert orchestrator.state == SyncState.FAILED
    assert store.data == {}


@pytest.mark.asyncio
async def test_no_credentials_fails_before_listing(orchestrator, fake_client):
    result = await orchestrator.run_sync(Credentials())

    assert result.error_kind == "no_credentials"
    assert fake_client.list_calls == 0


@pytest.mark.asyncio
async def test_missing_channel_reported(orchestrator, fake_client):
    fake_client.list_error = MissingCredentials("A channel ID is required")

    result = await orchestrator.run_sync(Credentials(api_key="k"))

    assert result.error_kind == "no_credentials"
    assert "channel ID" in result.message


@pytest.mark.asyncio
async def test_no_playlists(orchestrator, fake_client, store):
    fake_client.playlists = []

    result = await orchestrator.run_sync(CREDS)

    assert not result.success
    assert result.message == "No playlists found."
    assert store.data == {}


@pytest.mark.asyncio
async def test_persistence_failure_is_reported(fake_client):
    class BrokenStore(MemoryStore):
        async def set(self, values):
            raise OSError("disk full")

    orchestrator = SyncOrchestrator(fake_client, BrokenStore())
    result = await orchestrator.run_sync(CREDS)

    assert not result.success
    assert "disk full" in result.message


@pytest.mark.asyncio
async def test_progress_listener_errors_are_ignored(fake_client, store):
    def broken(progress):
        raise RuntimeError("popup closed")

    result = await SyncOrchestrator(fake_client, store, progress=broken).run_sync(CREDS)
    assert result.success


@pytest.mark.asyncio
async def test_previous_cache_loaded_from_store(fake_client, store, catalog):
    await store.set({ITEM_INDEX_KEY: encode_index({"gaming": {"g0": catalog["g0"]}})})
    orchestrator = SyncOrchestrator(fake_client, store)

    await orchestrator.run_sync(CREDS)

    assert fake_client.resolve_calls[0] == ["g1", "g2", "g3"]


# --- Ranking ---


@pytest.mark.asyncio
async def test_rank_for_video_puts_matching_playlist_first(orchestrator):
    await orchestrator.run_sync(CREDS)

    response = await orchestrator.rank_for_video("https://youtu.be/querymusic", CREDS)

    assert response.success
    assert response.video_category == "Music"
    assert [r.playlist_id for r in response.ranked] == ["music", "gaming"]
    assert [r.score for r in response.ranked] == [1, 0]
    assert response.ranked[1].has_overlap is False


@pytest.mark.asyncio
async def test_rank_category_flags_partial_overlap(orchestrator):
    await orchestrator.run_sync(CREDS)

    response = await orchestrator.rank_category("20")

    assert [r.playlist_id for r in response.ranked] == ["gaming", "music"]
    assert response.ranked[1].score == 0
    assert response.ranked[1].has_overlap is True


@pytest.mark.asyncio
async def test_rank_before_sync(orchestrator):
    response = await orchestrator.rank_for_video("abcdefghijk", CREDS)
    assert not response.success
    assert "Sync first" in response.message


@pytest.mark.asyncio
async def test_rank_without_video_id(orchestrator):
    response = await orchestrator.rank_for_video("", CREDS)
    assert response.message == "No video ID provided"


@pytest.mark.asyncio
async def test_rank_unknown_video(orchestrator):
    await orchestrator.run_sync(CREDS)
    response = await orchestrator.rank_for_video("https://youtu.be/nosuchvideo", CREDS)
    assert response.message == "Could not determine video category"


# --- Clearing ---


@pytest.mark.asyncio
async def test_clear_data_keeps_quota(orchestrator, store):
    await orchestrator.run_sync(CREDS)
    await store.set({QUOTA_KEY: {"date": "2026-03-01", "count": 7}})

    await orchestrator.clear_data()

    assert set(store.data) == {QUOTA_KEY}
    snapshot = await orchestrator.load_snapshot()
    assert snapshot.is_empty
    assert snapshot.global_stats is None
