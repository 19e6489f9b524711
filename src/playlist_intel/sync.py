"""Sync orchestration: list playlists, reconcile, aggregate, persist.

One run walks ``IDLE -> FETCHING_PLAYLISTS -> PER_PLAYLIST ->
AGGREGATING_GLOBAL -> PERSISTING -> COMPLETE``, or ends in ``FAILED``.
Playlists are processed one after another; nothing is written until the
whole bundle is ready, and then it is written with a single ``set``.

A failure inside one playlist degrades that playlist to empty statistics,
leaves it out of the item index, and the loop moves on. Failures while listing playlists, resolving
credentials or persisting fail the run.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .auth import Credentials
from .categories import get_category_label
from .client import MissingCredentials, PlaylistIntelError, YouTubeClient, extract_video_id
from .models import (
    GlobalStats,
    Playlist,
    PlaylistStats,
    RankingResponse,
    SyncProgress,
    SyncResult,
    SyncState,
    Video,
)
from .quota import QuotaTracker
from .ranking import build_candidates, rank
from .reconcile import reconcile
from .stats import compute_global_stats, compute_playlist_stats
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

GLOBAL_STATS_KEY = "globalStats"
PLAYLIST_STATS_KEY = "collectionStats"
PLAYLIST_META_KEY = "collectionMeta"
ITEM_INDEX_KEY = "itemIndex"
LAST_SYNC_KEY = "lastSyncTimestamp"

SYNC_KEYS = [GLOBAL_STATS_KEY, PLAYLIST_STATS_KEY, PLAYLIST_META_KEY, ITEM_INDEX_KEY, LAST_SYNC_KEY]

ProgressSink = Callable[[SyncProgress], None]
ItemIndex = dict[str, dict[str, Video]]


@dataclass
class SyncSnapshot:
    """The last persisted sync bundle, decoded."""

    global_stats: GlobalStats | None = None
    playlist_stats: dict[str, PlaylistStats] = field(default_factory=dict)
    playlists: dict[str, Playlist] = field(default_factory=dict)
    index: ItemIndex = field(default_factory=dict)
    last_sync: float | None = None

    @property
    def is_empty(self) -> bool:
        return not self.playlist_stats


def encode_index(index: ItemIndex) -> dict:
    return {pid: {vid: v.to_dict() for vid, v in videos.items()} for pid, videos in index.items()}


def decode_index(raw: dict | None) -> ItemIndex:
    return {
        pid: {vid: Video.from_dict(vid, data or {}) for vid, data in (videos or {}).items()}
        for pid, videos in (raw or {}).items()
    }


class SyncOrchestrator:
    """Coordinates the client, reconciler and aggregator for one store."""

    def __init__(
        self,
        client: YouTubeClient,
        store: KeyValueStore,
        progress: ProgressSink | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self._store = store
        self._progress = progress
        self._clock = clock
        self.state = SyncState.IDLE

    @property
    def quota(self) -> QuotaTracker:
        return self._client.quota

    def _emit(self, label: str, percent: int) -> None:
        """Notify the progress listener, if any. Delivery is best-effort."""
        if self._progress is None:
            return
        try:
            self._progress(SyncProgress(label=label, percent=percent))
        except Exception as e:
            logger.debug("Progress listener raised, ignoring: %s", e)

    async def load_snapshot(self) -> SyncSnapshot:
        data = await self._store.get(SYNC_KEYS)
        raw_global = data.get(GLOBAL_STATS_KEY)
        return SyncSnapshot(
            global_stats=GlobalStats.from_dict(raw_global) if raw_global else None,
            playlist_stats={
                pid: PlaylistStats.from_dict(s or {})
                for pid, s in (data.get(PLAYLIST_STATS_KEY) or {}).items()
            },
            playlists={
                pid: Playlist.from_dict(pid, m or {})
                for pid, m in (data.get(PLAYLIST_META_KEY) or {}).items()
            },
            index=decode_index(data.get(ITEM_INDEX_KEY)),
            last_sync=data.get(LAST_SYNC_KEY),
        )

    async def load_previous_cache(self) -> ItemIndex:
        data = await self._store.get([ITEM_INDEX_KEY])
        return decode_index(data.get(ITEM_INDEX_KEY))

    async def run_sync(
        self, credentials: Credentials, previous_cache: ItemIndex | None = None
    ) -> SyncResult:
        """Run a full sync and return a success or failure result.

        Never raises; every failure is reported through the result.
        """
        try:
            return await self._run(credentials, previous_cache)
        except PlaylistIntelError as e:
            self.state = SyncState.FAILED
            logger.error("Sync failed: %s", e)
            return SyncResult.failed(e.kind, str(e))
        except Exception as e:
            self.state = SyncState.FAILED
            logger.error("Sync failed: %s", e, exc_info=True)
            return SyncResult.failed("error", str(e))

    async def _run(self, credentials: Credentials, previous_cache: ItemIndex | None) -> SyncResult:
        if not credentials.is_usable:
            raise MissingCredentials(
                "No credentials. Configure an OAuth access token or a YouTube API key."
            )

        self.state = SyncState.FETCHING_PLAYLISTS
        self._emit("Fetching playlists…", 5)
        playlists = await self._client.list_playlists(credentials)
        if not playlists:
            self.state = SyncState.FAILED
            return SyncResult.failed("no_playlists", "No playlists found.")
        self._emit(f"Found {len(playlists)} playlists", 15)

        if previous_cache is None:
            previous_cache = await self.load_previous_cache()

        self.state = SyncState.PER_PLAYLIST
        stats_map: dict[str, PlaylistStats] = {}
        meta_map: dict[str, Playlist] = {}
        index: ItemIndex = {}
        batches = 0
        for i, playlist in enumerate(playlists):
            pct = 15 + round(i / len(playlists) * 70)
            self._emit(f"Analyzing: {playlist.title} ({i + 1}/{len(playlists)})", pct)
            meta_map[playlist.id] = playlist

            cached = previous_cache.get(playlist.id) or {}
            try:
                video_ids = await self._client.list_playlist_video_ids(playlist.id, credentials)
                result = await reconcile(
                    playlist.id, video_ids, cached, self._client, credentials
                )
                stats = compute_playlist_stats(result.videos)
            except PlaylistIntelError as e:
                logger.warning("Failed to analyze playlist %s: %s", playlist.title, e)
                stats_map[playlist.id] = PlaylistStats.empty()
                continue
            except Exception as e:
                logger.warning(
                    "Failed to analyze playlist %s: %s", playlist.title, e, exc_info=True
                )
                stats_map[playlist.id] = PlaylistStats.empty()
                continue

            index[playlist.id] = result.videos
            stats_map[playlist.id] = stats
            batches += result.batches

        self.state = SyncState.AGGREGATING_GLOBAL
        self._emit("Computing global statistics…", 90)
        global_stats = compute_global_stats(stats_map)

        self.state = SyncState.PERSISTING
        self._emit("Saving data…", 95)
        await self._store.set(
            {
                GLOBAL_STATS_KEY: global_stats.to_dict(),
                PLAYLIST_STATS_KEY: {pid: s.to_dict() for pid, s in stats_map.items()},
                PLAYLIST_META_KEY: {pid: p.to_dict() for pid, p in meta_map.items()},
                ITEM_INDEX_KEY: encode_index(index),
                LAST_SYNC_KEY: self._clock(),
            }
        )

        self.state = SyncState.COMPLETE
        self._emit("Sync complete!", 100)
        logger.info(
            "Sync complete: %d playlists, %d videos, %d videos.list calls",
            len(playlists),
            global_stats.total_videos,
            batches,
        )
        return SyncResult.ok(len(playlists), detail_batches=batches)

    @staticmethod
    def _rank(snapshot: SyncSnapshot, category_id: str) -> RankingResponse:
        candidates = build_candidates(snapshot.playlist_stats, snapshot.playlists, snapshot.index)
        return RankingResponse(
            success=True,
            video_category=get_category_label(category_id),
            video_category_id=category_id,
            ranked=rank(category_id, candidates),
        )

    async def rank_category(self, category_id: str) -> RankingResponse:
        """Rank persisted playlists against a category. No remote calls."""
        snapshot = await self.load_snapshot()
        if snapshot.is_empty:
            return RankingResponse.failed("No playlist data. Sync first.")
        return self._rank(snapshot, category_id)

    async def rank_for_video(self, video: str, credentials: Credentials) -> RankingResponse:
        """Look up a video's category (one API call) and rank playlists for it."""
        video_id = extract_video_id(video)
        if not video_id:
            return RankingResponse.failed("No video ID provided")

        snapshot = await self.load_snapshot()
        if snapshot.is_empty:
            return RankingResponse.failed("No playlist data. Sync first.")

        try:
            resolved = await self._client.get_video(video_id, credentials)
        except PlaylistIntelError as e:
            logger.error("Video lookup failed: %s", e)
            return RankingResponse.failed(str(e))
        if resolved is None or not resolved.category_id:
            return RankingResponse.failed("Could not determine video category")

        return self._rank(snapshot, resolved.category_id)

    async def clear_data(self) -> None:
        """Forget every persisted sync result, including the video cache."""
        await self._store.remove(SYNC_KEYS)
        self.state = SyncState.IDLE
        logger.info("Cleared stored sync data")
