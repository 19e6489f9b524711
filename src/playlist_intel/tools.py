"""MCP tool definitions for playlist-intel.

Tools are thin wrappers over the sync orchestrator. All exceptions are
caught at the tool boundary and returned as "Error: ..." strings so the MCP
protocol never sees an uncaught exception.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from fastmcp import FastMCP

from .auth import Credentials
from .categories import CATEGORY_MAP
from .sync import SyncOrchestrator, SyncSnapshot

logger = logging.getLogger(__name__)

CredentialsFactory = Callable[[], Awaitable[Credentials]]

SORT_KEYS = ("name", "videos", "ratio", "focus", "newest", "oldest")
_FOCUS_ORDER = {"Highly Focused": 0, "Focused": 1, "Mixed": 2}


def _timestamp(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def _playlist_rows(
    snapshot: SyncSnapshot,
    sort_by: str = "ratio",
    category: str | None = None,
    query: str | None = None,
) -> list[dict]:
    """Flatten stored stats and metadata into filtered, sorted rows."""
    rows = []
    for pid, stats in snapshot.playlist_stats.items():
        meta = snapshot.playlists.get(pid)
        rows.append(
            {
                "id": pid,
                "name": meta.title if meta else pid,
                "url": f"https://www.youtube.com/playlist?list={pid}",
                "total_videos": stats.total_videos,
                "dominant_category": stats.dominant_category or "-",
                "dominant_ratio": stats.dominant_ratio,
                "focus_label": stats.focus_label,
                "created_at": meta.published_at if meta else None,
                "categories": list(stats.category_frequency),
            }
        )

    if category:
        rows = [r for r in rows if category in r["categories"]]
    if query:
        q = query.lower()
        rows = [
            r for r in rows if q in r["name"].lower() or q in r["dominant_category"].lower()
        ]

    if sort_by == "name":
        rows.sort(key=lambda r: r["name"].lower())
    elif sort_by == "videos":
        rows.sort(key=lambda r: r["total_videos"], reverse=True)
    elif sort_by == "ratio":
        rows.sort(key=lambda r: r["dominant_ratio"], reverse=True)
    elif sort_by == "focus":
        rows.sort(key=lambda r: _FOCUS_ORDER.get(r["focus_label"], 3))
    elif sort_by == "newest":
        rows.sort(key=lambda r: _timestamp(r["created_at"]) or 0, reverse=True)
    elif sort_by == "oldest":
        rows.sort(key=lambda r: _timestamp(r["created_at"]) or float("inf"))
    return rows


def register_tools(
    mcp: FastMCP,
    orchestrator: SyncOrchestrator,
    get_credentials: CredentialsFactory,
) -> None:
    """Register all playlist tools on the given MCP server instance."""

    @mcp.tool()
    async def sync_playlists() -> str:
        """Sync all playlists from YouTube and recompute statistics.

        Only videos not seen in a previous sync are looked up, so repeated
        syncs are cheap. Returns the sync result with the playlist count
        and the number of videos.list calls made.
        """
        try:
            credentials = await get_credentials()
            result = await orchestrator.run_sync(credentials)
            return str(result.to_dict())
        except Exception as e:
            logger.error("sync_playlists failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def rank_playlists_for_video(video: str) -> str:
        """Rank synced playlists by relevance to a video.

        Args:
            video: A video ID or a youtube.com / youtu.be / shorts URL.

        Playlists whose dominant category matches the video's category come
        first. Each entry carries has_overlap, true when the playlist holds
        at least one video of that category.
        """
        try:
            credentials = await get_credentials()
            response = await orchestrator.rank_for_video(video, credentials)
            if not response.success:
                return f"Error: {response.message}"
            return str(response.to_dict())
        except Exception as e:
            logger.error("rank_playlists_for_video failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def rank_playlists_for_category(category_id: str) -> str:
        """Rank synced playlists for a YouTube category ID (e.g. "10" for Music).

        Uses stored data only; makes no API calls.
        """
        try:
            response = await orchestrator.rank_category(category_id)
            if not response.success:
                return f"Error: {response.message}"
            return str(response.to_dict())
        except Exception as e:
            logger.error("rank_playlists_for_category failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def get_global_stats() -> str:
        """Get totals and the category distribution across all synced playlists."""
        try:
            snapshot = await orchestrator.load_snapshot()
            if snapshot.global_stats is None:
                return "Error: No playlist data. Sync first."
            d = snapshot.global_stats.to_dict()
            d["last_sync"] = snapshot.last_sync
            return str(d)
        except Exception as e:
            logger.error("get_global_stats failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def get_playlist_stats(
        sort_by: str = "ratio",
        category: str | None = None,
        query: str | None = None,
    ) -> str:
        """List synced playlists with their focus statistics.

        Args:
            sort_by: One of name, videos, ratio, focus, newest, oldest (default ratio).
            category: Only playlists containing at least one video with this category label.
            query: Case-insensitive match on playlist name or dominant category.
        """
        try:
            if sort_by not in SORT_KEYS:
                return f"Error: sort_by must be one of {', '.join(SORT_KEYS)}"
            snapshot = await orchestrator.load_snapshot()
            return str(_playlist_rows(snapshot, sort_by=sort_by, category=category, query=query))
        except Exception as e:
            logger.error("get_playlist_stats failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def get_playlist_videos(playlist_id: str) -> str:
        """List the cached videos of one playlist with their categories."""
        try:
            snapshot = await orchestrator.load_snapshot()
            if playlist_id not in snapshot.playlist_stats:
                return f"Error: Unknown playlist {playlist_id}"
            videos = snapshot.index.get(playlist_id) or {}
            return str(
                [
                    {
                        "id": v.id,
                        "title": v.title or v.id,
                        "category": v.category,
                        "category_id": v.category_id,
                        "channel_title": v.channel_title,
                        "url": f"https://www.youtube.com/watch?v={v.id}",
                    }
                    for v in videos.values()
                ]
            )
        except Exception as e:
            logger.error("get_playlist_videos failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def list_categories() -> str:
        """List the YouTube category IDs and their labels."""
        return str(dict(CATEGORY_MAP))

    @mcp.tool()
    async def get_quota_usage() -> str:
        """Get today's API call count and how many calls remain before the safety threshold."""
        try:
            tracker = orchestrator.quota
            usage = await tracker.usage()
            return str(
                {
                    "date": usage.date,
                    "count": usage.count,
                    "daily_limit": tracker.daily_limit,
                    "remaining": await tracker.remaining(),
                }
            )
        except Exception as e:
            logger.error("get_quota_usage failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def clear_data() -> str:
        """Delete all stored sync results and the cached video index."""
        try:
            await orchestrator.clear_data()
            return "Cleared stored playlist data."
        except Exception as e:
            logger.error("clear_data failed: %s", e, exc_info=True)
            return f"Error: {e}"
