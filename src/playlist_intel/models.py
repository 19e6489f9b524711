"""Data models for playlist-intel."""

from dataclasses import dataclass, field
from enum import Enum

from .categories import UNKNOWN_CATEGORY


@dataclass(frozen=True)
class Video:
    """A single video as resolved from ``videos.list``.

    Immutable once fetched: the category of a cached video is never refreshed.
    """

    id: str
    category_id: str | None
    category: str = UNKNOWN_CATEGORY
    title: str = ""
    channel_title: str = ""
    thumbnail: str = ""

    @classmethod
    def placeholder(cls, video_id: str) -> "Video":
        """Stand-in for a video the API did not return (deleted, private...)."""
        return cls(id=video_id, category_id=None)

    @classmethod
    def from_dict(cls, video_id: str, data: dict) -> "Video":
        return cls(
            id=video_id,
            category_id=data.get("category_id") or None,
            category=data.get("category") or UNKNOWN_CATEGORY,
            title=data.get("title") or "",
            channel_title=data.get("channel_title") or "",
            thumbnail=data.get("thumbnail") or "",
        )

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category": self.category,
            "title": self.title,
            "channel_title": self.channel_title,
            "thumbnail": self.thumbnail,
        }


@dataclass
class Playlist:
    """Playlist metadata. Overwritten wholesale on every sync."""

    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    published_at: str | None = None
    privacy_status: str = "unknown"
    video_count: int = 0

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/playlist?list={self.id}"

    @classmethod
    def from_dict(cls, playlist_id: str, data: dict) -> "Playlist":
        return cls(
            id=playlist_id,
            title=data.get("title") or playlist_id,
            description=data.get("description") or "",
            thumbnail=data.get("thumbnail") or "",
            published_at=data.get("published_at"),
            privacy_status=data.get("privacy_status") or "unknown",
            video_count=int(data.get("video_count") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "thumbnail": self.thumbnail,
            "published_at": self.published_at,
            "privacy_status": self.privacy_status,
            "video_count": self.video_count,
        }


@dataclass
class PlaylistStats:
    """Derived category statistics for one playlist."""

    total_videos: int
    category_frequency: dict[str, int]
    dominant_category: str | None
    dominant_category_id: str | None
    dominant_count: int
    dominant_ratio: float
    unique_categories: int
    focus_label: str

    @classmethod
    def empty(cls) -> "PlaylistStats":
        return cls(
            total_videos=0,
            category_frequency={},
            dominant_category=None,
            dominant_category_id=None,
            dominant_count=0,
            dominant_ratio=0,
            unique_categories=0,
            focus_label="Empty",
        )

    @classmethod
    def from_dict(cls, data: dict) -> "PlaylistStats":
        return cls(
            total_videos=int(data.get("total_videos") or 0),
            category_frequency=dict(data.get("category_frequency") or {}),
            dominant_category=data.get("dominant_category"),
            dominant_category_id=data.get("dominant_category_id"),
            dominant_count=int(data.get("dominant_count") or 0),
            dominant_ratio=float(data.get("dominant_ratio") or 0),
            unique_categories=int(data.get("unique_categories") or 0),
            focus_label=data.get("focus_label") or "Empty",
        )

    def to_dict(self) -> dict:
        return {
            "total_videos": self.total_videos,
            "category_frequency": dict(self.category_frequency),
            "dominant_category": self.dominant_category,
            "dominant_category_id": self.dominant_category_id,
            "dominant_count": self.dominant_count,
            "dominant_ratio": self.dominant_ratio,
            "unique_categories": self.unique_categories,
            "focus_label": self.focus_label,
        }


@dataclass
class GlobalStats:
    """Statistics folded across every playlist."""

    total_playlists: int
    total_videos: int
    category_distribution: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "GlobalStats":
        return cls(
            total_playlists=int(data.get("total_playlists") or 0),
            total_videos=int(data.get("total_videos") or 0),
            category_distribution=dict(data.get("category_distribution") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "total_playlists": self.total_playlists,
            "total_videos": self.total_videos,
            "category_distribution": dict(self.category_distribution),
        }


@dataclass
class QuotaUsage:
    """API calls made on ``date`` (local ISO date)."""

    date: str
    count: int = 0

    def to_dict(self) -> dict:
        return {"date": self.date, "count": self.count}


@dataclass
class RankedPlaylist:
    """A playlist scored against a query category. Never persisted."""

    playlist_id: str
    title: str
    score: int
    dominant_category: str | None
    dominant_ratio: float
    focus_label: str
    total_videos: int
    has_overlap: bool = False

    def to_dict(self) -> dict:
        return {
            "playlist_id": self.playlist_id,
            "title": self.title,
            "score": self.score,
            "dominant_category": self.dominant_category,
            "dominant_ratio": self.dominant_ratio,
            "focus_label": self.focus_label,
            "total_videos": self.total_videos,
            "has_overlap": self.has_overlap,
        }


@dataclass(frozen=True)
class SyncProgress:
    label: str
    percent: int


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING_PLAYLISTS = "fetching_playlists"
    PER_PLAYLIST = "per_playlist"
    AGGREGATING_GLOBAL = "aggregating_global"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Outcome of a sync run: either success with a playlist count, or failure."""

    success: bool
    message: str
    total_playlists: int = 0
    detail_batches: int = 0
    error_kind: str | None = None

    @classmethod
    def ok(cls, total_playlists: int, detail_batches: int = 0) -> "SyncResult":
        return cls(
            success=True,
            message=f"Synced {total_playlists} playlists",
            total_playlists=total_playlists,
            detail_batches=detail_batches,
        )

    @classmethod
    def failed(cls, error_kind: str, message: str) -> "SyncResult":
        return cls(success=False, message=message, error_kind=error_kind)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "total_playlists": self.total_playlists,
            "detail_batches": self.detail_batches,
            "error_kind": self.error_kind,
        }


@dataclass
class RankingResponse:
    """Ranking for one video, or the reason it could not be produced."""

    success: bool
    message: str = ""
    video_category: str | None = None
    video_category_id: str | None = None
    ranked: list[RankedPlaylist] = field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> "RankingResponse":
        return cls(success=False, message=message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "video_category": self.video_category,
            "video_category_id": self.video_category_id,
            "ranked": [r.to_dict() for r in self.ranked],
        }
