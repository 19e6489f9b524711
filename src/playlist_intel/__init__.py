"""playlist-intel: YouTube playlist sync, category statistics and relevance ranking."""

from .client import (
    MissingCredentials,
    NoCredentials,
    PlaylistIntelError,
    QuotaExceeded,
    UpstreamError,
    YouTubeClient,
)
from .models import GlobalStats, Playlist, PlaylistStats, RankedPlaylist, SyncResult, Video
from .server import main
from .sync import SyncOrchestrator

__all__ = [
    "main",
    "YouTubeClient",
    "SyncOrchestrator",
    "PlaylistIntelError",
    "MissingCredentials",
    "NoCredentials",
    "QuotaExceeded",
    "UpstreamError",
    "Video",
    "Playlist",
    "PlaylistStats",
    "GlobalStats",
    "RankedPlaylist",
    "SyncResult",
]

__version__ = "0.1.0"
