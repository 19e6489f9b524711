"""Delta reconciliation of a playlist against the cached video index.

Only video IDs missing from the cache are resolved remotely. Cached entries
are trusted indefinitely: a video whose category changes upstream after it
was cached keeps its old category until it leaves the playlist or the cache
is cleared.
"""

import logging
import math
from dataclasses import dataclass

from .auth import Credentials
from .client import BATCH_SIZE, YouTubeClient
from .models import Video

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    videos: dict[str, Video]
    batches: int
    new_count: int = 0
    cached_count: int = 0


def plan_missing(current_ids: list[str], cached: dict[str, Video]) -> list[str]:
    """Return IDs not yet cached, in listing order and without repeats."""
    seen: set[str] = set()
    missing = []
    for video_id in current_ids:
        if video_id not in cached and video_id not in seen:
            seen.add(video_id)
            missing.append(video_id)
    return missing


def merge(
    current_ids: list[str], cached: dict[str, Video], resolved: dict[str, Video]
) -> dict[str, Video]:
    """Build the current membership from cache and fresh results.

    Anything cached but no longer listed is dropped; listed IDs the API did
    not return become "Unknown" placeholders.
    """
    merged: dict[str, Video] = {}
    for video_id in current_ids:
        if video_id in merged:
            continue
        video = cached.get(video_id) or resolved.get(video_id)
        merged[video_id] = video if video is not None else Video.placeholder(video_id)
    return merged


async def reconcile(
    playlist_id: str,
    current_ids: list[str],
    cached: dict[str, Video],
    client: YouTubeClient,
    credentials: Credentials,
) -> ReconcileResult:
    """Resolve a playlist's videos, fetching only what the cache lacks."""
    missing = plan_missing(current_ids, cached)
    resolved: dict[str, Video] = {}
    if missing:
        resolved = await client.resolve_video_details(missing, credentials)

    videos = merge(current_ids, cached, resolved)
    batches = math.ceil(len(missing) / BATCH_SIZE)
    pruned = len(set(cached) - set(videos))
    logger.debug(
        "Playlist %s: %d videos, %d new, %d pruned, %d detail batches",
        playlist_id,
        len(videos),
        len(missing),
        pruned,
        batches,
    )
    return ReconcileResult(
        videos=videos,
        batches=batches,
        new_count=len(missing),
        cached_count=len(videos) - len(missing),
    )
