"""Per-playlist and global category statistics.

Pure computation, no I/O. Frequency tables are dicts and rely on insertion
order: when several categories share the highest count, the one first seen
among the playlist's videos is dominant.
"""

from collections.abc import Iterable, Mapping

from .categories import UNKNOWN_CATEGORY_ID, get_category_label
from .models import GlobalStats, PlaylistStats, Video

HIGHLY_FOCUSED_RATIO = 0.8
FOCUSED_RATIO = 0.5


def _as_list(videos: Mapping[str, Video] | Iterable[Video]) -> list[Video]:
    if isinstance(videos, Mapping):
        return list(videos.values())
    return list(videos)


def _category_counts(videos: list[Video]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for video in videos:
        category_id = video.category_id or UNKNOWN_CATEGORY_ID
        counts[category_id] = counts.get(category_id, 0) + 1
    return counts


def focus_label(ratio: float, total: int) -> str:
    """Bucket a dominant ratio. Lower bounds are inclusive."""
    if total == 0:
        return "Empty"
    if ratio >= HIGHLY_FOCUSED_RATIO:
        return "Highly Focused"
    if ratio >= FOCUSED_RATIO:
        return "Focused"
    return "Mixed"


def compute_playlist_stats(videos: Mapping[str, Video] | Iterable[Video]) -> PlaylistStats:
    """Compute category statistics for one playlist's videos."""
    items = _as_list(videos)
    total = len(items)
    if total == 0:
        return PlaylistStats.empty()

    counts = _category_counts(items)

    dominant_id: str | None = None
    dominant_count = 0
    for category_id, count in counts.items():
        if count > dominant_count:
            dominant_id = category_id
            dominant_count = count

    frequency: dict[str, int] = {}
    for category_id, count in counts.items():
        label = get_category_label(category_id)
        frequency[label] = frequency.get(label, 0) + count

    ratio = dominant_count / total
    return PlaylistStats(
        total_videos=total,
        category_frequency=frequency,
        dominant_category=get_category_label(dominant_id),
        dominant_category_id=dominant_id,
        dominant_count=dominant_count,
        dominant_ratio=ratio,
        unique_categories=len(counts),
        focus_label=focus_label(ratio, total),
    )


def compute_global_stats(stats_by_playlist: Mapping[str, PlaylistStats]) -> GlobalStats:
    """Fold every playlist's label frequencies into one sorted distribution."""
    total_videos = 0
    distribution: dict[str, int] = {}
    for stats in stats_by_playlist.values():
        total_videos += stats.total_videos
        for label, count in stats.category_frequency.items():
            distribution[label] = distribution.get(label, 0) + count

    ordered = sorted(distribution.items(), key=lambda kv: kv[1], reverse=True)
    return GlobalStats(
        total_playlists=len(stats_by_playlist),
        total_videos=total_videos,
        category_distribution=dict(ordered),
    )


def compute_category_distribution(
    videos: Mapping[str, Video] | Iterable[Video],
) -> dict[str, float]:
    """Return category ID -> share of the playlist. Keyed by raw ID, not label."""
    items = _as_list(videos)
    if not items:
        return {}
    total = len(items)
    return {cid: count / total for cid, count in _category_counts(items).items()}
