"""Relevance ranking of playlists for a video's category.

A playlist scores 1 when its dominant category is the query category and 0
otherwise. The query category's share of a playlist only feeds the
``has_overlap`` flag, not the score. Equal scores keep the order the
playlists were supplied in, with no secondary key.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .models import Playlist, PlaylistStats, RankedPlaylist, Video
from .stats import compute_category_distribution


@dataclass
class RankingCandidate:
    playlist_id: str
    title: str
    stats: PlaylistStats
    distribution: dict[str, float] = field(default_factory=dict)


def score(query_category_id: str, stats: PlaylistStats) -> int:
    return 1 if stats.dominant_category_id == query_category_id else 0


def has_any_overlap(query_category_id: str, distribution: Mapping[str, float]) -> bool:
    """True if at least one video in the playlist has the query category."""
    return distribution.get(query_category_id, 0) > 0


def rank(query_category_id: str, candidates: Iterable[RankingCandidate]) -> list[RankedPlaylist]:
    scored = [
        RankedPlaylist(
            playlist_id=c.playlist_id,
            title=c.title,
            score=score(query_category_id, c.stats),
            dominant_category=c.stats.dominant_category,
            dominant_ratio=c.stats.dominant_ratio,
            focus_label=c.stats.focus_label,
            total_videos=c.stats.total_videos,
            has_overlap=has_any_overlap(query_category_id, c.distribution),
        )
        for c in candidates
    ]
    # list.sort is stable: ties stay in input order.
    scored.sort(key=lambda r: r.score, reverse=True)
    return scored


def build_candidates(
    stats_by_playlist: Mapping[str, PlaylistStats],
    meta_by_playlist: Mapping[str, Playlist],
    index: Mapping[str, Mapping[str, Video]],
) -> list[RankingCandidate]:
    """Assemble ranking input from persisted sync results, in stored order."""
    candidates = []
    for playlist_id, stats in stats_by_playlist.items():
        meta = meta_by_playlist.get(playlist_id)
        candidates.append(
            RankingCandidate(
                playlist_id=playlist_id,
                title=meta.title if meta else playlist_id,
                stats=stats,
                distribution=compute_category_distribution(index.get(playlist_id) or {}),
            )
        )
    return candidates
