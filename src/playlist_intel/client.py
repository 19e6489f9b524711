"""YouTube Data API v3 client with pagination and a daily call budget."""

import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx

from .auth import Credentials
from .categories import get_category_label
from .config import Config
from .models import Playlist, Video
from .quota import QuotaTracker

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
# videos.list accepts at most 50 IDs per request.
BATCH_SIZE = 50

PageRequest = Callable[[str | None], Awaitable[dict[str, Any]]]


class YouTubeClient:
    """Async client for the YouTube Data API.

    Every request goes through ``execute_request``, which consults the
    quota tracker first and records the call only when it succeeds.
    Nothing is retried here.
    """

    def __init__(self, config: Config, quota: QuotaTracker):
        self._config = config
        self._quota = quota
        self._client = httpx.AsyncClient(
            base_url=config.youtube_api_base.rstrip("/") + "/",
            timeout=config.http_timeout,
            follow_redirects=True,
        )

    @property
    def quota(self) -> QuotaTracker:
        return self._quota

    @staticmethod
    async def list_pages_until_exhausted(request_fn: PageRequest) -> list[dict]:
        """Follow ``nextPageToken`` until the API stops returning one.

        Items are concatenated in the order the pages arrived.
        """
        items: list[dict] = []
        page_token: str | None = None
        while True:
            page = await request_fn(page_token)
            page_items = page.get("items")
            if isinstance(page_items, list):
                items.extend(page_items)
            page_token = page.get("nextPageToken") or None
            if not page_token:
                return items

    async def execute_request(
        self,
        endpoint: str,
        params: dict[str, Any],
        credentials: Credentials,
    ) -> dict[str, Any]:
        """Issue one authenticated GET against ``endpoint``.

        Raises:
            MissingCredentials: If neither a token nor a key is available
            QuotaExceeded: If today's count is within the safety margin (no call is made)
            UpstreamError: On a non-success status or a transport failure
        """
        headers, query = self._authorize(credentials, params)

        usage = await self._quota.usage()
        if usage.count >= self._quota.threshold:
            raise QuotaExceeded(usage.count, self._quota.daily_limit)

        logger.debug("GET %s (%s)", endpoint, credentials.mode)
        try:
            response = await self._client.get(endpoint, params=query, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(e.response.status_code, e.response.text) from e
        except httpx.HTTPError as e:
            raise UpstreamError(None, str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Non-JSON response from %s, treating as empty", endpoint)
            payload = {}

        await self._quota.record_call()
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _authorize(
        credentials: Credentials, params: dict[str, Any]
    ) -> tuple[dict[str, str], dict[str, Any]]:
        """Attach credentials: bearer header first, key parameter alongside when present."""
        if not credentials.is_usable:
            raise MissingCredentials(
                "No credentials. Configure an OAuth access token or a YouTube API key."
            )
        headers: dict[str, str] = {}
        query = {k: v for k, v in params.items() if v is not None}
        if credentials.bearer_token:
            headers["Authorization"] = f"Bearer {credentials.bearer_token}"
        if credentials.api_key:
            query["key"] = credentials.api_key
        return headers, query

    # --- Playlists ---

    async def list_playlists(self, credentials: Credentials) -> list[Playlist]:
        """List playlists via the best available auth path.

        A token lists every playlist of the signed-in user, private ones
        included. Without one, an API key lists a channel's public playlists.
        """
        if credentials.has_token:
            return await self.list_my_playlists(credentials)
        if credentials.has_key and credentials.channel_id:
            return await self.list_channel_playlists(credentials.channel_id, credentials)
        if credentials.has_key:
            raise MissingCredentials("A channel ID is required when using an API key without OAuth.")
        raise MissingCredentials(
            "No credentials. Configure an OAuth access token or a YouTube API key."
        )

    async def list_my_playlists(self, credentials: Credentials) -> list[Playlist]:
        items = await self.list_pages_until_exhausted(
            lambda token: self.execute_request(
                "playlists",
                {
                    "part": "snippet,contentDetails,status",
                    "mine": "true",
                    "maxResults": PAGE_SIZE,
                    "pageToken": token,
                },
                credentials,
            )
        )
        playlists = [p for p in map(self._parse_playlist, items) if p is not None]
        logger.info("Retrieved %d playlists for the signed-in user", len(playlists))
        return playlists

    async def list_channel_playlists(
        self, channel_id: str, credentials: Credentials
    ) -> list[Playlist]:
        items = await self.list_pages_until_exhausted(
            lambda token: self.execute_request(
                "playlists",
                {
                    "part": "snippet,contentDetails,status",
                    "channelId": channel_id,
                    "maxResults": PAGE_SIZE,
                    "pageToken": token,
                },
                credentials,
            )
        )
        playlists = [p for p in map(self._parse_playlist, items) if p is not None]
        logger.info("Retrieved %d public playlists for channel %s", len(playlists), channel_id)
        return playlists

    async def list_playlist_video_ids(
        self, playlist_id: str, credentials: Credentials
    ) -> list[str]:
        """Return every video ID in a playlist, in playlist order."""
        items = await self.list_pages_until_exhausted(
            lambda token: self.execute_request(
                "playlistItems",
                {
                    "part": "contentDetails",
                    "playlistId": playlist_id,
                    "maxResults": PAGE_SIZE,
                    "pageToken": token,
                },
                credentials,
            )
        )
        ids = []
        for item in items:
            if not isinstance(item, dict):
                continue
            content = item.get("contentDetails")
            video_id = content.get("videoId") if isinstance(content, dict) else None
            if video_id:
                ids.append(video_id)
        return ids

    # --- Videos ---

    async def resolve_video_details(
        self, video_ids: list[str], credentials: Credentials
    ) -> dict[str, Video]:
        """Resolve videos in batches of 50, one request per batch.

        IDs the API does not return (deleted or private videos) are absent
        from the result.
        """
        result: dict[str, Video] = {}
        for start in range(0, len(video_ids), BATCH_SIZE):
            batch = video_ids[start : start + BATCH_SIZE]
            payload = await self.execute_request(
                "videos", {"part": "snippet", "id": ",".join(batch)}, credentials
            )
            for item in payload.get("items") or []:
                video = self._parse_video(item)
                if video:
                    result[video.id] = video
        logger.debug(
            "Resolved %d/%d videos in %d batches",
            len(result),
            len(video_ids),
            math.ceil(len(video_ids) / BATCH_SIZE),
        )
        return result

    async def get_video(self, video_id: str, credentials: Credentials) -> Video | None:
        """Look up a single video, or None if the API does not know it."""
        return (await self.resolve_video_details([video_id], credentials)).get(video_id)

    # --- Parsing ---

    @staticmethod
    def _thumbnail(snippet: dict) -> str:
        thumbnails = _section(snippet, "thumbnails")
        for size in ("medium", "default"):
            url = _section(thumbnails, size).get("url")
            if url:
                return url
        return ""

    def _parse_playlist(self, item: dict) -> Playlist | None:
        """Parse a ``playlists`` resource, defaulting anything missing."""
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning("Skipping malformed playlist resource")
            return None
        snippet = _section(item, "snippet")
        status = _section(item, "status")
        content = _section(item, "contentDetails")
        playlist_id = item["id"]
        return Playlist(
            id=playlist_id,
            title=snippet.get("title") or playlist_id,
            description=snippet.get("description") or "",
            thumbnail=self._thumbnail(snippet),
            published_at=snippet.get("publishedAt"),
            privacy_status=(
                status.get("privacyStatus") or snippet.get("privacyStatus") or "unknown"
            ),
            video_count=_as_int(content.get("itemCount")),
        )

    def _parse_video(self, item: dict) -> Video | None:
        """Parse a ``videos`` resource. Items without an ID are skipped."""
        video_id = item.get("id") if isinstance(item, dict) else None
        if not video_id:
            logger.warning("Skipping video resource without an id")
            return None
        snippet = _section(item, "snippet")
        category_id = snippet.get("categoryId") or None
        return Video(
            id=video_id,
            category_id=category_id,
            category=get_category_label(category_id),
            title=snippet.get("title") or "",
            channel_title=snippet.get("channelTitle") or "",
            thumbnail=self._thumbnail(snippet),
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()


def _section(data: dict, key: str) -> dict:
    """Return a nested object, or an empty dict when missing or not an object."""
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def extract_video_id(text: str | None) -> str | None:
    """Extract a video ID from a raw ID or a watch, youtu.be or shorts URL."""
    if not text:
        return None
    text = text.strip()
    if len(text) == 11 and "/" not in text:
        return text

    parsed = urlparse(text)
    host = (parsed.hostname or "").lower()
    if host in ("youtu.be", "www.youtu.be"):
        return parsed.path.lstrip("/") or None
    if "youtube.com" in host:
        v = parse_qs(parsed.query).get("v")
        if v and v[0]:
            return v[0]
        if parsed.path.startswith("/shorts/"):
            parts = parsed.path.split("/")
            return parts[2] if len(parts) > 2 and parts[2] else None
    return None


class PlaylistIntelError(Exception):
    """Base class for errors reported to callers."""

    kind = "error"


class MissingCredentials(PlaylistIntelError):
    """Raised when neither an access token nor an API key is usable."""

    kind = "no_credentials"


NoCredentials = MissingCredentials


class QuotaExceeded(PlaylistIntelError):
    """Raised before a request that would cross the daily safety threshold."""

    kind = "quota_exceeded"

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"Daily API quota nearly exhausted ({count}/{limit} calls used today)")


class UpstreamError(PlaylistIntelError):
    """Raised on a non-success response or transport failure."""

    kind = "upstream_error"

    def __init__(self, status: int | None, body: str):
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"YouTube API request failed: {body}")
        else:
            super().__init__(f"YouTube API {status}: {body}")
