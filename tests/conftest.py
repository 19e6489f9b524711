"""Shared fixtures: an in-memory store, a pinned-date quota tracker and a client."""

from datetime import date

import pytest

from playlist_intel.auth import Credentials
from playlist_intel.client import YouTubeClient
from playlist_intel.config import Config
from playlist_intel.quota import QuotaTracker
from playlist_intel.storage import MemoryStore

TODAY = date(2026, 3, 1)


@pytest.fixture
def config():
    return Config(
        YOUTUBE_API_KEY="test-key",
        YOUTUBE_CHANNEL_ID="UCtest",
        YOUTUBE_API_BASE="https://yt.test/youtube/v3",
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def quota(store):
    return QuotaTracker(store, today=lambda: TODAY)


@pytest.fixture
def client(config, quota):
    return YouTubeClient(config, quota)


@pytest.fixture
def key_credentials():
    return Credentials(api_key="test-key", channel_id="UCtest")


@pytest.fixture
def token_credentials():
    return Credentials(api_key="test-key", bearer_token="tok")
