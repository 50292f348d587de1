"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

# Set test environment before importing client modules
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TIKTOK_CLIENT_KEY"] = "test_client_key"
os.environ["TIKTOK_CLIENT_SECRET"] = "test_client_secret"
os.environ["TIKTOK_REDIRECT_URI"] = "https://example.com/tiktok/callback"
os.environ["PUBLISH_POLL_INTERVAL_SECONDS"] = "0"
os.environ["PUBLISH_POLL_MAX_ATTEMPTS"] = "10"


class FakeTikTok:
    """Scripted TikTok API served through httpx.MockTransport.

    Responses are queued per URL path. Each request consumes the next queued
    response; the last one is repeated once the queue runs dry.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, *responses: Any) -> None:
        """Queue responses: a dict (200 JSON), an httpx.Response or an exception."""
        self.routes.setdefault(path, []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, text="not found")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def json_body(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content)

    @staticmethod
    def form_body(request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def api() -> FakeTikTok:
    """Get an empty scripted TikTok API."""
    return FakeTikTok()


@pytest.fixture
def transport(api):
    """Get a transport whose requests are answered by the scripted API."""
    from tiktok_login_kit.http import Transport

    client = httpx.Client(transport=httpx.MockTransport(api.handler), follow_redirects=True)
    return Transport(client=client)


@pytest.fixture
def make_connector(transport) -> Callable[..., Any]:
    """Get a factory for connectors wired to the scripted API."""
    from tiktok_login_kit.connector import Connector

    def _make(access_token: str = "act.test_token", open_id: str = "open_123"):
        connector = Connector(
            client_key="test_client_key",
            client_secret="test_client_secret",
            redirect_uri="https://example.com/tiktok/callback",
            transport=transport,
        )
        if access_token:
            connector.set_token(access_token, open_id)
        return connector

    return _make


@pytest.fixture
def connector(make_connector):
    """Get an authenticated connector."""
    return make_connector()


@pytest.fixture
def session_store():
    """Get an empty in-memory session store."""
    from tiktok_login_kit.session import InMemorySessionStore

    return InMemorySessionStore()


@pytest.fixture
def creator_payload() -> dict[str, Any]:
    """Creator info allowing every interaction and privacy level."""
    return {
        "data": {
            "creator_avatar_url": "https://p16.tiktokcdn.com/avatar.jpeg",
            "creator_nickname": "Test Creator",
            "creator_username": "testcreator",
            "comment_disabled": False,
            "duet_disabled": False,
            "stitch_disabled": False,
            "max_video_post_duration_sec": 300,
            "privacy_level_options": [
                "PUBLIC_TO_EVERYONE",
                "MUTUAL_FOLLOW_FRIENDS",
                "FOLLOWER_OF_CREATOR",
                "SELF_ONLY",
            ],
        },
        "error": {"code": "ok", "message": "", "log_id": "log_creator"},
    }


@pytest.fixture
def video_file(tmp_path):
    """Get a small fake video file."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 1000)
    return path
