"""Domain models - read-only projections of TikTok payloads.

Every ``from_json`` decodes optional fields explicitly: an absent, null or
empty field becomes the zero value of its type instead of an error.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def opt_str(data: dict[str, Any] | None, key: str, default: str = "") -> str:
    """Read an optional string field."""
    if not data:
        return default
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value)


def opt_int(data: dict[str, Any] | None, key: str, default: int = 0) -> int:
    """Read an optional integer field, tolerating numeric strings."""
    if not data:
        return default
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def opt_bool(data: dict[str, Any] | None, key: str, default: bool = False) -> bool:
    """Read an optional boolean field."""
    if not data:
        return default
    value = data.get(key)
    if value is None:
        return default
    return bool(value)


def opt_dict(data: dict[str, Any] | None, key: str) -> dict[str, Any]:
    """Read an optional nested object."""
    if not data:
        return {}
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class TokenInfo:
    """Tokens returned by the authorization code or refresh grant."""

    access_token: str
    open_id: str
    refresh_token: str = ""
    expires_in: int = 0  # Access token validity in seconds
    refresh_expires_in: int = 0  # Refresh token validity in seconds
    scope: tuple[str, ...] = ()
    token_type: str = "Bearer"

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "TokenInfo | None":
        """Build a TokenInfo from a token endpoint response.

        Accepts the flat v2 body as well as the legacy ``{"data": {...}}``
        wrapper.

        Returns:
            The parsed token, or None if access_token or open_id is missing.
        """
        if not payload:
            return None
        data = payload
        if "access_token" not in payload and isinstance(payload.get("data"), dict):
            data = payload["data"]

        access_token = opt_str(data, "access_token")
        open_id = opt_str(data, "open_id")
        if not access_token or not open_id:
            return None

        raw_scope = opt_str(data, "scope")
        scope = tuple(s.strip() for s in raw_scope.split(",") if s.strip())

        return cls(
            access_token=access_token,
            open_id=open_id,
            refresh_token=opt_str(data, "refresh_token"),
            expires_in=opt_int(data, "expires_in"),
            refresh_expires_in=opt_int(data, "refresh_expires_in"),
            scope=scope,
            token_type=opt_str(data, "token_type", "Bearer"),
        )


@dataclass(frozen=True)
class User:
    """Profile of the authenticated user."""

    open_id: str = ""
    union_id: str = ""
    avatar: str = ""
    avatar_larger: str = ""
    avatar_thumb: str = ""
    display_name: str = ""
    bio: str = ""
    url: str = ""
    is_verified: bool = False
    followers: int = 0
    following: int = 0
    likes: int = 0
    num_videos: int = 0
    handle: str = ""

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None, handle: str = "") -> "User":
        """Build a User from the ``/user/info/`` response."""
        user = opt_dict(opt_dict(payload, "data"), "user")
        return cls(
            open_id=opt_str(user, "open_id"),
            union_id=opt_str(user, "union_id"),
            avatar=opt_str(user, "avatar_url"),
            avatar_larger=opt_str(user, "avatar_large_url"),
            avatar_thumb=opt_str(user, "avatar_url_100"),
            display_name=opt_str(user, "display_name"),
            bio=opt_str(user, "bio_description"),
            url=opt_str(user, "profile_deep_link"),
            is_verified=opt_bool(user, "is_verified"),
            followers=opt_int(user, "follower_count"),
            following=opt_int(user, "following_count"),
            likes=opt_int(user, "likes_count"),
            num_videos=opt_int(user, "video_count"),
            handle=handle or opt_str(user, "username"),
        )

    @property
    def best_avatar(self) -> str:
        """Largest available avatar URL."""
        return self.avatar_larger or self.avatar or self.avatar_thumb


@dataclass(frozen=True)
class Video:
    """A post listed by the Display API."""

    id: str = ""
    share_url: str = ""
    create_time: int = 0  # Unix seconds
    cover_image_url: str = ""
    video_description: str = ""
    duration: int = 0
    height: int = 0
    width: int = 0
    title: str = ""
    embed_html: str = ""
    embed_link: str = ""
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    view_count: int = 0

    @classmethod
    def from_json(cls, item: dict[str, Any] | None) -> "Video":
        """Build a Video from one item of ``data.videos``."""
        return cls(
            id=opt_str(item, "id"),
            share_url=opt_str(item, "share_url"),
            create_time=opt_int(item, "create_time"),
            cover_image_url=opt_str(item, "cover_image_url"),
            video_description=opt_str(item, "video_description"),
            duration=opt_int(item, "duration"),
            height=opt_int(item, "height"),
            width=opt_int(item, "width"),
            title=opt_str(item, "title"),
            embed_html=opt_str(item, "embed_html"),
            embed_link=opt_str(item, "embed_link"),
            like_count=opt_int(item, "like_count"),
            comment_count=opt_int(item, "comment_count"),
            share_count=opt_int(item, "share_count"),
            view_count=opt_int(item, "view_count"),
        )

    @property
    def created_at(self) -> datetime | None:
        if not self.create_time:
            return None
        return datetime.fromtimestamp(self.create_time, tz=timezone.utc)


@dataclass
class VideoPage:
    """One page of the video list, keyed by video id in response order."""

    cursor: int = 0
    has_more: bool = False
    videos: dict[str, Video] = field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "VideoPage":
        """Build a page, keeping the last item for any repeated id."""
        data = opt_dict(payload, "data")
        videos: dict[str, Video] = {}
        for item in data.get("videos") or []:
            if not isinstance(item, dict):
                continue
            video = Video.from_json(item)
            videos[video.id] = video
        return cls(
            cursor=opt_int(data, "cursor"),
            has_more=opt_bool(data, "has_more"),
            videos=videos,
        )
