"""Display API: user profile and video listings."""

import re
from collections.abc import Iterable, Iterator
from typing import Any

from tiktok_login_kit.config import settings
from tiktok_login_kit.domain.enums import UserField, VideoField
from tiktok_login_kit.domain.models import User, Video, VideoPage
from tiktok_login_kit.errors import ApiError, InvalidFieldError
from tiktok_login_kit.http import Transport, bearer_headers, raise_for_api_error
from tiktok_login_kit.logging import get_logger
from tiktok_login_kit.oauth import TokenStore

logger = get_logger(__name__)

TIKTOK_API_URL = "https://open.tiktokapis.com/v2"
TIKTOK_USER_INFO_URL = f"{TIKTOK_API_URL}/user/info/"
TIKTOK_VIDEO_LIST_URL = f"{TIKTOK_API_URL}/video/list/"
TIKTOK_VIDEO_QUERY_URL = f"{TIKTOK_API_URL}/video/query/"

# TikTok caps both max_count and filters.video_ids at 20
MAX_PAGE_SIZE = 20
MAX_QUERY_IDS = 20

# Fields available with the user.info.basic scope
DEFAULT_USER_FIELDS = (
    UserField.OPEN_ID,
    UserField.UNION_ID,
    UserField.AVATAR_URL,
    UserField.AVATAR_URL_100,
    UserField.AVATAR_LARGE_URL,
    UserField.DISPLAY_NAME,
)
DEFAULT_VIDEO_FIELDS = tuple(VideoField)

# The profile deep link redirects to a page whose URL embeds the @handle,
# either plain or percent-encoded inside a redirect parameter
_HANDLE_PATTERNS = (
    re.compile(r"www\.tiktok\.com%2F%40([^%&]+)"),
    re.compile(r"www\.tiktok\.com/@([^?/&]+)"),
)


def _validate_fields(fields: Iterable[str], allowed: type[UserField] | type[VideoField]) -> list[str]:
    """Check requested fields against a field enum, keeping request order."""
    validated: list[str] = []
    for name in fields:
        try:
            value = allowed(name).value
        except ValueError:
            valid = ", ".join(f.value for f in allowed)
            raise InvalidFieldError(f"Invalid field requested: {name!r}. Valid fields are: {valid}") from None
        if value not in validated:
            validated.append(value)
    return validated


def _video_fields(fields: Iterable[str]) -> list[str]:
    """Validated video fields, always including the id pages are keyed on."""
    return _validate_fields([VideoField.ID, *fields], VideoField)


def parse_handle_from_url(url: str) -> str:
    """Extract the @handle from a TikTok profile URL, or ""."""
    for pattern in _HANDLE_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return ""


class ResourceFetcher:
    """Authenticated reads of the user profile and video list."""

    def __init__(self, tokens: TokenStore, transport: Transport) -> None:
        self.tokens = tokens
        self.transport = transport

    def _authorized_headers(self, json_body: bool = False) -> dict[str, str]:
        if not self.tokens.access_token:
            raise ApiError("No access token: authorize or set a token first")
        return bearer_headers(self.tokens.access_token, json_body=json_body)

    def get_user_profile(
        self,
        fields: Iterable[str] = DEFAULT_USER_FIELDS,
        resolve_handle: bool = False,
    ) -> User:
        """Fetch the authenticated user's profile.

        Args:
            fields: User fields to request; each needs the matching scope.
            resolve_handle: Follow the profile deep link to find the @handle.

        Raises:
            InvalidFieldError: If a field is unknown.
            ApiError: If TikTok reports an error.
            TransportError: If no response was received.
        """
        requested = _validate_fields(fields, UserField)
        payload = self.transport.request_json(
            "GET",
            TIKTOK_USER_INFO_URL,
            self._authorized_headers(),
            params={"fields": ",".join(requested)},
        )
        raise_for_api_error(payload, "user info")

        user = User.from_json(payload)
        if resolve_handle and user.url and not user.handle:
            handle = self.resolve_handle(user.url)
            if handle:
                user = User.from_json(payload, handle=handle)
        return user

    def resolve_handle(self, profile_url: str) -> str:
        """Follow a profile deep link and parse the handle from where it lands."""
        result, error = self.transport.request(
            "GET",
            profile_url,
            {"User-Agent": "Mozilla/5.0 (compatible; tiktok-login-kit)"},
        )
        if result is None:
            logger.warning("tiktok_handle_resolution_failed", error=error)
            return ""
        return parse_handle_from_url(result.url) or parse_handle_from_url(profile_url)

    def list_videos(
        self,
        cursor: int = 0,
        page_size: int | None = None,
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> VideoPage:
        """Fetch one page of the user's public videos.

        Args:
            cursor: Cursor returned by the previous page (0 for the first).
            page_size: Videos per page; values below 1 fall back to the default.
            fields: Video fields to request; ``id`` is always added.

        Raises:
            ValueError: If the cursor is negative.
            InvalidFieldError: If a field is unknown.
            ApiError: If TikTok reports an error.
            TransportError: If no response was received.
        """
        if cursor < 0:
            raise ValueError(f"cursor must be >= 0, got {cursor}")
        if page_size is None or page_size < 1:
            page_size = settings.video_list_page_size
        page_size = min(page_size, MAX_PAGE_SIZE)

        requested = _video_fields(fields)
        payload = self.transport.request_json(
            "POST",
            TIKTOK_VIDEO_LIST_URL,
            self._authorized_headers(json_body=True),
            params={"fields": ",".join(requested)},
            json={"cursor": cursor, "max_count": page_size},
        )
        raise_for_api_error(payload, "video list")

        page = VideoPage.from_json(payload)
        logger.debug(
            "tiktok_video_page_fetched",
            cursor=cursor,
            next_cursor=page.cursor,
            count=len(page.videos),
            has_more=page.has_more,
        )
        return page

    def iter_video_pages(
        self,
        max_pages: int = 0,
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
        page_size: int | None = None,
    ) -> Iterator[VideoPage]:
        """Walk the video list page by page.

        Stops when TikTok reports ``has_more`` false, or after ``max_pages``
        pages when it is positive (0 means no page limit).
        """
        fields = list(fields)
        cursor = 0
        pages = 0
        while True:
            page = self.list_videos(cursor=cursor, page_size=page_size, fields=fields)
            pages += 1
            yield page
            if not page.has_more:
                return
            if max_pages > 0 and pages >= max_pages:
                return
            cursor = page.cursor

    def list_all_videos(
        self,
        max_pages: int = 0,
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> Iterator[Video]:
        """Yield every video across pages, in listing order."""
        for page in self.iter_video_pages(max_pages=max_pages, fields=fields):
            yield from page.videos.values()

    def query_videos(
        self,
        video_ids: Iterable[str],
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> dict[str, Video]:
        """Fetch specific videos of the authenticated user by id.

        Raises:
            ValueError: If no ids or more than 20 ids are given.
        """
        ids = list(dict.fromkeys(video_ids))
        if not ids or len(ids) > MAX_QUERY_IDS:
            raise ValueError(f"Between 1 and {MAX_QUERY_IDS} video ids are required, got {len(ids)}")

        requested = _video_fields(fields)
        payload: dict[str, Any] = self.transport.request_json(
            "POST",
            TIKTOK_VIDEO_QUERY_URL,
            self._authorized_headers(json_body=True),
            params={"fields": ",".join(requested)},
            json={"filters": {"video_ids": ids}},
        )
        raise_for_api_error(payload, "video query")
        return VideoPage.from_json(payload).videos
