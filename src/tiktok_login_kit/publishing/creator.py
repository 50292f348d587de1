"""Creator info: the per-account constraints on what may be published."""

from dataclasses import dataclass
from typing import Any

from tiktok_login_kit.domain.enums import is_valid_privacy_level
from tiktok_login_kit.domain.models import opt_bool, opt_dict, opt_int, opt_str
from tiktok_login_kit.errors import ApiError, MalformedResponseError
from tiktok_login_kit.http import Transport, bearer_headers, raise_for_api_error
from tiktok_login_kit.logging import get_logger
from tiktok_login_kit.oauth import TokenStore
from tiktok_login_kit.publishing.uploads import TIKTOK_PUBLISH_URL

logger = get_logger(__name__)

TIKTOK_CREATOR_INFO_URL = f"{TIKTOK_PUBLISH_URL}/creator_info/query/"


@dataclass(frozen=True)
class CreatorQuery:
    """Point-in-time snapshot of a creator's publishing capabilities."""

    avatar_url: str
    nickname: str
    username: str
    duet_off: bool
    stitch_off: bool
    comment_off: bool
    max_video_duration_sec: int
    privacy_options: frozenset[str]

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "CreatorQuery":
        """Parse the creator_info response.

        Privacy options this client does not know are dropped.

        Raises:
            MalformedResponseError: If ``data.creator_nickname`` is absent.
        """
        data = opt_dict(payload, "data")
        if not opt_str(data, "creator_nickname"):
            raise MalformedResponseError(f"Invalid TikTok JSON: {payload!r}", payload)

        options = data.get("privacy_level_options") or []
        known = frozenset(o for o in options if isinstance(o, str) and is_valid_privacy_level(o))
        dropped = [o for o in options if not (isinstance(o, str) and o in known)]
        if dropped:
            logger.debug("tiktok_unknown_privacy_options_dropped", options=dropped)

        return cls(
            avatar_url=opt_str(data, "creator_avatar_url"),
            nickname=opt_str(data, "creator_nickname"),
            username=opt_str(data, "creator_username"),
            duet_off=opt_bool(data, "duet_disabled"),
            stitch_off=opt_bool(data, "stitch_disabled"),
            comment_off=opt_bool(data, "comment_disabled"),
            max_video_duration_sec=opt_int(data, "max_video_post_duration_sec"),
            privacy_options=known,
        )

    def has_privacy_option(self, option: str) -> bool:
        return option in self.privacy_options


class CreatorCapabilities:
    """Fetches creator info for the authenticated account."""

    def __init__(self, tokens: TokenStore, transport: Transport) -> None:
        self.tokens = tokens
        self.transport = transport

    def query_capabilities(self) -> CreatorQuery:
        """Fetch a fresh capability snapshot. Never cached.

        Raises:
            ApiError: If TikTok reports an error or no token is set.
            MalformedResponseError: If the payload lacks the creator nickname.
            TransportError: If no response was received.
        """
        if not self.tokens.access_token:
            raise ApiError("No access token: authorize or set a token first")

        payload = self.transport.request_json(
            "POST",
            TIKTOK_CREATOR_INFO_URL,
            bearer_headers(self.tokens.access_token, json_body=True),
            json={},
        )
        raise_for_api_error(payload, "creator info")
        return CreatorQuery.from_json(payload)
