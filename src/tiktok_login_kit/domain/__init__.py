"""Domain models and enumerations."""

from tiktok_login_kit.domain.enums import (
    MediaType,
    Permission,
    PostMode,
    PrivacyLevel,
    PublishMode,
    PublishState,
    PublishStatusValue,
    SourceType,
    UserField,
    VideoField,
)
from tiktok_login_kit.domain.models import TokenInfo, User, Video, VideoPage

__all__ = [
    "MediaType",
    "Permission",
    "PostMode",
    "PrivacyLevel",
    "PublishMode",
    "PublishState",
    "PublishStatusValue",
    "SourceType",
    "TokenInfo",
    "User",
    "UserField",
    "Video",
    "VideoField",
    "VideoPage",
]
