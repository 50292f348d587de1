"""Domain enumerations."""

from enum import StrEnum


class Permission(StrEnum):
    """OAuth scopes the client knows how to request."""

    USER_INFO_BASIC = "user.info.basic"
    USER_INFO_PROFILE = "user.info.profile"
    USER_INFO_STATS = "user.info.stats"
    VIDEO_LIST = "video.list"
    VIDEO_PUBLISH = "video.publish"  # Direct Post
    VIDEO_UPLOAD = "video.upload"  # Upload to inbox


class PrivacyLevel(StrEnum):
    """Visibility of a published post."""

    PUBLIC = "PUBLIC_TO_EVERYONE"
    FRIENDS = "MUTUAL_FOLLOW_FRIENDS"
    FOLLOWERS = "FOLLOWER_OF_CREATOR"
    PRIVATE = "SELF_ONLY"


# Most restrictive level, used when an invalid value has to be replaced
MOST_RESTRICTIVE_PRIVACY = PrivacyLevel.PRIVATE


class UserField(StrEnum):
    """Fields of the user info endpoint."""

    OPEN_ID = "open_id"
    UNION_ID = "union_id"
    AVATAR_URL = "avatar_url"
    AVATAR_URL_100 = "avatar_url_100"
    AVATAR_LARGE_URL = "avatar_large_url"
    DISPLAY_NAME = "display_name"
    BIO_DESCRIPTION = "bio_description"
    PROFILE_DEEP_LINK = "profile_deep_link"
    IS_VERIFIED = "is_verified"
    USERNAME = "username"
    FOLLOWER_COUNT = "follower_count"
    FOLLOWING_COUNT = "following_count"
    LIKES_COUNT = "likes_count"
    VIDEO_COUNT = "video_count"


class VideoField(StrEnum):
    """Fields of the video list/query endpoints."""

    ID = "id"
    CREATE_TIME = "create_time"
    COVER_IMAGE_URL = "cover_image_url"
    SHARE_URL = "share_url"
    VIDEO_DESCRIPTION = "video_description"
    DURATION = "duration"
    HEIGHT = "height"
    WIDTH = "width"
    TITLE = "title"
    EMBED_HTML = "embed_html"
    EMBED_LINK = "embed_link"
    LIKE_COUNT = "like_count"
    COMMENT_COUNT = "comment_count"
    SHARE_COUNT = "share_count"
    VIEW_COUNT = "view_count"


class PublishStatusValue(StrEnum):
    """Status values reported by the publish status endpoint."""

    PROCESSING_DOWNLOAD = "PROCESSING_DOWNLOAD"
    PROCESSING_UPLOAD = "PROCESSING_UPLOAD"
    SEND_TO_USER_INBOX = "SEND_TO_USER_INBOX"
    PUBLISH_COMPLETE = "PUBLISH_COMPLETE"
    FAILED = "FAILED"


TERMINAL_PUBLISH_STATUSES = frozenset(
    {PublishStatusValue.PUBLISH_COMPLETE, PublishStatusValue.FAILED}
)


class PublishState(StrEnum):
    """Local state of one publish attempt."""

    NOT_STARTED = "not_started"
    CAPABILITY_CHECKED = "capability_checked"
    SESSION_INITIATED = "session_initiated"
    UPLOADING = "uploading"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"


class PublishMode(StrEnum):
    """How creator capabilities are applied before publishing."""

    STRICT = "strict"
    LENIENT = "lenient"
    UNCHECKED = "unchecked"


class SourceType(StrEnum):
    """Where TikTok gets the media from."""

    PULL_FROM_URL = "PULL_FROM_URL"
    FILE_UPLOAD = "FILE_UPLOAD"


class MediaType(StrEnum):
    VIDEO = "VIDEO"
    PHOTO = "PHOTO"


class PostMode(StrEnum):
    DIRECT_POST = "DIRECT_POST"
    MEDIA_UPLOAD = "MEDIA_UPLOAD"


def is_valid_privacy_level(value: str) -> bool:
    """Check a raw privacy string against the known levels."""
    return value in {level.value for level in PrivacyLevel}
