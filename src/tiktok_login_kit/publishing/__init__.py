"""Content Posting API: creator capabilities, upload requests, publish flow."""

from tiktok_login_kit.publishing.coordinator import (
    PublishAttempt,
    PublishCoordinator,
    capability_violations,
    replace_invalid_values,
)
from tiktok_login_kit.publishing.creator import CreatorCapabilities, CreatorQuery
from tiktok_login_kit.publishing.responses import PublishInfo, PublishStatus
from tiktok_login_kit.publishing.uploads import (
    ImagesFromUrls,
    UploadRequest,
    VideoFromFile,
    VideoFromUrl,
)

__all__ = [
    "CreatorCapabilities",
    "CreatorQuery",
    "ImagesFromUrls",
    "PublishAttempt",
    "PublishCoordinator",
    "PublishInfo",
    "PublishStatus",
    "UploadRequest",
    "VideoFromFile",
    "VideoFromUrl",
    "capability_violations",
    "replace_invalid_values",
]
