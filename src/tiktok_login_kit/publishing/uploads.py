"""Publish requests: what to post and where TikTok gets the media from.

Three request kinds form the :data:`UploadRequest` union. Each knows how to
render its own ``post_info``/``source_info`` payload; the coordinator owns
the network flow.
"""

import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, BinaryIO, ClassVar
from urllib.parse import urlparse

from tiktok_login_kit.domain.enums import (
    MediaType,
    PostMode,
    PrivacyLevel,
    SourceType,
    is_valid_privacy_level,
)

TIKTOK_PUBLISH_URL = "https://open.tiktokapis.com/v2/post/publish"
TIKTOK_VIDEO_INIT_URL = f"{TIKTOK_PUBLISH_URL}/video/init/"
TIKTOK_CONTENT_INIT_URL = f"{TIKTOK_PUBLISH_URL}/content/init/"

DEFAULT_COVER_TIMESTAMP_MS = 1000
DEFAULT_VIDEO_MIME = "video/mp4"


def _check_privacy(privacy_level: str) -> None:
    if not is_valid_privacy_level(privacy_level):
        valid = ", ".join(p.value for p in PrivacyLevel)
        raise ValueError(f"TikTok Invalid Privacy Level Provided: {privacy_level}. Must be: {valid}")


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass(kw_only=True)
class _PostRequest(ABC):
    """Settings shared by every kind of post."""

    title: str
    privacy_level: str = PrivacyLevel.PRIVATE
    comments_off: bool = False
    is_brand_content: bool = False  # Paid partnership promoting a third party
    is_brand_organic: bool = False  # Promotes the creator's own business

    media_type: ClassVar[MediaType] = MediaType.VIDEO
    source_type: ClassVar[SourceType] = SourceType.PULL_FROM_URL
    init_url: ClassVar[str] = TIKTOK_VIDEO_INIT_URL

    def __post_init__(self) -> None:
        _check_privacy(self.privacy_level)

    @property
    def supports_duet_stitch(self) -> bool:
        return self.media_type == MediaType.VIDEO

    @property
    def is_file_upload(self) -> bool:
        return self.source_type == SourceType.FILE_UPLOAD

    def with_changes(self, **changes: Any) -> "_PostRequest":
        """Copy of this request with some settings replaced (re-validated)."""
        return replace(self, **changes)

    @abstractmethod
    def build_payload(self) -> dict[str, Any]:
        """Request body for the init endpoint."""


@dataclass(kw_only=True)
class _VideoRequest(_PostRequest):
    duet_off: bool = False
    stitch_off: bool = False
    video_cover_timestamp_ms: int = DEFAULT_COVER_TIMESTAMP_MS

    def _post_info(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "privacy_level": str(self.privacy_level),
            "disable_comment": self.comments_off,
            "disable_duet": self.duet_off,
            "disable_stitch": self.stitch_off,
            "video_cover_timestamp_ms": self.video_cover_timestamp_ms,
            "brand_content_toggle": self.is_brand_content,
            "brand_organic_toggle": self.is_brand_organic,
        }


@dataclass(kw_only=True)
class VideoFromUrl(_VideoRequest):
    """A video TikTok downloads from a public, domain-verified URL."""

    url: str

    def __post_init__(self) -> None:
        super().__post_init__()
        if not _is_http_url(self.url):
            raise ValueError(f"Invalid Video URL: {self.url!r}")

    def build_payload(self) -> dict[str, Any]:
        return {
            "post_info": self._post_info(),
            "source_info": {
                "source": SourceType.PULL_FROM_URL.value,
                "video_url": self.url,
            },
        }


@dataclass(kw_only=True)
class VideoFromFile(_VideoRequest):
    """A local video file pushed to TikTok in a single chunk."""

    path: Path
    mime_type: str = ""
    size: int = field(init=False, default=0)

    source_type: ClassVar[SourceType] = SourceType.FILE_UPLOAD

    def __post_init__(self) -> None:
        super().__post_init__()
        self.path = Path(self.path)
        if not self.path.is_file():
            raise ValueError(f"TikTok file to be uploaded doesn't exist: {self.path}")
        self.size = self.path.stat().st_size
        if self.size == 0:
            raise ValueError(f"TikTok file to be uploaded is empty: {self.path}")
        if not self.mime_type:
            guessed, _ = mimetypes.guess_type(self.path.name)
            self.mime_type = guessed or DEFAULT_VIDEO_MIME

    def open(self) -> BinaryIO:
        """Open the file for streaming to the upload URL."""
        return self.path.open("rb")

    def build_payload(self) -> dict[str, Any]:
        # The whole file is announced as one chunk
        return {
            "post_info": self._post_info(),
            "source_info": {
                "source": SourceType.FILE_UPLOAD.value,
                "video_size": self.size,
                "chunk_size": self.size,
                "total_chunk_count": 1,
            },
        }


@dataclass(kw_only=True)
class ImagesFromUrls(_PostRequest):
    """A photo post whose images TikTok downloads from public URLs.

    ``title`` is sent as the post description; TikTok keeps photo titles
    short, so the payload title is left empty.
    """

    urls: list[str]
    photo_cover_index: int = 0
    auto_add_music: bool = False

    media_type: ClassVar[MediaType] = MediaType.PHOTO
    init_url: ClassVar[str] = TIKTOK_CONTENT_INIT_URL

    def __post_init__(self) -> None:
        super().__post_init__()
        self.urls = list(self.urls)
        if not self.urls:
            raise ValueError("Please provide at least 1 image URL to Publish")
        for url in self.urls:
            if not _is_http_url(url):
                raise ValueError(f"Invalid Image URL: {url!r}")
        if not 0 <= self.photo_cover_index < len(self.urls):
            raise ValueError(f"photo_cover_index {self.photo_cover_index} is out of range")

    def build_payload(self) -> dict[str, Any]:
        return {
            "post_info": {
                "title": "",
                "description": self.title,
                "privacy_level": str(self.privacy_level),
                "disable_comment": self.comments_off,
                "auto_add_music": self.auto_add_music,
                "brand_content_toggle": self.is_brand_content,
                "brand_organic_toggle": self.is_brand_organic,
            },
            "source_info": {
                "source": SourceType.PULL_FROM_URL.value,
                "photo_cover_index": self.photo_cover_index,
                "photo_images": list(self.urls),
            },
            "post_mode": PostMode.DIRECT_POST.value,
            "media_type": MediaType.PHOTO.value,
        }


UploadRequest = VideoFromUrl | VideoFromFile | ImagesFromUrls
