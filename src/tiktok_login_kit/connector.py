"""Single entry point composing the OAuth, Display and Content Posting clients."""

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from tiktok_login_kit.config import Settings, get_settings
from tiktok_login_kit.domain.enums import PublishMode
from tiktok_login_kit.domain.models import TokenInfo, User, Video, VideoPage
from tiktok_login_kit.http import Transport
from tiktok_login_kit.logging import get_logger
from tiktok_login_kit.oauth import (
    DEFAULT_PERMISSIONS,
    AppCredentials,
    Authorizer,
    Refresher,
    TokenStore,
)
from tiktok_login_kit.publishing.coordinator import PublishAttempt, PublishCoordinator
from tiktok_login_kit.publishing.creator import CreatorCapabilities, CreatorQuery
from tiktok_login_kit.publishing.responses import PublishInfo, PublishStatus
from tiktok_login_kit.publishing.uploads import UploadRequest
from tiktok_login_kit.resources import DEFAULT_USER_FIELDS, DEFAULT_VIDEO_FIELDS, ResourceFetcher
from tiktok_login_kit.session import SessionStore

logger = get_logger(__name__)


class Connector:
    """TikTok client for one app and one user.

    Holds the app credentials, the current access token and the HTTP
    transport. Not thread-safe; use one connector per caller.

    Example:
        connector = Connector.from_settings()
        url = connector.build_authorization_url(session)
        ...
        connector.exchange_code(code, state, session)
        user = connector.get_user_profile()
    """

    def __init__(
        self,
        client_key: str,
        client_secret: str,
        redirect_uri: str,
        transport: Transport | None = None,
    ) -> None:
        self.credentials = AppCredentials(client_key, client_secret, redirect_uri)
        self.tokens = TokenStore()
        self.transport = transport or Transport()

        self.authorizer = Authorizer(self.credentials, self.tokens, self.transport)
        self.refresher = Refresher(self.credentials, self.tokens, self.transport)
        self.resources = ResourceFetcher(self.tokens, self.transport)
        self.capabilities = CreatorCapabilities(self.tokens, self.transport)
        self.publisher = PublishCoordinator(self.tokens, self.transport, self.capabilities)

    @classmethod
    def from_settings(
        cls,
        app_settings: Settings | None = None,
        transport: Transport | None = None,
    ) -> "Connector":
        """Build a connector from environment settings.

        Raises:
            ConfigError: If the client key or secret is not configured.
        """
        app_settings = app_settings or get_settings()
        client_key, client_secret, redirect_uri = app_settings.require_credentials()
        if transport is None:
            transport = Transport(timeout=app_settings.http_timeout_seconds)
        return cls(client_key, client_secret, redirect_uri, transport)

    @classmethod
    def from_ini(cls, path: str | Path, transport: Transport | None = None) -> "Connector":
        """Build a connector from an .ini credentials file.

        Raises:
            ConfigError: If the file does not exist or misses a required key.
        """
        return cls.from_settings(Settings.from_ini(path), transport)

    # Token state

    def set_token(self, access_token: str, open_id: str = "") -> None:
        """Use a token obtained earlier (e.g. persisted by the caller)."""
        self.tokens.access_token = access_token
        self.tokens.open_id = open_id
        logger.debug("tiktok_token_set", open_id=open_id)

    @property
    def access_token(self) -> str:
        return self.tokens.access_token

    @property
    def open_id(self) -> str:
        return self.tokens.open_id

    # OAuth

    def build_authorization_url(
        self,
        session: SessionStore,
        permissions: Iterable[str] = DEFAULT_PERMISSIONS,
    ) -> str:
        return self.authorizer.build_authorization_url(session, permissions)

    def is_callback_present(self, query: Mapping[str, Any]) -> bool:
        return self.authorizer.is_callback_present(query)

    def exchange_code(self, code: str, received_state: str | None, session: SessionStore) -> TokenInfo:
        return self.authorizer.exchange_code(code, received_state, session)

    def refresh(self, refresh_token: str) -> TokenInfo | None:
        return self.refresher.refresh(refresh_token)

    def revoke(self, access_token: str | None = None) -> bool:
        return self.refresher.revoke(access_token)

    # Display API

    def get_user_profile(
        self,
        fields: Iterable[str] = DEFAULT_USER_FIELDS,
        resolve_handle: bool = False,
    ) -> User:
        return self.resources.get_user_profile(fields, resolve_handle)

    def list_videos(
        self,
        cursor: int = 0,
        page_size: int | None = None,
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> VideoPage:
        return self.resources.list_videos(cursor, page_size, fields)

    def list_all_videos(
        self,
        max_pages: int = 0,
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> Iterator[Video]:
        return self.resources.list_all_videos(max_pages, fields)

    def query_videos(
        self,
        video_ids: Iterable[str],
        fields: Iterable[str] = DEFAULT_VIDEO_FIELDS,
    ) -> dict[str, Video]:
        return self.resources.query_videos(video_ids, fields)

    # Content Posting API

    def query_capabilities(self) -> CreatorQuery:
        return self.capabilities.query_capabilities()

    def publish(self, request: UploadRequest) -> PublishInfo:
        return self.publisher.publish(request)

    def publish_replacing_invalid_values(self, request: UploadRequest) -> PublishInfo:
        return self.publisher.publish_replacing_invalid_values(request)

    def publish_without_checks(self, request: UploadRequest) -> PublishInfo:
        return self.publisher.publish_without_checks(request)

    def start_publish(self, request: UploadRequest, mode: PublishMode = PublishMode.STRICT) -> PublishAttempt:
        return self.publisher.start(request, mode)

    def check_publish_status(self, publish_id: str) -> PublishStatus:
        return self.publisher.check_publish_status(publish_id)

    def wait_until_published(
        self,
        publish_id: str,
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> PublishStatus:
        return self.publisher.wait_until_published(publish_id, max_attempts, interval)

    # Lifecycle

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "Connector":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
