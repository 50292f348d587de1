"""Content Posting API publish workflow.

Publishing Flow:
1. POST /v2/post/publish/creator_info/query/ - Check creator capabilities
2. POST /v2/post/publish/video/init/ (or content/init/ for photos) - Initialize
3. PUT upload_url - Upload the file in a single chunk (FILE_UPLOAD only)
4. POST /v2/post/publish/status/fetch/ - Poll until PUBLISH_COMPLETE or FAILED
"""

import time
from dataclasses import dataclass, field

from tiktok_login_kit.config import settings
from tiktok_login_kit.domain.enums import MOST_RESTRICTIVE_PRIVACY, PublishMode, PublishState
from tiktok_login_kit.errors import ApiError, CapabilityViolationError, UploadSessionError
from tiktok_login_kit.http import Transport, bearer_headers
from tiktok_login_kit.logging import get_logger
from tiktok_login_kit.oauth import TokenStore
from tiktok_login_kit.publishing.creator import CreatorCapabilities, CreatorQuery
from tiktok_login_kit.publishing.responses import PublishInfo, PublishStatus
from tiktok_login_kit.publishing.uploads import (
    TIKTOK_PUBLISH_URL,
    UploadRequest,
    VideoFromFile,
)

logger = get_logger(__name__)

TIKTOK_POST_STATUS_URL = f"{TIKTOK_PUBLISH_URL}/status/fetch/"


@dataclass
class PublishAttempt:
    """One run through the publish state machine."""

    request: UploadRequest
    mode: PublishMode
    state: PublishState = PublishState.NOT_STARTED
    creator: CreatorQuery | None = None
    info: PublishInfo | None = None
    status: PublishStatus | None = None
    history: list[PublishState] = field(default_factory=lambda: [PublishState.NOT_STARTED])

    def advance(self, state: PublishState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def publish_id(self) -> str:
        return self.info.publish_id if self.info else ""


def capability_violations(request: UploadRequest, creator: CreatorQuery) -> list[str]:
    """List the settings of ``request`` the creator is not allowed to use."""
    violations = []
    if not creator.has_privacy_option(request.privacy_level):
        allowed = ", ".join(sorted(creator.privacy_options)) or "none"
        violations.append(
            f"This Creator cannot publish with the privacy level {request.privacy_level} (allowed: {allowed})"
        )
    if creator.comment_off and not request.comments_off:
        violations.append("This Creator cannot publish without turning off the Comments")
    if request.supports_duet_stitch:
        if creator.duet_off and not request.duet_off:
            violations.append("This Creator cannot publish without turning off Duet")
        if creator.stitch_off and not request.stitch_off:
            violations.append("This Creator cannot publish without turning off Stitch")
    return violations


def replace_invalid_values(request: UploadRequest, creator: CreatorQuery) -> UploadRequest:
    """Copy of ``request`` downgraded to what the creator allows."""
    changes: dict[str, object] = {}
    if not creator.has_privacy_option(request.privacy_level):
        changes["privacy_level"] = MOST_RESTRICTIVE_PRIVACY
    if creator.comment_off and not request.comments_off:
        changes["comments_off"] = True
    if request.supports_duet_stitch:
        if creator.duet_off and not request.duet_off:
            changes["duet_off"] = True
        if creator.stitch_off and not request.stitch_off:
            changes["stitch_off"] = True
    if not changes:
        return request
    logger.info("tiktok_publish_values_replaced", changes={k: str(v) for k, v in changes.items()})
    return request.with_changes(**changes)


class PublishCoordinator:
    """Drives a post from capability check to terminal status."""

    def __init__(
        self,
        tokens: TokenStore,
        transport: Transport,
        capabilities: CreatorCapabilities | None = None,
    ) -> None:
        self.tokens = tokens
        self.transport = transport
        self.capabilities = capabilities or CreatorCapabilities(tokens, transport)

    def _access_token(self) -> str:
        if not self.tokens.access_token:
            raise ApiError("No access token: authorize or set a token first")
        return self.tokens.access_token

    def publish(self, request: UploadRequest) -> PublishInfo:
        """Publish after validating against the creator's capabilities.

        Raises:
            CapabilityViolationError: Before any upload, if a setting is not allowed.
        """
        return self.start(request, PublishMode.STRICT).info

    def publish_replacing_invalid_values(self, request: UploadRequest) -> PublishInfo:
        """Publish, silently downgrading settings the creator cannot use.

        The privacy level falls back to SELF_ONLY and disabled interactions
        are turned off. ``request`` itself is not modified.
        """
        return self.start(request, PublishMode.LENIENT).info

    def publish_without_checks(self, request: UploadRequest) -> PublishInfo:
        """Publish without querying creator capabilities."""
        return self.start(request, PublishMode.UNCHECKED).info

    def start(self, request: UploadRequest, mode: PublishMode = PublishMode.STRICT) -> PublishAttempt:
        """Run the publish flow up to polling.

        Returns:
            The attempt, in POLLING state on success or FAILED when TikTok
            rejected the init call.

        Raises:
            CapabilityViolationError: In strict mode, if a setting is not allowed.
            UploadSessionError: If a file upload session cannot be opened or fed.
            MalformedResponseError: If the init response lacks ``error.code``.
            TransportError: If no response was received.
        """
        attempt = PublishAttempt(request=request, mode=mode)

        if mode != PublishMode.UNCHECKED:
            creator = self.capabilities.query_capabilities()
            attempt.creator = creator
            if mode == PublishMode.STRICT:
                violations = capability_violations(request, creator)
                if violations:
                    raise CapabilityViolationError("TikTok Error: " + "; ".join(violations))
            else:
                attempt.request = replace_invalid_values(request, creator)
            attempt.advance(PublishState.CAPABILITY_CHECKED)

        info = self._initiate(attempt.request)
        attempt.info = info
        attempt.advance(PublishState.SESSION_INITIATED)

        if isinstance(attempt.request, VideoFromFile):
            if not info.upload_url:
                attempt.advance(PublishState.FAILED)
                raise UploadSessionError(
                    f"TikTok Api Error, invalid Upload. Error: {info.error_code} - {info.error_message}",
                    code=info.error_code,
                    log_id=info.log_id,
                )
            attempt.advance(PublishState.UPLOADING)
            self._transfer(attempt.request, info.upload_url)
        elif not info.success:
            logger.warning(
                "tiktok_publish_init_rejected",
                error_code=info.error_code,
                error_message=info.error_message,
                log_id=info.log_id,
            )
            attempt.advance(PublishState.FAILED)
            return attempt

        attempt.advance(PublishState.POLLING)
        return attempt

    def _initiate(self, request: UploadRequest) -> PublishInfo:
        payload = self.transport.request_json(
            "POST",
            request.init_url,
            bearer_headers(self._access_token(), json_body=True),
            json=request.build_payload(),
        )
        info = PublishInfo.from_json(payload)
        logger.info(
            "tiktok_publish_initiated",
            publish_id=info.publish_id,
            success=info.success,
            source=request.source_type.value,
            media_type=request.media_type.value,
        )
        return info

    def _transfer(self, request: VideoFromFile, upload_url: str) -> None:
        """PUT the whole file as a single chunk."""
        size = request.size
        with request.open() as stream:
            result, error = self.transport.request(
                "PUT",
                upload_url,
                {
                    "Content-Range": f"bytes 0-{size - 1}/{size}",
                    "Content-Length": str(size),
                    "Content-Type": request.mime_type,
                },
                content=stream,
            )
        if result is None or result.status_code not in (200, 201, 206):
            detail = error or f"HTTP {result.status_code}: {result.text[:200]}"
            raise UploadSessionError(f"Chunk upload failed: {detail}")
        logger.info("tiktok_upload_transferred", bytes=size)

    def check_publish_status(self, publish_id: str) -> PublishStatus:
        """Query the status of a publish once.

        Raises:
            MalformedResponseError: If the response lacks mandatory fields.
            TransportError: If no response was received.
        """
        payload = self.transport.request_json(
            "POST",
            TIKTOK_POST_STATUS_URL,
            bearer_headers(self._access_token(), json_body=True),
            json={"publish_id": publish_id},
        )
        return PublishStatus.from_json(payload)

    def wait_until_published(
        self,
        publish_id: str,
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> PublishStatus:
        """Poll the status until it is terminal.

        Polling stops on PUBLISH_COMPLETE, FAILED, or an API error code. After
        ``max_attempts`` queries the last, non-terminal status is returned.

        Args:
            publish_id: ID returned by the init call.
            max_attempts: Query limit (default from settings).
            interval: Seconds between queries (default from settings).
        """
        if max_attempts is None:
            max_attempts = settings.publish_poll_max_attempts
        if interval is None:
            interval = settings.publish_poll_interval_seconds
        max_attempts = max(1, max_attempts)

        status = None
        for attempt in range(1, max_attempts + 1):
            status = self.check_publish_status(publish_id)
            logger.debug("tiktok_publish_status", publish_id=publish_id, status=status.status, attempt=attempt)
            if status.is_terminal:
                logger.info(
                    "tiktok_publish_finished",
                    publish_id=publish_id,
                    status=status.status,
                    public_post_id=status.public_post_id,
                    attempts=attempt,
                )
                return status
            if attempt < max_attempts and interval > 0:
                time.sleep(interval)

        logger.warning("tiktok_publish_poll_exhausted", publish_id=publish_id, attempts=max_attempts)
        return status

    def wait_for_attempt(
        self,
        attempt: PublishAttempt,
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> PublishStatus | None:
        """Poll an attempt started with :meth:`start` and record the outcome."""
        if attempt.state != PublishState.POLLING:
            return attempt.status
        status = self.wait_until_published(attempt.publish_id, max_attempts, interval)
        attempt.status = status
        if status.is_complete:
            attempt.advance(PublishState.COMPLETE)
        elif status.is_terminal:
            attempt.advance(PublishState.FAILED)
        return status
