"""Parsed responses of the Content Posting API."""

from dataclasses import dataclass
from typing import Any

from tiktok_login_kit.domain.enums import PublishStatusValue, TERMINAL_PUBLISH_STATUSES
from tiktok_login_kit.domain.models import opt_dict, opt_str
from tiktok_login_kit.errors import MalformedResponseError

NO_ERRORS = "ok"


def _require_error_code(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Return the ``error`` object, which must carry a code."""
    error = opt_dict(payload, "error")
    if not opt_str(error, "code"):
        raise MalformedResponseError(f"Invalid TikTok JSON, missing error.code: {payload!r}", payload)
    return error


@dataclass(frozen=True)
class PublishInfo:
    """Result of initiating a publish."""

    success: bool
    publish_id: str = ""
    upload_url: str = ""  # Only set for FILE_UPLOAD
    error_code: str = ""  # "ok" on success
    error_message: str = ""
    log_id: str = ""

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "PublishInfo":
        """Parse an init response.

        Raises:
            MalformedResponseError: If ``error.code`` is absent.
        """
        error = _require_error_code(payload)
        data = opt_dict(payload, "data")
        code = opt_str(error, "code")
        success = code == NO_ERRORS
        return cls(
            success=success,
            publish_id=opt_str(data, "publish_id"),
            upload_url=opt_str(data, "upload_url"),
            error_code=code,
            error_message=opt_str(error, "message"),
            log_id=opt_str(error, "log_id"),
        )


@dataclass(frozen=True)
class PublishStatus:
    """Result of one publish status query."""

    success: bool
    status: str = ""
    public_post_id: str = ""
    error_code: str = ""
    error_message: str = ""
    log_id: str = ""

    @property
    def is_terminal(self) -> bool:
        """Whether polling should stop on this status."""
        return not self.success or self.status in TERMINAL_PUBLISH_STATUSES

    @property
    def is_complete(self) -> bool:
        return self.status == PublishStatusValue.PUBLISH_COMPLETE

    @classmethod
    def from_json(cls, payload: dict[str, Any] | None) -> "PublishStatus":
        """Parse a status response.

        An API error yields ``success=False`` with the error code in both
        ``status`` and ``error_code``. A ``FAILED`` publish yields
        ``success=False`` with ``fail_reason`` as the message.

        Raises:
            MalformedResponseError: If ``error.code`` is absent, or the call
                succeeded without a ``data.status``.
        """
        error = _require_error_code(payload)
        code = opt_str(error, "code")
        message = opt_str(error, "message")
        log_id = opt_str(error, "log_id")

        if code != NO_ERRORS:
            return cls(
                success=False,
                status=code,
                error_code=code,
                error_message=message,
                log_id=log_id,
            )

        data = opt_dict(payload, "data")
        status = opt_str(data, "status")
        if not status:
            raise MalformedResponseError(f"Invalid TikTok JSON, missing data.status: {payload!r}", payload)

        if status == PublishStatusValue.FAILED:
            return cls(
                success=False,
                status=status,
                error_code=status,
                error_message=opt_str(data, "fail_reason"),
                log_id=log_id,
            )

        return cls(
            success=True,
            status=status,
            public_post_id=_first_post_id(data.get("publicaly_available_post_id")),
            error_code=code,
            log_id=log_id,
        )


def _first_post_id(value: Any) -> str:
    """TikTok sends the public post id as a scalar or a list; use the first."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        return ""
    return str(value)
