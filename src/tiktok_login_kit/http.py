"""HTTP transport used by every TikTok API call.

The transport never raises on network or HTTP failures. It returns a
``(response, error)`` pair instead, and the calling component decides how a
missing response maps onto the error taxonomy.
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO

import httpx

from tiktok_login_kit.config import settings
from tiktok_login_kit.errors import ApiError, TransportError
from tiktok_login_kit.logging import get_logger

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass
class HttpResponse:
    """A response that reached us, successful or not."""

    status_code: int
    payload: dict[str, Any] | None = None
    text: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport:
    """Thin synchronous wrapper around :class:`httpx.Client`."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Pre-built client (tests pass one backed by MockTransport).
            timeout: Uniform connect/response timeout in seconds.
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            follow_redirects=True,
        )

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        content: bytes | BinaryIO | None = None,
    ) -> tuple[HttpResponse | None, str | None]:
        """Issue a request.

        Returns:
            Tuple of (response, error). ``response`` is None when nothing
            usable came back: a network failure, or an HTTP error status
            without a JSON body.
        """
        try:
            response = self.client.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                data=data,
                content=content,
            )
        except httpx.HTTPError as e:
            logger.warning("tiktok_transport_error", method=method, url=url, error=str(e))
            return None, f"{type(e).__name__}: {e}"

        payload = _safe_json(response)
        result = HttpResponse(
            status_code=response.status_code,
            payload=payload,
            text=response.text,
            url=str(response.url),
            headers=dict(response.headers),
        )

        if not result.ok and payload is None:
            logger.warning(
                "tiktok_http_error",
                method=method,
                url=url,
                status=response.status_code,
                body=response.text[:500],
            )
            return None, f"HTTP {response.status_code}: {response.text[:200]}"

        return result, None

    def request_json(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Issue a request and return its decoded JSON object.

        Raises:
            TransportError: If no response arrived or the body is not a JSON object.
        """
        result, error = self.request(method, url, headers, **kwargs)
        if result is None:
            raise TransportError(f"TikTok Api Error, no response from {url}: {error}")
        if not isinstance(result.payload, dict):
            raise TransportError(f"TikTok Api Error, invalid JSON from {url}: {result.text[:200]}")
        return result.payload

    def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def bearer_headers(access_token: str, json_body: bool = False) -> dict[str, str]:
    """Headers for an authenticated call."""
    headers = {"Authorization": f"Bearer {access_token}"}
    if json_body:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return headers


def _safe_json(response: httpx.Response) -> dict[str, Any] | None:
    """Safely parse a JSON object response."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def api_error_code(payload: dict[str, Any]) -> str:
    """The ``error.code`` of a v2 response, or "" when absent."""
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("code") or "")
    return ""


def raise_for_api_error(payload: dict[str, Any], context: str) -> None:
    """Raise ApiError when a v2 response reports a non-ok error code."""
    code = api_error_code(payload)
    if code and code != "ok":
        error = payload.get("error") or {}
        raise ApiError(
            f"TikTok Api Error ({context}): {error.get('message') or code}",
            code=code,
            log_id=str(error.get("log_id") or ""),
        )
