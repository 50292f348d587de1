"""TikTok OAuth 2.0: authorization redirect, code exchange, refresh and revoke.

Uses TikTok Login Kit (v2 endpoints).
"""

import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from tiktok_login_kit.domain.enums import Permission
from tiktok_login_kit.domain.models import TokenInfo
from tiktok_login_kit.errors import (
    ApiError,
    CsrfMismatchError,
    InvalidPermissionError,
)
from tiktok_login_kit.http import FORM_CONTENT_TYPE, Transport
from tiktok_login_kit.logging import get_logger
from tiktok_login_kit.session import SESSION_STATE_KEY, SessionStore

logger = get_logger(__name__)

# TikTok OAuth endpoints
TIKTOK_AUTH_URL = "https://www.tiktok.com/v2/auth/authorize/"
TIKTOK_TOKEN_URL = "https://open.tiktokapis.com/v2/oauth/token/"
TIKTOK_REVOKE_URL = "https://open.tiktokapis.com/v2/oauth/revoke/"

# Name of the query parameter carrying the authorization code
CODE_PARAM = "code"
STATE_PARAM = "state"

DEFAULT_PERMISSIONS = (Permission.USER_INFO_BASIC,)


@dataclass(frozen=True)
class AppCredentials:
    """Credentials of the TikTok developer app."""

    client_key: str
    client_secret: str
    redirect_uri: str


class TokenStore:
    """Current access token and open id of one connector."""

    def __init__(self, access_token: str = "", open_id: str = "") -> None:
        self.access_token = access_token
        self.open_id = open_id

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    def clear(self) -> None:
        self.access_token = ""
        self.open_id = ""


def validate_permissions(permissions: Iterable[str]) -> list[Permission]:
    """Check every requested scope against the whitelist.

    Returns:
        The scopes in request order, without duplicates.

    Raises:
        InvalidPermissionError: If any scope is unknown.
    """
    if isinstance(permissions, str):
        permissions = (permissions,)
    validated: list[Permission] = []
    for permission in permissions:
        try:
            scope = Permission(permission)
        except ValueError:
            valid = ", ".join(p.value for p in Permission)
            raise InvalidPermissionError(
                f"Invalid Permission Requested: {permission!r}. Valid permissions are: {valid}"
            ) from None
        if scope not in validated:
            validated.append(scope)
    return validated


def _first_param(query: Mapping[str, Any], name: str) -> str:
    """Read a query parameter from a plain or parse_qs-style mapping."""
    value = query.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return str(value) if value else ""


def _error_description(payload: dict[str, Any] | None) -> str:
    """Extract the human-readable error from a token endpoint response."""
    if not payload:
        return "no response"
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    for source in (payload, data):
        for key in ("error_description", "description", "message"):
            if source.get(key):
                return str(source[key])
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "unknown error")
    return str(error or "unknown error")


def _error_code(payload: dict[str, Any]) -> str:
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("code") or "")
    return str(error or "")


class Authorizer:
    """Builds the authorization redirect and exchanges the callback code."""

    def __init__(
        self,
        credentials: AppCredentials,
        tokens: TokenStore,
        transport: Transport,
    ) -> None:
        self.credentials = credentials
        self.tokens = tokens
        self.transport = transport

    def build_authorization_url(
        self,
        session: SessionStore,
        permissions: Iterable[str] = DEFAULT_PERMISSIONS,
    ) -> str:
        """Generate the TikTok authorization URL.

        A fresh state token is stored in ``session``, replacing any earlier
        one, so only the latest authorization attempt can complete.

        Args:
            session: Caller-owned session storage.
            permissions: Scopes to request.

        Returns:
            The URL to redirect the user to.

        Raises:
            InvalidPermissionError: If a scope is unknown. The session is left untouched.
        """
        scopes = validate_permissions(permissions)

        state = secrets.token_urlsafe(32)
        session.set(SESSION_STATE_KEY, state)

        url = (
            f"{TIKTOK_AUTH_URL}?client_key={quote(self.credentials.client_key, safe='')}"
            f"&scope={','.join(s.value for s in scopes)}"
            f"&response_type=code"
            f"&redirect_uri={quote(self.credentials.redirect_uri, safe='')}"
            f"&state={state}"
        )
        logger.info("tiktok_authorization_url_built", scopes=[s.value for s in scopes])
        return url

    @staticmethod
    def is_callback_present(query: Mapping[str, Any]) -> bool:
        """Whether the incoming request carries a non-empty authorization code."""
        return bool(_first_param(query, CODE_PARAM))

    def exchange_code(
        self,
        code: str,
        received_state: str | None,
        session: SessionStore,
    ) -> TokenInfo:
        """Exchange an authorization code for tokens.

        Args:
            code: The authorization code from the callback.
            received_state: The ``state`` parameter from the callback.
            session: The session the state was stored in.

        Returns:
            The parsed tokens. Access token and open id are also kept on the
            connector for further calls.

        Raises:
            CsrfMismatchError: If the state is absent on either side or differs.
            ApiError: If TikTok does not return an access token.
            TransportError: If no response was received.
        """
        stored_state = session.get(SESSION_STATE_KEY)
        if not stored_state or not received_state or not secrets.compare_digest(
            stored_state.encode(), received_state.encode()
        ):
            logger.warning("tiktok_state_mismatch", state_stored=bool(stored_state))
            raise CsrfMismatchError("Invalid State Variable: callback state does not match session")

        # A state authorizes a single exchange
        session.pop(SESSION_STATE_KEY)

        payload = self._post_token(
            {
                "client_key": self.credentials.client_key,
                "client_secret": self.credentials.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.credentials.redirect_uri,
            }
        )

        token = TokenInfo.from_json(payload)
        if token is None:
            raise ApiError(
                f"TikTok Api Error: {_error_description(payload)}",
                code=_error_code(payload),
                log_id=str(payload.get("log_id") or ""),
            )

        self.tokens.access_token = token.access_token
        self.tokens.open_id = token.open_id
        logger.info("tiktok_code_exchanged", open_id=token.open_id, scope=list(token.scope))
        return token

    def _post_token(self, form: dict[str, str]) -> dict[str, Any]:
        return self.transport.request_json(
            "POST",
            TIKTOK_TOKEN_URL,
            {"Content-Type": FORM_CONTENT_TYPE},
            data=form,
        )


class Refresher:
    """Renews and revokes access tokens."""

    def __init__(
        self,
        credentials: AppCredentials,
        tokens: TokenStore,
        transport: Transport,
    ) -> None:
        self.credentials = credentials
        self.tokens = tokens
        self.transport = transport

    def refresh(self, refresh_token: str) -> TokenInfo | None:
        """Exchange a refresh token for a new access token.

        Args:
            refresh_token: The refresh token.

        Returns:
            The new tokens, or None when TikTok answered without an access
            token (for example an expired refresh token).

        Raises:
            TransportError: If no response was received.
        """
        payload = self.transport.request_json(
            "POST",
            TIKTOK_TOKEN_URL,
            {"Content-Type": FORM_CONTENT_TYPE},
            data={
                "client_key": self.credentials.client_key,
                "client_secret": self.credentials.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )

        token = TokenInfo.from_json(payload)
        if token is None:
            logger.warning("tiktok_token_refresh_rejected", error=_error_description(payload))
            return None

        self.tokens.access_token = token.access_token
        logger.info("tiktok_token_refreshed", expires_in=token.expires_in)
        return token

    def revoke(self, access_token: str | None = None) -> bool:
        """Revoke an access token (the stored one by default).

        Returns:
            True if revocation was successful.
        """
        token = access_token or self.tokens.access_token
        if not token:
            return False

        result, error = self.transport.request(
            "POST",
            TIKTOK_REVOKE_URL,
            {"Content-Type": FORM_CONTENT_TYPE},
            data={
                "client_key": self.credentials.client_key,
                "client_secret": self.credentials.client_secret,
                "token": token,
            },
        )

        if result is None or not result.ok or _error_code(result.payload or {}) not in ("", "ok"):
            logger.warning(
                "tiktok_token_revoke_failed",
                error=error or _error_description(result.payload if result else None),
            )
            return False

        if token == self.tokens.access_token:
            self.tokens.clear()
        logger.info("tiktok_token_revoked")
        return True
