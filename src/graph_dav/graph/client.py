"""Microsoft Graph API client with MSAL refresh-token authentication."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError

import msal

from graph_dav.graph.token import TokenCache, TokenGrant, get_token_cache

if TYPE_CHECKING:
    from graph_dav.config import AppConfig

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/Files.ReadWrite.All"]
AUTHORITY_BASE_URL = "https://login.microsoftonline.com"

DEFAULT_TOKEN_LIFETIME = 3600
DEFAULT_TIMEOUT = 30


class GraphAuthError(Exception):
    """Raised when MSAL cannot exchange the refresh token for an access token."""


class GraphApiError(Exception):
    """Raised when the Graph API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Graph API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GraphClient:
    """Authenticated transport for Microsoft Graph API calls."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        tenant_id: str = "common",
        token_cache: TokenCache | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            refresh_token: Refresh token of the drive owner; used only when
                ``token_cache`` is not supplied.
            tenant_id: Azure AD tenant ID, or "common"/"consumers".
            token_cache: Shared cache holding the access token. A private
                cache is created when omitted.
            timeout: Socket timeout in seconds for every request.
        """
        authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )
        self._tokens = token_cache if token_cache is not None else TokenCache(refresh_token)
        self._timeout = timeout

    def _exchange(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token.

        Raises:
            GraphAuthError: If MSAL cannot acquire a token.
        """
        result: dict[str, Any] = (
            self._app.acquire_token_by_refresh_token(refresh_token, scopes=GRAPH_SCOPES) or {}
        )
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[_exchange] MSAL refresh token exchange failed; error:%s", error)
            raise GraphAuthError(f"Token acquisition failed: {error}: {description}")
        return TokenGrant(
            access_token=str(result["access_token"]),
            expires_in=int(result.get("expires_in", DEFAULT_TOKEN_LIFETIME)),
            refresh_token=result.get("refresh_token"),
        )

    def _acquire_token(self) -> str:
        """Return a valid bearer token, refreshing through the shared cache if needed.

        Raises:
            GraphAuthError: If the refresh token exchange fails.
        """
        return self._tokens.get(self._exchange)

    def _send(
        self,
        method: str,
        path: str,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        """Perform an authenticated request and return the raw response body.

        Args:
            method: HTTP method.
            path: URL path relative to GRAPH_BASE_URL (must start with '/'),
                or an absolute URL such as an ``@odata.nextLink``.
            data: Optional request body.
            headers: Extra request headers.

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If the API returns a non-2xx status code.
        """
        token = self._acquire_token()
        url = path if path.startswith("https://") else f"{GRAPH_BASE_URL}{path}"
        req = urllib_request.Request(
            url,
            data=data,
            headers={"Authorization": f"Bearer {token}", **(headers or {})},
            method=method,
        )
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                return resp.read()  # type: ignore[no-any-return]
        except HTTPError as exc:
            raw = exc.read()
            try:
                detail = json.loads(raw).get("error", {}).get("message", exc.reason)
            except (ValueError, AttributeError):
                detail = exc.reason
            if exc.code == 401:
                # Revoked or rotated server-side; force a refresh next time.
                self._tokens.invalidate()
            raise GraphApiError(exc.code, detail) from exc

    def get(self, path: str) -> dict[str, Any]:
        """Perform an authenticated GET request and parse the JSON body.

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If the API returns a non-2xx status code.
        """
        body = self._send("GET", path, headers={"Accept": "application/json"})
        return json.loads(body)  # type: ignore[no-any-return]

    def get_content(self, path: str) -> bytes:
        """Perform an authenticated GET request and return the raw bytes."""
        return self._send("GET", path)

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON document and parse the JSON response."""
        body = self._send(
            "POST",
            path,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        return json.loads(body) if body else {}

    def put_content(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """PUT raw content and parse the JSON response, if any.

        Args:
            path: URL path relative to BASE_URL (must start with '/').
            content: Raw bytes to upload.
            content_type: MIME type for the Content-Type header.

        Returns:
            Parsed JSON body (the created or replaced driveItem), or an
            empty dict when the response has no body.
        """
        body = self._send("PUT", path, data=content, headers={"Content-Type": content_type})
        return json.loads(body) if body else {}

    def delete(self, path: str) -> None:
        """Perform an authenticated DELETE request."""
        self._send("DELETE", path)


def graph_client_from_config(config: AppConfig) -> GraphClient:
    """Construct a GraphClient bound to the process-wide token cache.

    Args:
        config: Application configuration instance.

    Returns:
        Configured GraphClient instance.
    """
    cache = get_token_cache(
        key=f"{config.tenant_id}:{config.client_id}:{config.drive_user}",
        refresh_token=config.refresh_token,
        expiry_margin=config.token_expiry_margin,
    )
    return GraphClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        refresh_token=config.refresh_token,
        tenant_id=config.tenant_id,
        token_cache=cache,
        timeout=config.http_timeout,
    )
