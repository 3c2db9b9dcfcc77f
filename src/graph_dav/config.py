"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Tunables have
    sensible defaults but can be overridden via environment variables.
    """

    # Required — no defaults, fail at startup if missing
    client_id: str
    client_secret: str
    refresh_token: str
    drive_user: str
    dav_username: str
    dav_password: str

    # Tunables — defaults provided, overridable via env
    tenant_id: str = "common"
    root_item_id: str = "root"
    page_size: int = 200
    token_expiry_margin: int = 60
    http_timeout: int = 30


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        GD_CLIENT_ID: Azure AD application (client) ID.
        GD_CLIENT_SECRET: Azure AD application client secret.
        GD_REFRESH_TOKEN: OAuth2 refresh token for the drive owner.
        GD_DRIVE_USER: UPN or object ID of the user whose drive is served.
        GD_DAV_USERNAME: Basic-auth username WebDAV clients must present.
        GD_DAV_PASSWORD: Basic-auth password WebDAV clients must present.

    Optional environment variables (with defaults):
        GD_TENANT_ID: Azure AD tenant, or "common"/"consumers" (default: common).
        GD_ROOT_ITEM_ID: Drive item ID exposed as the WebDAV root (default: root).
        GD_PAGE_SIZE: Children requested per listing page (default: 200).
        GD_TOKEN_EXPIRY_MARGIN: Seconds before expiry a token is refreshed (default: 60).
        GD_HTTP_TIMEOUT: Socket timeout in seconds for Graph calls (default: 30).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        client_id=os.environ["GD_CLIENT_ID"],
        client_secret=os.environ["GD_CLIENT_SECRET"],
        refresh_token=os.environ["GD_REFRESH_TOKEN"],
        drive_user=os.environ["GD_DRIVE_USER"],
        dav_username=os.environ["GD_DAV_USERNAME"],
        dav_password=os.environ["GD_DAV_PASSWORD"],
        tenant_id=os.environ.get("GD_TENANT_ID", "common"),
        root_item_id=os.environ.get("GD_ROOT_ITEM_ID", "root"),
        page_size=int(os.environ.get("GD_PAGE_SIZE", "200")),
        token_expiry_margin=int(os.environ.get("GD_TOKEN_EXPIRY_MARGIN", "60")),
        http_timeout=int(os.environ.get("GD_HTTP_TIMEOUT", "30")),
    )
