"""Basic authentication gate for WebDAV clients."""

import base64
import hmac


def expected_authorization(username: str, password: str) -> str:
    """Return the exact ``Authorization`` header value a client must send."""
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {credentials}"


def is_authorized(authorization_header: str | None, username: str, password: str) -> bool:
    """Compare the presented header with the configured credentials in constant time."""
    presented = (authorization_header or "").encode("utf-8")
    expected = expected_authorization(username, password).encode("utf-8")
    return hmac.compare_digest(presented, expected)
